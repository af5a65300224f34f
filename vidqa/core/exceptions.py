"""
Pipeline exception hierarchy.

- SubscriptionError: a change feed subscription failed (fatal to that watch)
- StageProcessingError: an external call failed for one record
- CommitError: a record store write failed for one record
- InvalidTransitionError: a status change outside the transition table
- InvalidRecordError: a stored record is unreadable (unknown status, etc.)
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(PipelineError):
    """A collaborator could not be built from the current settings."""


class SubscriptionError(PipelineError):
    """The change feed subscription failed and must be re-established."""


class StageProcessingError(PipelineError):
    """
    A stage could not process a record.

    Scoped to a single record; the orchestrator converts it into
    the stage's error status.
    """

    def __init__(self, message: str, record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id


class TranscriptionError(StageProcessingError):
    """Media could not be resolved or transcribed."""


class AnsweringError(StageProcessingError):
    """A question could not be answered."""


class CommitError(PipelineError):
    """A status transition could not be written to the record store."""

    def __init__(self, message: str, record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id


class InvalidRecordError(PipelineError):
    """A stored record cannot be converted into a VideoRecord."""

    def __init__(self, message: str, record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id


class InvalidTransitionError(PipelineError):
    """Requested status change is not allowed by the transition table."""

    def __init__(self, current, target):
        super().__init__(f"Invalid status transition: {current} -> {target}")
        self.current = current
        self.target = target
