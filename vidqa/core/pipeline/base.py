"""
Pipeline base classes.

Provides abstract interfaces that all pipeline stages must implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Type

from vidqa.core.exceptions import StageProcessingError
from vidqa.core.records import VideoRecord
from vidqa.core.status import VideoStatus


@dataclass
class StageResult:
    """
    Outcome of running a stage on one record.

    Attributes:
        success: Whether the stage completed and its fields were committed
        record_id: Record the stage ran on
        status: Status committed for the record (None if nothing was committed)
        data: Stage-specific output fields
        error: Error message if success is False
        skipped: Whether the record was skipped (already past this stage, etc.)
    """
    success: bool
    record_id: str = ""
    status: Optional[VideoStatus] = None
    data: Optional[dict] = None
    error: str = ""
    skipped: bool = False

    def __post_init__(self):
        if self.data is None:
            self.data = {}


@dataclass
class BatchResult:
    """
    Result from processing a batch of records.

    Aggregates individual StageResults.
    """
    total: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list = field(default_factory=list)
    results: list = field(default_factory=list)

    def add_result(self, record_id: Any, result: StageResult):
        """Add a stage result to the batch."""
        self.total += 1
        self.results.append({"id": str(record_id), "result": result})

        if result.skipped:
            self.skipped += 1
        elif result.success:
            self.successful += 1
        else:
            self.failed += 1
            if result.error:
                self.errors.append({"id": str(record_id), "error": result.error})

    def merge(self, other: "BatchResult"):
        """Fold another batch's counters into this one (results are not kept)."""
        self.total += other.total
        self.successful += other.successful
        self.failed += other.failed
        self.skipped += other.skipped
        self.errors.extend(other.errors)


class PipelineStage(ABC):
    """
    Abstract base class for pipeline stages.

    A stage is bound to a status precondition and postcondition:
    - source_status: records the stage picks up
    - success_status: status committed with the stage's fields
    - error_status: status committed when the stage fails

    Each stage must implement:
    - name: Unique identifier for the stage
    - execute(): Call the external service and return the stage-owned fields

    Example implementation:
        class TranscribeStage(PipelineStage):
            name = "transcribe"
            source_status = VideoStatus.UPLOADED
            success_status = VideoStatus.TRANSCRIBED
            error_status = VideoStatus.ERROR_TRANSCRIBED
            error_class = TranscriptionError

            def execute(self, record):
                return {"transcript": "..."}
    """

    name: str
    source_status: VideoStatus
    success_status: VideoStatus
    error_status: VideoStatus
    error_class: Type[StageProcessingError] = StageProcessingError

    def validate(self, record: VideoRecord) -> Tuple[bool, str]:
        """
        Check if record has what the stage needs.

        Returns:
            Tuple of (can_process, reason)
        """
        return True, ""

    @abstractmethod
    def execute(self, record: VideoRecord) -> Dict[str, Any]:
        """
        Run the stage on a record.

        Returns:
            Fields to commit alongside success_status

        Raises:
            StageProcessingError (error_class) on any failure
        """
        pass

    def process(self, record: VideoRecord) -> Dict[str, Any]:
        """
        Validate and execute stage on record.

        A failed validation raises error_class, so the record moves to
        the stage's error status like any other processing failure.
        """
        can_process, reason = self.validate(record)
        if not can_process:
            raise self.error_class(reason, record.id)
        return self.execute(record)

    def __repr__(self):
        return f"<{self.__class__.__name__}(name={self.name})>"
