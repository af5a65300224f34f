"""
Status transition writer - the only code path that mutates pipeline status.

Every commit:
- is checked against the transition table
- touches only status and the fields owned by the target status
- never completes a record with an unanswered question
- is conditioned on the record still having the expected status
"""

import logging
from typing import Any, Dict, FrozenSet, Optional

from vidqa.core.status import VideoStatus, validate_transition
from vidqa.core.store.base import RecordStore

logger = logging.getLogger(__name__)


# Fields each target status may write besides status itself
OWNED_FIELDS: Dict[VideoStatus, FrozenSet[str]] = {
    VideoStatus.TRANSCRIBED: frozenset({"transcript"}),
    VideoStatus.COMPLETED: frozenset({"questions"}),
    VideoStatus.ERROR_TRANSCRIBED: frozenset(),
    VideoStatus.ERROR_OPENAI: frozenset(),
}


class StatusWriter:
    """Apply status transitions to the record store."""

    def __init__(self, store: RecordStore):
        self.store = store

    def commit(
        self,
        record_id: str,
        expected: VideoStatus,
        target: VideoStatus,
        fields: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Move a record from expected to target, writing the stage's fields.

        Returns:
            True if applied, False if the record no longer had the expected status

        Raises:
            InvalidTransitionError: expected -> target is not allowed
            CommitError: the store write failed
        """
        target = validate_transition(expected, target)
        fields = dict(fields or {})

        not_owned = set(fields) - OWNED_FIELDS.get(target, frozenset())
        if not_owned:
            raise ValueError(f"Fields {sorted(not_owned)} cannot be written with status {target}")
        if target == VideoStatus.COMPLETED and any(
            q.answer is None for q in fields.get("questions", [])
        ):
            raise ValueError(f"Video {record_id} cannot complete with unanswered questions")

        fields["status"] = target
        applied = self.store.update(record_id, fields, expected)

        if applied:
            logger.info(f"Video {record_id}: {expected} -> {target}")
        else:
            logger.warning(
                f"Video {record_id} is no longer {expected}, not moving it to {target}"
            )
        return applied
