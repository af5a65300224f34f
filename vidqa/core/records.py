"""
Store-independent record types.

VideoRecord is the snapshot handed from the change feed to the stages;
each record store backend converts its native rows or documents into it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from vidqa.core.exceptions import InvalidRecordError
from vidqa.core.status import VideoStatus


@dataclass
class Question:
    """A viewer question and, once answered, its answer."""
    text: str
    answer: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "answer": self.answer}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        return cls(text=data.get("text", ""), answer=data.get("answer"))


@dataclass
class VideoRecord:
    """Snapshot of a video record at the time of a change."""
    id: str
    status: VideoStatus
    media_ref: Optional[str] = None
    title: str = ""
    transcript: Optional[str] = None
    questions: List[Question] = field(default_factory=list)


def parse_status(value: Any, record_id: str) -> VideoStatus:
    """Stored status value as a VideoStatus, or InvalidRecordError."""
    try:
        return VideoStatus(value)
    except ValueError:
        raise InvalidRecordError(f"Video {record_id} has unknown status {value!r}", record_id) from None


class ChangeType(str, Enum):
    """Kind of change reported by a record store subscription."""
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass
class Change:
    """A single raw change from a store subscription."""
    type: ChangeType
    record: VideoRecord
