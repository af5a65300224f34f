"""
Video status state machine.

Success path:  uploaded -> transcribed -> completed
Error path:    uploaded -> error_transcribed
               transcribed -> error_openai

Error states and completed are terminal.
"""

from enum import Enum
from typing import Dict, FrozenSet

from vidqa.core.exceptions import InvalidTransitionError


class VideoStatus(str, Enum):
    """Pipeline position of a video record."""
    UPLOADED = "uploaded"
    TRANSCRIBED = "transcribed"
    COMPLETED = "completed"
    ERROR_TRANSCRIBED = "error_transcribed"
    ERROR_OPENAI = "error_openai"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self]


TRANSITIONS: Dict[VideoStatus, FrozenSet[VideoStatus]] = {
    VideoStatus.UPLOADED: frozenset({VideoStatus.TRANSCRIBED, VideoStatus.ERROR_TRANSCRIBED}),
    VideoStatus.TRANSCRIBED: frozenset({VideoStatus.COMPLETED, VideoStatus.ERROR_OPENAI}),
    VideoStatus.COMPLETED: frozenset(),
    VideoStatus.ERROR_TRANSCRIBED: frozenset(),
    VideoStatus.ERROR_OPENAI: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


def can_transition(current, target) -> bool:
    """Check whether current -> target is in the transition table."""
    try:
        current = VideoStatus(current)
        target = VideoStatus(target)
    except ValueError:
        return False
    return target in TRANSITIONS[current]


def validate_transition(current, target) -> VideoStatus:
    """Return target as a VideoStatus, or raise InvalidTransitionError."""
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)
    return VideoStatus(target)
