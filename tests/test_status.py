"""
Tests for the video status state machine.
"""

import pytest

from vidqa.core.exceptions import InvalidTransitionError
from vidqa.core.status import (
    TERMINAL_STATUSES,
    VideoStatus,
    can_transition,
    validate_transition,
)


class TestTransitions:
    """Test the transition table."""

    @pytest.mark.parametrize("current,target", [
        ("uploaded", "transcribed"),
        ("uploaded", "error_transcribed"),
        ("transcribed", "completed"),
        ("transcribed", "error_openai"),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        ("uploaded", "completed"),
        ("uploaded", "error_openai"),
        ("transcribed", "uploaded"),
        ("transcribed", "error_transcribed"),
        ("completed", "transcribed"),
        ("error_transcribed", "transcribed"),
        ("error_openai", "completed"),
    ])
    def test_rejected(self, current, target):
        assert not can_transition(current, target)

    def test_unknown_status_rejected(self):
        assert not can_transition("uploaded", "processing")
        assert not can_transition("queued", "transcribed")

    def test_validate_returns_enum(self):
        status = validate_transition("uploaded", "transcribed")
        assert status is VideoStatus.TRANSCRIBED

    def test_validate_raises(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_transition(VideoStatus.COMPLETED, VideoStatus.UPLOADED)
        assert exc_info.value.current == VideoStatus.COMPLETED
        assert "completed -> uploaded" in str(exc_info.value)


class TestVideoStatus:
    """Test status values."""

    def test_wire_values(self):
        assert [s.value for s in VideoStatus] == [
            "uploaded", "transcribed", "completed", "error_transcribed", "error_openai",
        ]

    def test_str_is_value(self):
        assert str(VideoStatus.ERROR_OPENAI) == "error_openai"
        assert f"{VideoStatus.UPLOADED}" == "uploaded"

    def test_terminal(self):
        assert TERMINAL_STATUSES == {
            VideoStatus.COMPLETED,
            VideoStatus.ERROR_TRANSCRIBED,
            VideoStatus.ERROR_OPENAI,
        }
        assert VideoStatus.COMPLETED.is_terminal
        assert not VideoStatus.UPLOADED.is_terminal
