"""
Video model - one uploaded video and its pipeline state.

The status column is the single source of truth for pipeline position.
Transcript and answers are written by the pipeline stages only.
"""

import uuid

from sqlalchemy import Column, String, Text, Index
from sqlalchemy.types import JSON

from vidqa.core.models.base import Base, TimestampMixin, GUID
from vidqa.core.records import Question, VideoRecord, parse_status
from vidqa.core.status import VideoStatus


class Video(Base, TimestampMixin):
    """Uploaded video with its transcript and viewer questions."""

    __tablename__ = "videos"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)

    status = Column(
        String(32),
        nullable=False,
        index=True,
        default=VideoStatus.UPLOADED.value,
        comment="uploaded, transcribed, completed, error_transcribed, error_openai",
    )

    # Inputs (set at upload)
    media_ref = Column(Text, comment="Storage path of the uploaded video")
    title = Column(Text, comment="Video title")

    # Outputs (set by pipeline stages)
    transcript = Column(Text, comment="Full transcript text")
    questions = Column(
        JSON,
        nullable=False,
        default=list,
        comment='Ordered list of {"text", "answer"}',
    )

    __table_args__ = (
        Index("ix_videos_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Video({self.id}, {self.status})>"

    def to_record(self) -> VideoRecord:
        """Snapshot this row as a store-independent record."""
        return VideoRecord(
            id=str(self.id),
            status=parse_status(self.status, str(self.id)),
            media_ref=self.media_ref,
            title=self.title or "",
            transcript=self.transcript,
            questions=[Question.from_dict(q) for q in (self.questions or [])],
        )
