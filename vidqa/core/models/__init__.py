"""
Database models for the SQL record store.
"""

from vidqa.core.models.base import Base, TimestampMixin, GUID
from vidqa.core.models.video import Video

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "GUID",
    # Models
    "Video",
]
