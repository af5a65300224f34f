"""
Storage service - binary storage for uploaded videos.

Supports:
- Local filesystem storage
- Firebase (Google Cloud) Storage bucket

The backend is selected from configuration by build_storage_service().
"""

import logging
from pathlib import Path
from typing import Optional
from abc import ABC, abstractmethod

from vidqa.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Abstract storage backend interface."""

    @abstractmethod
    def download(self, key: str) -> Optional[bytes]:
        """Download file by key, None if it does not exist."""
        pass


class LocalStorageBackend(StorageBackend):
    """Videos stored under a directory, keyed by media ref (dev and tests)."""

    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Using local media directory: {self.base_dir}")

    def download(self, key: str) -> Optional[bytes]:
        path = (self.base_dir / key.lstrip("/")).resolve()
        if self.base_dir not in path.parents:
            raise ValueError(f"Media ref escapes the media directory: {key}")
        if not path.is_file():
            return None
        return path.read_bytes()


class FirebaseStorageBackend(StorageBackend):
    """Firebase Storage (Google Cloud Storage bucket) backend."""

    def __init__(self, bucket):
        self.bucket = bucket
        logger.info(f"Using Firebase storage bucket: {bucket.name}")

    def download(self, key: str) -> Optional[bytes]:
        """Download blob contents."""
        from google.cloud.exceptions import NotFound

        try:
            return self.bucket.blob(key).download_as_bytes()
        except NotFound:
            return None


class StorageService:
    """
    High-level storage service for uploaded videos.

    Usage:
        storage = build_storage_service(settings)
        video_bytes = storage.download_media("videos/lesson.mp4")
    """

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    def download_media(self, media_ref: str) -> Optional[bytes]:
        """Download a video file."""
        return self.backend.download(media_ref)


def build_storage_service(settings: Optional[Settings] = None) -> StorageService:
    """Create the storage service selected by STORAGE_TYPE."""
    settings = settings or get_settings()

    if settings.storage_type == "firebase":
        from vidqa.core.firebase import get_storage_bucket

        return StorageService(FirebaseStorageBackend(get_storage_bucket(settings)))

    return StorageService(LocalStorageBackend(settings.media_dir))
