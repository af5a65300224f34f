"""
Transcribe stage - Whisper transcription of uploaded videos.

uploaded -> transcribed (transcript set) or error_transcribed.

Steps:
1. Download the video bytes from storage
2. Send them to the transcription service in the target language
3. Return the transcript text
"""

import logging
from pathlib import PurePosixPath
from typing import Any, Dict, Tuple

from vidqa.core.exceptions import TranscriptionError
from vidqa.core.pipeline.base import PipelineStage
from vidqa.core.records import VideoRecord
from vidqa.core.services.storage import StorageService
from vidqa.core.services.transcription import TranscriptionService
from vidqa.core.status import VideoStatus

logger = logging.getLogger(__name__)


class TranscribeStage(PipelineStage):
    """Transcribe a record's uploaded video."""

    name = "transcribe"
    source_status = VideoStatus.UPLOADED
    success_status = VideoStatus.TRANSCRIBED
    error_status = VideoStatus.ERROR_TRANSCRIBED
    error_class = TranscriptionError

    def __init__(
        self,
        storage: StorageService,
        transcriber: TranscriptionService,
        language: str = "en",
    ):
        self.storage = storage
        self.transcriber = transcriber
        self.language = language

    def validate(self, record: VideoRecord) -> Tuple[bool, str]:
        if not record.media_ref:
            return False, f"Video {record.id} has no media reference"
        return True, ""

    def execute(self, record: VideoRecord) -> Dict[str, Any]:
        data = self._download(record)

        filename = PurePosixPath(record.media_ref).name
        result = self.transcriber.transcribe(data, filename, language=self.language)

        if not result.success:
            raise TranscriptionError(
                f"Transcription failed for video {record.id}: {result.error}", record.id
            )
        if not result.text:
            raise TranscriptionError(f"Empty transcript for video {record.id}", record.id)

        logger.info(
            f"Transcribed video {record.id}: {len(result.text.split())} words ({result.model})"
        )
        return {"transcript": result.text}

    def _download(self, record: VideoRecord) -> bytes:
        try:
            data = self.storage.download_media(record.media_ref)
        except Exception as e:
            raise TranscriptionError(
                f"Could not download {record.media_ref} for video {record.id}: {e}", record.id
            ) from e

        if not data:
            raise TranscriptionError(f"Media not found: {record.media_ref}", record.id)
        return data
