"""
Transcription service - Whisper speech-to-text.

Supports two Whisper providers:
1. OpenAI
2. Groq

Handles:
- Large uploads (> 24MB): audio is extracted with ffmpeg and sent in chunks
- Fixed target language per service instance
"""

import logging
import subprocess
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from vidqa.core.config import Settings, get_settings
from vidqa.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# File size limits
MAX_FILE_SIZE_BYTES = 24 * 1024 * 1024  # 24MB (Whisper API limit is 25MB)
CHUNK_DURATION_SECONDS = 600  # 10 minutes per chunk


@dataclass
class TranscriptionResult:
    """Result of audio transcription."""
    success: bool
    text: str = ""
    model: Optional[str] = None
    error: Optional[str] = None


class TranscriptionService(ABC):
    """Abstract base class for transcription services."""

    @abstractmethod
    def transcribe(self, data: bytes, filename: str, language: str = "en") -> TranscriptionResult:
        """
        Transcribe an audio or video payload.

        Args:
            data: Raw file bytes
            filename: Original filename (used for format detection)
            language: ISO-639-1 language code

        Returns:
            TranscriptionResult with text and metadata
        """
        pass


class WhisperTranscriptionService(TranscriptionService):
    """
    Transcribe with a hosted Whisper model.

    Provider clients are created lazily so that importing this module
    does not require both SDKs to be configured.
    """

    def __init__(self, api_key: str, provider: str = "openai", model: str = "whisper-1"):
        if provider not in ("openai", "groq"):
            raise ConfigurationError(f"Unknown transcription provider: {provider}")
        self.api_key = api_key
        self.provider = provider
        self.model = model
        self._client = None

    @property
    def client(self):
        """Lazy load the provider client."""
        if self._client is None:
            if self.provider == "groq":
                from groq import Groq
                self._client = Groq(api_key=self.api_key)
                logger.info("Using Groq Whisper API")
            else:
                from openai import OpenAI
                self._client = OpenAI(api_key=self.api_key)
                logger.info("Using OpenAI Whisper API")
        return self._client

    def transcribe(self, data: bytes, filename: str, language: str = "en") -> TranscriptionResult:
        try:
            if len(data) > MAX_FILE_SIZE_BYTES:
                text = self._transcribe_chunked(data, filename, language)
            else:
                text = self._transcribe_bytes(data, filename, language)
        except Exception as e:
            logger.exception(f"Whisper transcription failed for {filename}")
            return TranscriptionResult(success=False, model=self.model, error=str(e))

        return TranscriptionResult(success=True, text=text.strip(), model=self.model)

    def _transcribe_bytes(self, data: bytes, filename: str, language: str) -> str:
        logger.info(f"Transcribing with {self.provider} Whisper: {filename} ({len(data) / 1024 / 1024:.1f}MB)")
        response = self.client.audio.transcriptions.create(
            model=self.model,
            file=(filename, data),
            language=language,
        )
        return response.text or ""

    def _transcribe_chunked(self, data: bytes, filename: str, language: str) -> str:
        """Extract audio and transcribe it in chunks, in order."""
        size_mb = len(data) / (1024 * 1024)
        logger.info(f"File {filename} is {size_mb:.1f}MB - extracting audio and splitting into chunks")

        with tempfile.TemporaryDirectory(prefix="whisper_chunks_") as temp_dir:
            source = Path(temp_dir) / (Path(filename).name or "upload")
            source.write_bytes(data)

            parts = []
            for chunk_path in self._split_audio(source, Path(temp_dir)):
                logger.info(f"Transcribing chunk: {chunk_path.name}")
                # A failed chunk fails the whole transcript
                parts.append(self._transcribe_bytes(chunk_path.read_bytes(), chunk_path.name, language))

        return " ".join(p.strip() for p in parts if p.strip())

    def _split_audio(self, source: Path, out_dir: Path) -> List[Path]:
        """Split the audio track into mp3 chunks using ffmpeg."""
        pattern = out_dir / "chunk_%03d.mp3"
        result = subprocess.run(
            [
                "ffmpeg", "-y",
                "-i", str(source),
                "-vn",
                "-ac", "1",
                "-c:a", "libmp3lame",
                "-q:a", "4",
                "-f", "segment",
                "-segment_time", str(CHUNK_DURATION_SECONDS),
                str(pattern),
            ],
            capture_output=True,
            text=True,
            timeout=900,
        )
        if result.returncode != 0:
            raise RuntimeError(f"ffmpeg failed: {result.stderr[-500:]}")

        chunks = sorted(out_dir.glob("chunk_*.mp3"))
        if not chunks:
            raise RuntimeError(f"Failed to create any chunks from {source.name}")
        return chunks


def build_transcription_service(settings: Optional[Settings] = None) -> TranscriptionService:
    """Create the Whisper service from settings."""
    settings = settings or get_settings()
    if not settings.has_transcription_capability:
        raise ConfigurationError("TRANSCRIPTION_API_KEY is required")
    return WhisperTranscriptionService(
        api_key=settings.transcription_api_key,
        provider=settings.transcription_provider,
        model=settings.transcription_model,
    )
