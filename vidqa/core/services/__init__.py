"""
Services module - external collaborators.

Provides:
- StorageService: Uploaded video storage (local/Firebase Storage)
- TranscriptionService: Whisper speech-to-text (OpenAI/Groq)
- LLMService: Chat completions (OpenAI)
"""

from vidqa.core.services.storage import StorageService, build_storage_service
from vidqa.core.services.transcription import (
    TranscriptionResult,
    TranscriptionService,
    build_transcription_service,
)
from vidqa.core.services.llm import LLMResponse, LLMService, Message, build_llm_service

__all__ = [
    "StorageService",
    "build_storage_service",
    "TranscriptionResult",
    "TranscriptionService",
    "build_transcription_service",
    "LLMResponse",
    "LLMService",
    "Message",
    "build_llm_service",
]
