"""
Pipeline module - stages, change feed and orchestration for videos.

Provides:
- PipelineStage: Abstract base class for all stages
- StageResult / BatchResult: Result containers for stage execution
- ChangeFeed: De-duplicated stream of newly eligible records
- StatusWriter: Conditional status transitions
- PipelineOrchestrator: Runs stages as records change status
- TranscribeStage: Whisper transcription
- AnswerStage: Question answering with chat completions
"""

from vidqa.core.pipeline.base import PipelineStage, StageResult, BatchResult
from vidqa.core.pipeline.feed import ChangeFeed, RecordAdded
from vidqa.core.pipeline.writer import StatusWriter
from vidqa.core.pipeline.orchestrator import PipelineOrchestrator, build_orchestrator
from vidqa.core.pipeline.transcribe import TranscribeStage
from vidqa.core.pipeline.answer import AnswerStage

__all__ = [
    "PipelineStage",
    "StageResult",
    "BatchResult",
    "ChangeFeed",
    "RecordAdded",
    "StatusWriter",
    "PipelineOrchestrator",
    "build_orchestrator",
    "TranscribeStage",
    "AnswerStage",
]
