"""
In-process stand-ins for the transcription and completion services.
"""

from typing import List, Optional

from vidqa.core.services.llm import LLMResponse, LLMService, Message
from vidqa.core.services.transcription import TranscriptionResult, TranscriptionService


class FakeTranscriber(TranscriptionService):
    """Returns a fixed transcript, or fails when asked to."""

    def __init__(self, text: str = "hello world", error: Optional[str] = None):
        self.text = text
        self.error = error
        self.calls: List[str] = []

    def transcribe(self, data: bytes, filename: str, language: str = "en") -> TranscriptionResult:
        self.calls.append(filename)
        if self.error:
            return TranscriptionResult(success=False, model="fake", error=self.error)
        return TranscriptionResult(success=True, text=self.text, model="fake")


class FakeLLM(LLMService):
    """
    Answers questions from a list of canned responses.

    An entry of None makes that call fail.
    """

    def __init__(self, answers: Optional[List[Optional[str]]] = None):
        self.answers = list(answers) if answers is not None else []
        self.calls: List[List[Message]] = []

    def complete(self, messages, model=None, temperature=0.2) -> LLMResponse:
        self.calls.append(messages)
        index = len(self.calls) - 1
        answer = self.answers[index] if index < len(self.answers) else "Because."
        if answer is None:
            return LLMResponse(success=False, model=model, error="rate limited")
        return LLMResponse(success=True, content=answer, model=model)
