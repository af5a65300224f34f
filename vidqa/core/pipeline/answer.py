"""
Answer stage - answer viewer questions from the video transcript.

transcribed -> completed (every question answered) or error_openai.

One chat completion per question, in question order. Each request
carries the video title and full transcript as context plus the single
question. Any failure aborts the record: answers are all-or-nothing.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from vidqa.core.exceptions import AnsweringError
from vidqa.core.pipeline.base import PipelineStage
from vidqa.core.records import Question, VideoRecord
from vidqa.core.services.llm import LLMService, Message
from vidqa.core.status import VideoStatus

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You answer viewer questions about a video.

Rules:
- Use only the video title and transcript provided below.
- If the transcript does not contain the answer, say so briefly.
- Answer clearly and concisely."""

TITLE_TEMPLATE = "Video title: {title}"

TRANSCRIPT_TEMPLATE = """Video transcript:
---
{transcript}
---"""


class AnswerStage(PipelineStage):
    """Answer every question on a transcribed record."""

    name = "answer"
    source_status = VideoStatus.TRANSCRIBED
    success_status = VideoStatus.COMPLETED
    error_status = VideoStatus.ERROR_OPENAI
    error_class = AnsweringError

    def __init__(self, llm: LLMService, model: Optional[str] = None):
        self.llm = llm
        self.model = model

    def validate(self, record: VideoRecord) -> Tuple[bool, str]:
        if not record.transcript:
            return False, f"Video {record.id} has no transcript"
        return True, ""

    def build_messages(self, record: VideoRecord, question: str) -> List[Message]:
        """Context messages for one question."""
        return [
            Message(role="system", content=SYSTEM_PROMPT),
            Message(role="system", content=TITLE_TEMPLATE.format(title=record.title)),
            Message(role="system", content=TRANSCRIPT_TEMPLATE.format(transcript=record.transcript)),
            Message(role="user", content=question),
        ]

    def execute(self, record: VideoRecord) -> Dict[str, Any]:
        answered: List[Question] = []

        for index, question in enumerate(record.questions):
            response = self.llm.complete(self.build_messages(record, question.text), model=self.model)

            if not response.success:
                raise AnsweringError(
                    f"Question {index + 1}/{len(record.questions)} failed for video {record.id}: "
                    f"{response.error}",
                    record.id,
                )

            answered.append(Question(text=question.text, answer=response.content))

        logger.info(f"Answered {len(answered)} questions for video {record.id}")
        return {"questions": answered}
