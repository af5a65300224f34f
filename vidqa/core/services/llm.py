"""
LLM service - chat completions for question answering.

Provides an abstract interface plus the OpenAI implementation.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from vidqa.core.config import Settings, get_settings
from vidqa.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class Message:
    """A message in a conversation."""
    role: str  # "system", "user", "assistant"
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """Response from an LLM completion."""
    success: bool
    content: str = ""
    model: Optional[str] = None
    input_tokens: int = 0
    output_tokens: int = 0
    error: Optional[str] = None


class LLMService(ABC):
    """Abstract base class for LLM services."""

    @abstractmethod
    def complete(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        temperature: float = 0.2,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            messages: Conversation messages
            model: Model identifier (service default if None)
            temperature: Sampling temperature (0.0 to 1.0)

        Returns:
            LLMResponse with content and metadata
        """
        pass


class OpenAIChatService(LLMService):
    """OpenAI chat completions."""

    def __init__(self, api_key: str, default_model: str = "gpt-3.5-turbo"):
        self.api_key = api_key
        self.default_model = default_model
        self._openai_client = None

    @property
    def openai_client(self):
        """Lazy load OpenAI client."""
        if self._openai_client is None:
            from openai import OpenAI
            self._openai_client = OpenAI(api_key=self.api_key)
            logger.info(f"Using OpenAI API with model {self.default_model}")
        return self._openai_client

    def complete(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        temperature: float = 0.2,
    ) -> LLMResponse:
        from openai import OpenAIError

        model = model or self.default_model
        try:
            response = self.openai_client.chat.completions.create(
                model=model,
                messages=[m.to_dict() for m in messages],
                temperature=temperature,
            )
        except OpenAIError as e:
            logger.error(f"OpenAI completion failed ({model}): {e}")
            return LLMResponse(success=False, model=model, error=str(e))

        if not response.choices:
            return LLMResponse(success=False, model=model, error="No choices returned")

        usage = response.usage
        return LLMResponse(
            success=True,
            content=(response.choices[0].message.content or "").strip(),
            model=response.model or model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )


def build_llm_service(settings: Optional[Settings] = None) -> LLMService:
    """Create the chat completion service from settings."""
    settings = settings or get_settings()
    if not settings.has_completion_capability:
        raise ConfigurationError("COMPLETION_API_KEY is required")
    return OpenAIChatService(settings.completion_api_key, default_model=settings.model_id)
