"""
Completion provider base - the contract the chat turn and title generator
rely on: a one-shot completion and a stream of text deltas.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class LLMMessage:
    """A single chat message sent to a provider."""
    role: str  # "system", "user", "assistant"
    content: str

    @staticmethod
    def text(role: str, text: str) -> "LLMMessage":
        return LLMMessage(role=role, content=text)


@dataclass
class LLMResponse:
    """Result of a non-streaming completion."""
    content: str
    model: str = ""
    usage: Dict[str, int] = field(default_factory=dict)
    raw: Optional[Dict[str, Any]] = None


class LLMProvider(ABC):
    """
    Abstract completion provider.

    Both calls accept a per-call ``model`` so one provider instance can serve
    every model on the allow-list.
    """

    name = "base"

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None,
                 default_temperature: float = 0.7, default_max_tokens: int = 2048):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None
    ) -> LLMResponse:
        """
        Run a completion and return the whole reply.

        Args:
            messages: Conversation messages, system prompt first
            temperature: Sampling temperature override
            max_tokens: Max tokens override
            model: Model id override (provider default if omitted)
        """

    @abstractmethod
    def chat_completion_stream(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None
    ) -> AsyncGenerator[str, None]:
        """
        Stream the reply as text deltas in arrival order.

        Raises whatever the transport raised; a partial stream is never
        reported as finished.
        """

    def _format_messages(self, messages: List[LLMMessage]) -> List[Dict[str, Any]]:
        return [{"role": m.role, "content": m.content} for m in messages]

    def _request_params(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float],
        max_tokens: Optional[int],
        model: Optional[str]
    ) -> Dict[str, Any]:
        """Chat Completions request fields with provider defaults filled in."""
        return {
            "model": model or self.model,
            "messages": self._format_messages(messages),
            "temperature": temperature if temperature is not None else self.default_temperature,
            "max_tokens": max_tokens or self.default_max_tokens,
        }

    def _log_completed(self, call: str, model: str, start_time: float,
                       usage: Optional[Dict[str, Any]] = None, **fields) -> None:
        usage = usage or {}
        logger.info(
            f"LLM API {call} completed",
            extra={"extra_fields": {
                "provider": self.name,
                "model": model,
                "prompt_tokens": usage.get("prompt_tokens", 0),
                "completion_tokens": usage.get("completion_tokens", 0),
                "total_tokens": usage.get("total_tokens", 0),
                "duration_ms": round((time.time() - start_time) * 1000, 2),
                **fields,
            }}
        )

    def _log_failed(self, call: str, model: Optional[str], start_time: float, error: Exception) -> None:
        logger.error(
            f"LLM API {call} failed: {str(error)}",
            exc_info=True,
            extra={"extra_fields": {
                "provider": self.name,
                "model": model,
                "duration_ms": round((time.time() - start_time) * 1000, 2),
                "error": str(error),
            }}
        )
