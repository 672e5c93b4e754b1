"""
OpenAI-compatible LLM Provider using the official ``openai`` SDK.
Works with api.openai.com and any OpenAI-compatible gateway via base_url.
"""

import logging
import time
from typing import Optional, List, AsyncGenerator

from openai import AsyncOpenAI

from .base import LLMProvider, LLMMessage, LLMResponse

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """Provider backed by ``AsyncOpenAI`` chat completions."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        default_temperature: float = 0.7,
        default_max_tokens: int = 2048,
        timeout: float = 120.0,
    ):
        super().__init__(api_key, model, base_url, default_temperature, default_max_tokens)
        self.timeout = timeout
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None
    ) -> LLMResponse:
        start_time = time.time()
        params = self._request_params(messages, temperature, max_tokens, model)

        try:
            completion = await self.client.chat.completions.create(**params)
        except Exception as e:
            self._log_failed("call", params["model"], start_time, e)
            raise

        usage = completion.usage.model_dump() if completion.usage else {}
        self._log_completed("call", completion.model, start_time, usage)
        return LLMResponse(
            content=completion.choices[0].message.content or "",
            model=completion.model,
            usage=usage,
            raw=completion.model_dump(),
        )

    async def chat_completion_stream(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None
    ) -> AsyncGenerator[str, None]:
        start_time = time.time()
        params = self._request_params(messages, temperature, max_tokens, model)
        content_length = 0

        try:
            stream = await self.client.chat.completions.create(**params, stream=True)
            async for chunk in stream:
                # Usage-only chunks arrive with no choices
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    content_length += len(content)
                    yield content
        except Exception as e:
            self._log_failed("stream", params["model"], start_time, e)
            raise

        self._log_completed("stream", params["model"], start_time, content_length=content_length)
