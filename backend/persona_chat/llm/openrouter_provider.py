"""
OpenRouter LLM Provider.
Talks to OpenRouter's OpenAI-compatible chat/completions endpoint over httpx,
parsing the SSE stream by hand.
"""

import httpx
import json
import logging
import time
from typing import Optional, List, Dict, Any, AsyncGenerator

from .base import LLMProvider, LLMMessage, LLMResponse

logger = logging.getLogger(__name__)


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message", error))
    return str(error)


class OpenRouterProvider(LLMProvider):
    """
    Provider for OpenRouter (https://openrouter.ai).
    Any model on the allow-list is routed through the same endpoint.
    """

    name = "openrouter"

    def __init__(
        self,
        api_key: str,
        model: str = "google/gemini-2.0-flash-001",
        base_url: str = "https://openrouter.ai/api/v1",
        default_temperature: float = 0.7,
        default_max_tokens: int = 2048,
        timeout: float = 120.0,
        app_url: Optional[str] = None,
        app_title: str = "Persona Chat",
    ):
        super().__init__(api_key, model, base_url, default_temperature, default_max_tokens)
        self.timeout = timeout
        self.app_url = app_url
        self.app_title = app_title

    @property
    def completions_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _get_headers(self) -> Dict[str, str]:
        # HTTP-Referer and X-Title attribute traffic to this app on openrouter.ai
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": self.app_title,
        }
        if self.app_url:
            headers["HTTP-Referer"] = self.app_url
        return headers

    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None
    ) -> LLMResponse:
        """Send a non-streaming request to the Chat Completions endpoint."""
        start_time = time.time()
        payload = self._request_params(messages, temperature, max_tokens, model)
        logger.debug(f"OpenRouter call: model={payload['model']}, {len(messages)} messages")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.completions_url, json=payload, headers=self._get_headers())
                resp.raise_for_status()
                data = resp.json()

            # OpenRouter can answer 200 with an error object
            if data.get("error"):
                raise RuntimeError(f"OpenRouter error: {_error_message(data['error'])}")
        except Exception as e:
            self._log_failed("call", payload["model"], start_time, e)
            raise

        model_id = data.get("model", payload["model"])
        usage = data.get("usage") or {}
        self._log_completed("call", model_id, start_time, usage)
        return LLMResponse(
            content=data["choices"][0]["message"].get("content") or "",
            model=model_id,
            usage=usage,
            raw=data,
        )

    async def chat_completion_stream(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None
    ) -> AsyncGenerator[str, None]:
        """Stream text deltas from the Chat Completions endpoint."""
        start_time = time.time()
        payload = {**self._request_params(messages, temperature, max_tokens, model), "stream": True}
        logger.debug(f"OpenRouter stream: model={payload['model']}, {len(messages)} messages")

        content_length = 0
        usage: Dict[str, Any] = {}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                async with client.stream(
                    "POST", self.completions_url, json=payload, headers=self._get_headers()
                ) as response:
                    response.raise_for_status()

                    async for line in response.aiter_lines():
                        # "data: {json}", "data: [DONE]", or ": OPENROUTER PROCESSING" comments
                        if not line.startswith("data: "):
                            continue
                        data_str = line[6:].strip()
                        if data_str == "[DONE]":
                            break

                        try:
                            chunk = json.loads(data_str)
                        except json.JSONDecodeError:
                            logger.debug(f"Skipping malformed SSE line: {data_str[:100]}")
                            continue

                        if chunk.get("error"):
                            raise RuntimeError(f"OpenRouter stream error: {_error_message(chunk['error'])}")

                        choices = chunk.get("choices") or []
                        content = (choices[0].get("delta") or {}).get("content") if choices else None
                        if content:
                            content_length += len(content)
                            yield content

                        if chunk.get("usage"):
                            usage = chunk["usage"]
        except Exception as e:
            self._log_failed("stream", payload["model"], start_time, e)
            raise

        self._log_completed("stream", payload["model"], start_time, usage, content_length=content_length)
