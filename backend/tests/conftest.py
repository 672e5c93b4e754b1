"""
Shared test fixtures and configuration.
"""

import pytest
import pytest_asyncio
import os
from typing import List, Optional

# Set test environment variables before importing app modules
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_API_REQUESTS", "false")
os.environ.setdefault("STREAM_SMOOTHING", "false")

from persona_chat.llm.base import LLMProvider, LLMResponse  # noqa: E402
from persona_chat.storage import SQLChatStore, create_engine, init_models  # noqa: E402
from persona_chat.utils.auth import create_access_token  # noqa: E402


class FakeProvider(LLMProvider):
    """Scripted completion provider recording every call."""

    name = "fake"

    def __init__(
        self,
        chunks: Optional[List[str]] = None,
        title: str = "Generated Title",
        fail_after: Optional[int] = None,
        error: Optional[Exception] = None
    ):
        super().__init__(api_key="fake-key", model="fake-model")
        self.chunks = chunks if chunks is not None else ["Hello ", "there, ", "friend!"]
        self.title = title
        self.fail_after = fail_after
        self.error = error or RuntimeError("provider exploded")
        self.stream_calls: List[dict] = []
        self.completion_calls: List[dict] = []
        self.closed_streams = 0

    async def chat_completion(self, messages, temperature=None, max_tokens=None, model=None):
        self.completion_calls.append({
            "messages": messages, "temperature": temperature, "max_tokens": max_tokens, "model": model,
        })
        return LLMResponse(content=self.title, model=model or self.model)

    async def chat_completion_stream(self, messages, temperature=None, max_tokens=None, model=None):
        self.stream_calls.append({"messages": messages, "model": model})
        try:
            for index, chunk in enumerate(self.chunks):
                if self.fail_after is not None and index >= self.fail_after:
                    raise self.error
                yield chunk
        except GeneratorExit:
            self.closed_streams += 1
            raise
        if self.fail_after is not None and self.fail_after >= len(self.chunks):
            raise self.error


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_engine("sqlite+aiosqlite://")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def store(engine):
    return SQLChatStore(engine)


@pytest_asyncio.fixture
async def user(store):
    return await store.create_user(username="alice", hashed_password="not-a-real-hash")


@pytest_asyncio.fixture
async def other_user(store):
    return await store.create_user(username="bob", hashed_password="not-a-real-hash")


@pytest.fixture
def provider():
    return FakeProvider()


def auth_headers(user_id: str, username: str = "alice") -> dict:
    token = create_access_token({"sub": user_id, "username": username})
    return {"Authorization": f"Bearer {token}"}


def chat_payload(text: str, character_slug: str = "nova", conversation_id: Optional[str] = None,
                 history: Optional[list] = None, model: Optional[str] = None) -> dict:
    messages = list(history or [])
    messages.append({"id": f"m{len(messages)}", "role": "user", "parts": [{"type": "text", "text": text}]})
    payload = {"messages": messages, "characterSlug": character_slug}
    if conversation_id:
        payload["conversationId"] = conversation_id
    if model:
        payload["model"] = model
    return payload

