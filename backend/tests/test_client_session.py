"""
Tests for the client session manager and conversation list cache.
"""

import asyncio
import json

import httpx
import pytest
import pytest_asyncio

from persona_chat.client import (
    ChatSession,
    ConversationListCache,
    InvalidStatusTransition,
    Ref,
    SessionStatus,
)
from persona_chat.client.session import ERROR_REPLY
from persona_chat.core.message_parts import text_message

CONVERSATION = {
    "id": "c-1",
    "user_id": "u-1",
    "character_slug": "nova",
    "title": "Review my code",
    "created_at": "2024-05-15T10:00:00Z",
    "updated_at": "2024-05-15T10:05:00Z",
}


class FakeBackend:
    """Scripted chat backend for httpx.MockTransport."""

    def __init__(self):
        self.requests = []
        self.chat_responses = []

    def reply(self, response: httpx.Response):
        self.chat_responses.append(response)

    def stream_reply(self, text: str, conversation_id: str = "c-1", user_message_id: str = "srv-1"):
        self.reply(httpx.Response(
            200,
            headers={"X-Conversation-Id": conversation_id, "X-User-Message-Id": user_message_id},
            text=text,
        ))

    def chat_payloads(self):
        return [json.loads(r.content) for r in self.requests if r.url.path == "/api/chat"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/api/chat":
            response = self.chat_responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        if request.url.path == "/api/conversations":
            return httpx.Response(200, json=[CONVERSATION])
        if request.url.path == "/api/conversations/c-1":
            return httpx.Response(200, json={**CONVERSATION, "messages": [
                {"id": "m1", "conversation_id": "c-1", "role": "user", "content": "hi",
                 "created_at": "2024-05-15T10:00:00Z"},
                {"id": "m2", "conversation_id": "c-1", "role": "assistant", "content": "hello",
                 "created_at": "2024-05-15T10:00:01Z"},
            ]})
        return httpx.Response(404, json={"detail": "Not Found"})


@pytest.fixture
def backend():
    return FakeBackend()


@pytest_asyncio.fixture
async def client(backend):
    async with httpx.AsyncClient(transport=httpx.MockTransport(backend), base_url="http://test") as client:
        yield client


def texts(session):
    return [(m.role, "".join(p.text or "" for p in m.parts)) for m in session.messages]


class TestSendMessage:
    """Optimistic append, id capture and reconciliation."""

    @pytest.mark.asyncio
    async def test_blank_input_is_ignored(self, client, backend):
        session = ChatSession(client, "nova")

        assert await session.send_message("   ") is False
        assert await session.send_message("") is False
        assert session.messages == []
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_first_turn_captures_conversation(self, client, backend):
        created = []
        session = ChatSession(client, "nova", on_conversation_created=created.append)
        backend.stream_reply("Hello there")

        assert await session.send_message("Review my code") is True

        assert session.status is SessionStatus.READY
        assert session.conversation_id.get() == "c-1"
        assert created == ["c-1"]
        assert texts(session) == [("user", "Review my code"), ("assistant", "Hello there")]
        assert session.messages[0].id == "srv-1"

        payload = backend.chat_payloads()[0]
        assert payload["characterSlug"] == "nova"
        assert "conversationId" not in payload
        assert payload["messages"][0]["parts"] == [{"type": "text", "text": "Review my code"}]

    @pytest.mark.asyncio
    async def test_values_read_at_send_time(self, client, backend):
        created = []
        model = Ref()
        session = ChatSession(client, "nova", model=model, on_conversation_created=created.append)
        backend.stream_reply("One", user_message_id="srv-1")
        backend.stream_reply("Two", user_message_id="srv-2")

        await session.send_message("first")
        model.set("openai/gpt-4o-mini")
        await session.send_message("second")

        first, second = backend.chat_payloads()
        assert "model" not in first
        assert second["model"] == "openai/gpt-4o-mini"
        assert second["conversationId"] == "c-1"
        assert [m["role"] for m in second["messages"]] == ["user", "assistant", "user"]
        assert created == ["c-1"]
        assert [m.id for m in session.messages if m.role == "user"] == ["srv-1", "srv-2"]

    @pytest.mark.asyncio
    async def test_existing_conversation_keeps_id(self, client, backend):
        created = []
        session = ChatSession(client, "nova", conversation_id=Ref("c-1"), on_conversation_created=created.append)
        backend.stream_reply("Hi")

        await session.send_message("again")

        assert backend.chat_payloads()[0]["conversationId"] == "c-1"
        assert created == []

    @pytest.mark.asyncio
    async def test_reconcile_is_idempotent(self, client):
        session = ChatSession(client, "nova")
        session.messages.append(text_message("temp-1", "user", "hi"))

        session._reconcile_message_id("temp-1", "srv-1")
        session._reconcile_message_id("temp-1", "srv-1")

        assert [m.id for m in session.messages] == ["srv-1"]

    @pytest.mark.asyncio
    async def test_load_history(self, client):
        session = ChatSession(client, "nova", conversation_id=Ref("c-1"))

        await session.load()

        assert texts(session) == [("user", "hi"), ("assistant", "hello")]
        assert [m.id for m in session.messages] == ["m1", "m2"]


class TestStreamingAndStop:
    """Status while streaming and user-initiated stop."""

    @pytest.mark.asyncio
    async def test_stop_keeps_partial_text(self, client, backend):
        gate = asyncio.Event()
        first_chunk_sent = asyncio.Event()

        async def body():
            yield b"Once upon "
            first_chunk_sent.set()
            await gate.wait()
            yield b"a time"

        backend.reply(httpx.Response(200, headers={"X-Conversation-Id": "c-1"}, content=body()))
        session = ChatSession(client, "nova")

        task = asyncio.create_task(session.send_message("tell me a story"))
        await asyncio.wait_for(first_chunk_sent.wait(), timeout=2)
        for _ in range(100):
            if session.status is SessionStatus.STREAMING:
                break
            await asyncio.sleep(0.01)

        assert session.pending_cursor is True
        assert session.is_loading is True
        assert await session.send_message("interrupt") is False

        assert session.stop() is True
        assert await asyncio.wait_for(task, timeout=2) is True

        assert session.status is SessionStatus.READY
        assert session.pending_cursor is False
        assert texts(session) == [("user", "tell me a story"), ("assistant", "Once upon ")]

    @pytest.mark.asyncio
    async def test_stop_when_idle(self, client):
        assert ChatSession(client, "nova").stop() is False

    @pytest.mark.asyncio
    async def test_illegal_transition_raises(self, client):
        session = ChatSession(client, "nova")
        with pytest.raises(InvalidStatusTransition):
            session._set_status(SessionStatus.STREAMING)

    @pytest.mark.asyncio
    async def test_empty_reply(self, client, backend):
        backend.stream_reply("")
        session = ChatSession(client, "nova")

        await session.send_message("hi")

        assert session.status is SessionStatus.READY
        assert texts(session) == [("user", "hi")]


class TestFailures:
    """Rejected turns and transport errors."""

    @pytest.mark.asyncio
    async def test_rate_limited(self, client, backend):
        backend.reply(httpx.Response(429, json={
            "error": "Daily message limit reached", "message_count": 15, "daily_limit": 15, "remaining": 0,
        }))
        session = ChatSession(client, "nova")

        await session.send_message("hi")

        assert session.status is SessionStatus.ERROR
        assert session.rate_limit.message_count == 15
        assert session.rate_limit.daily_limit == 15
        assert session.can_send is False
        assert texts(session) == [("user", "hi")]
        assert await session.send_message("again") is False
        assert len(backend.chat_payloads()) == 1

    @pytest.mark.asyncio
    async def test_server_error_appends_apology(self, client, backend):
        backend.reply(httpx.Response(502, json={"error": "Failed to get AI response"}))
        backend.stream_reply("Recovered")
        session = ChatSession(client, "nova")

        await session.send_message("hi")

        assert session.status is SessionStatus.ERROR
        assert session.error == "Failed to get AI response"
        assert texts(session) == [("user", "hi"), ("assistant", ERROR_REPLY)]

        await session.send_message("retry")
        assert session.status is SessionStatus.READY
        assert session.error is None
        assert texts(session)[-1] == ("assistant", "Recovered")

    @pytest.mark.asyncio
    async def test_apology_is_not_sent_back(self, client, backend):
        backend.reply(httpx.Response(502, json={"error": "Failed to get AI response"}))
        backend.stream_reply("Recovered")
        session = ChatSession(client, "nova")

        await session.send_message("hi")
        await session.send_message("retry")

        _, second = backend.chat_payloads()
        sent = [(m["role"], "".join(p.get("text", "") for p in m["parts"])) for m in second["messages"]]
        assert sent == [("user", "hi"), ("user", "retry")]
        assert ("assistant", ERROR_REPLY) in texts(session)

    @pytest.mark.asyncio
    async def test_transport_error(self, client, backend):
        backend.reply(httpx.ConnectError("connection refused"))
        session = ChatSession(client, "nova")

        await session.send_message("hi")

        assert session.status is SessionStatus.ERROR
        assert "connection refused" in session.error
        assert texts(session) == [("user", "hi"), ("assistant", ERROR_REPLY)]


class TestCacheInvalidation:
    """Conversation list refresh after each turn."""

    @pytest.mark.asyncio
    async def test_invalidates_now_and_later(self, client, backend):
        cache = ConversationListCache(client)
        await cache.get()
        session = ChatSession(client, "nova", cache=cache, invalidation_delay=0.01)
        backend.stream_reply("Hi")

        await session.send_message("hello")
        assert cache.invalidation_count == 1
        assert cache.stale is True

        await asyncio.sleep(0.05)
        assert cache.invalidation_count == 2

    @pytest.mark.asyncio
    async def test_invalidates_on_failure(self, client, backend):
        cache = ConversationListCache(client)
        backend.reply(httpx.Response(500, json={"error": "Failed to save message"}))
        session = ChatSession(client, "nova", cache=cache, invalidation_delay=60)

        await session.send_message("hello")

        assert cache.invalidation_count == 1
        session.close()

    @pytest.mark.asyncio
    async def test_cache_refetches_only_when_stale(self, client, backend):
        cache = ConversationListCache(client)

        first = await cache.get()
        await cache.get()
        assert [c.id for c in first] == ["c-1"]
        assert len(backend.requests) == 1

        cache.invalidate()
        await cache.get()
        assert len(backend.requests) == 2
