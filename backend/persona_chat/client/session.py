"""
Client Session Manager - one conversation view's live message list and the
lifecycle of the turn currently streaming into it.

The session talks to ``POST /api/chat`` through an ``httpx.AsyncClient``.
Values that can change while the session is alive (conversation id, model)
are read from ``Ref`` holders at send time.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Generic, List, Optional, Set, TypeVar

import httpx

from ..core.message_parts import stored_to_ui_messages, text_message
from ..models import Message, UIMessage
from .cache import ConversationListCache

logger = logging.getLogger(__name__)

T = TypeVar("T")

ERROR_REPLY = "Sorry, I couldn't respond just now. Please try again."
# Local-only apology messages; never sent back to the server
ERROR_ID_PREFIX = "error-"


class SessionStatus(str, Enum):
    READY = "ready"
    SUBMITTED = "submitted"
    STREAMING = "streaming"
    ERROR = "error"


_TRANSITIONS: Dict[SessionStatus, Set[SessionStatus]] = {
    SessionStatus.READY: {SessionStatus.SUBMITTED},
    # SUBMITTED -> READY covers a stop before the first byte and an empty reply
    SessionStatus.SUBMITTED: {SessionStatus.STREAMING, SessionStatus.READY, SessionStatus.ERROR},
    SessionStatus.STREAMING: {SessionStatus.READY, SessionStatus.ERROR},
    SessionStatus.ERROR: {SessionStatus.SUBMITTED, SessionStatus.READY},
}


class InvalidStatusTransition(RuntimeError):
    pass


class Ref(Generic[T]):
    """Mutable holder read at call time."""

    def __init__(self, value: Optional[T] = None):
        self.value = value

    def get(self) -> Optional[T]:
        return self.value

    def set(self, value: Optional[T]) -> None:
        self.value = value


@dataclass
class RateLimitInfo:
    message_count: int
    daily_limit: int


class ChatSession:
    """
    Drives chat turns for a single conversation view.

    Args:
        client: HTTP client pointed at the backend, carrying the bearer token
        character_slug: Character this conversation talks to
        conversation_id: Holder for the conversation id; empty for a new chat
        model: Holder for the selected model id; empty for the server default
        messages: Initial message list (e.g. a resumed conversation)
        cache: Conversation list cache to invalidate after each turn
        on_conversation_created: Called once with the id the server assigned
        invalidation_delay: Seconds before the second cache invalidation
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        character_slug: str,
        conversation_id: Optional[Ref[str]] = None,
        model: Optional[Ref[str]] = None,
        messages: Optional[List[UIMessage]] = None,
        cache: Optional[ConversationListCache] = None,
        on_conversation_created: Optional[Callable[[str], None]] = None,
        invalidation_delay: float = 2.0,
        chat_path: str = "/api/chat"
    ):
        self.client = client
        self.character_slug = character_slug
        self.conversation_id = conversation_id or Ref()
        self.model = model or Ref()
        self.messages: List[UIMessage] = list(messages or [])
        self.cache = cache
        self.on_conversation_created = on_conversation_created
        self.invalidation_delay = invalidation_delay
        self.chat_path = chat_path

        self.rate_limit: Optional[RateLimitInfo] = None
        self.error: Optional[str] = None
        self._status = SessionStatus.READY
        self._turn_task: Optional[asyncio.Task] = None
        self._stop_requested = False
        self._timers: List[asyncio.TimerHandle] = []

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_loading(self) -> bool:
        return self._status in (SessionStatus.SUBMITTED, SessionStatus.STREAMING)

    @property
    def pending_cursor(self) -> bool:
        """True while deltas are still arriving for the last assistant message."""
        return self._status is SessionStatus.STREAMING

    @property
    def can_send(self) -> bool:
        return not self.is_loading and self.rate_limit is None

    def _set_status(self, status: SessionStatus) -> None:
        if status not in _TRANSITIONS[self._status]:
            raise InvalidStatusTransition(f"{self._status.value} -> {status.value}")
        logger.debug(f"Session status: {self._status.value} -> {status.value}")
        self._status = status

    async def load(self) -> List[UIMessage]:
        """Replace the message list with the stored history of the current conversation."""
        conversation_id = self.conversation_id.get()
        if not conversation_id:
            return self.messages
        response = await self.client.get(f"/api/conversations/{conversation_id}")
        response.raise_for_status()
        stored = [Message.model_validate(m) for m in response.json().get("messages", [])]
        self.messages = stored_to_ui_messages(stored)
        return self.messages

    async def send_message(self, text: str) -> bool:
        """
        Send one turn and consume its stream.

        Blank text, a turn already in flight, or an exhausted quota make this
        a no-op.

        Returns:
            bool: True if a request was issued
        """
        if not text or not text.strip():
            return False
        if not self.can_send:
            logger.debug("Send ignored: session busy or rate limited")
            return False

        user_message = text_message(f"temp-{uuid.uuid4()}", "user", text)
        self.messages.append(user_message)
        self.error = None
        self._stop_requested = False
        self._set_status(SessionStatus.SUBMITTED)

        self._turn_task = asyncio.ensure_future(self._run_turn(user_message))
        try:
            await self._turn_task
        except asyncio.CancelledError:
            if not self._stop_requested:
                raise
            logger.info("Turn stopped by user")
            self._set_status(SessionStatus.READY)
        finally:
            self._turn_task = None
            self._schedule_invalidation()
        return True

    def stop(self) -> bool:
        """Abort the in-flight stream; text received so far stays in the list."""
        if self._turn_task is None or self._turn_task.done():
            return False
        self._stop_requested = True
        self._turn_task.cancel()
        return True

    async def _run_turn(self, user_message: UIMessage) -> None:
        payload = {
            "messages": [
                m.model_dump(exclude_none=True) for m in self.messages
                if not m.id.startswith(ERROR_ID_PREFIX)
            ],
            "characterSlug": self.character_slug,
        }
        if self.conversation_id.get():
            payload["conversationId"] = self.conversation_id.get()
        if self.model.get():
            payload["model"] = self.model.get()

        try:
            async with self.client.stream("POST", self.chat_path, json=payload) as response:
                if response.status_code != 200:
                    await response.aread()
                    self._handle_rejection(response)
                    return

                self._capture_ids(response, user_message)

                assistant_message = text_message(f"temp-{uuid.uuid4()}", "assistant", "")
                async for delta in response.aiter_text():
                    if not delta:
                        continue
                    if self._status is SessionStatus.SUBMITTED:
                        self.messages.append(assistant_message)
                        self._set_status(SessionStatus.STREAMING)
                    assistant_message.parts[0].text += delta

            self._set_status(SessionStatus.READY)
        except httpx.HTTPError as e:
            logger.warning(f"Chat stream failed: {str(e)}")
            self._fail(str(e) or type(e).__name__)

    def _capture_ids(self, response: httpx.Response, user_message: UIMessage) -> None:
        conversation_id = response.headers.get("x-conversation-id")
        if conversation_id and not self.conversation_id.get():
            self.conversation_id.set(conversation_id)
            logger.info(f"Conversation created: {conversation_id}")
            if self.on_conversation_created:
                self.on_conversation_created(conversation_id)

        server_id = response.headers.get("x-user-message-id")
        if server_id:
            self._reconcile_message_id(user_message.id, server_id)

    def _reconcile_message_id(self, temp_id: str, server_id: str) -> None:
        """Swap an optimistic id for the stored one. Safe to repeat."""
        for message in self.messages:
            if message.id == temp_id:
                message.id = server_id

    def _handle_rejection(self, response: httpx.Response) -> None:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        error = body.get("error") or f"Request failed with status {response.status_code}"

        if response.status_code == 429:
            self.rate_limit = RateLimitInfo(
                message_count=body.get("message_count", 0),
                daily_limit=body.get("daily_limit", 0),
            )
            self.error = error
            self._set_status(SessionStatus.ERROR)
            logger.info(f"Daily limit reached: {self.rate_limit}")
            return

        logger.warning(f"Chat request rejected: {response.status_code} {error}")
        self._fail(error)

    def _fail(self, error: str) -> None:
        self.error = error
        self.messages.append(text_message(f"{ERROR_ID_PREFIX}{uuid.uuid4()}", "assistant", ERROR_REPLY))
        self._set_status(SessionStatus.ERROR)

    def _schedule_invalidation(self) -> None:
        """Invalidate the conversation list now and again after the delay."""
        if self.cache is None:
            return
        self.cache.invalidate()
        loop = asyncio.get_running_loop()
        self._timers = [t for t in self._timers if not t.cancelled()]
        self._timers.append(loop.call_later(self.invalidation_delay, self.cache.invalidate))

    def close(self) -> None:
        """Cancel pending delayed invalidations."""
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
