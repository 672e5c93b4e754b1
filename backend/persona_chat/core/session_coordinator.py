"""
Session Coordinator - server side of one chat turn.

A turn is validated and prepared by ``SessionCoordinator.handle_turn`` in a
fixed order (auth, quota, schema, character, conversation), the user message
is persisted, and only then is a ``ChatTurn`` handed back whose ``stream()``
calls the completion provider. Every step before streaming fails fast with
no partial writes; once streaming starts the user message is never rolled
back, and the assistant message is saved only if the stream runs to its end.
"""

import json
import logging
from enum import Enum
from typing import Any, AsyncIterator, List, Optional, Tuple

from pydantic import ValidationError

from ..llm.base import LLMMessage, LLMProvider
from ..llm.smoothing import smooth_stream
from ..models import ChatRequest, Conversation, Message
from ..storage import ChatStore
from .characters import Character, get_character
from .errors import (
    InvalidRequest,
    NotFound,
    QuotaUnavailable,
    RateLimited,
    StorageError,
    Unauthorized,
    UpstreamFailure,
)
from .logging_config import TurnLoggerAdapter
from .message_parts import first_user_text, latest_user_text, placeholder_title, ui_to_llm_messages
from .title_generator import TitleGenerator, should_generate_title
from .usage import UsageLedger

logger = logging.getLogger(__name__)


class TurnState(str, Enum):
    AUTHENTICATING = "authenticating"
    QUOTA_CHECKING = "quota_checking"
    VALIDATING = "validating"
    RESOLVING_CONVERSATION = "resolving_conversation"
    PERSISTING_USER_MESSAGE = "persisting_user_message"
    READY_TO_STREAM = "ready_to_stream"
    STREAMING = "streaming"
    PERSISTING_ASSISTANT_MESSAGE = "persisting_assistant_message"
    TRIGGERING_TITLE = "triggering_title"
    DONE = "done"
    ABORTED = "aborted"
    FAILED = "failed"


class ChatTurn:
    """
    A validated turn whose user message is already stored.

    Iterate ``stream()`` to receive assistant text. Closing the stream early
    leaves the turn ABORTED with no assistant message.
    """

    def __init__(
        self,
        coordinator: "SessionCoordinator",
        character: Character,
        conversation: Conversation,
        is_new_conversation: bool,
        user_message: Message,
        llm_messages: List[LLMMessage],
        model: str,
        log: TurnLoggerAdapter
    ):
        self._coordinator = coordinator
        self.character = character
        self.conversation = conversation
        self.is_new_conversation = is_new_conversation
        self.title_at_start = conversation.title
        self.user_message = user_message
        self.llm_messages = llm_messages
        self.model = model
        self.state = TurnState.READY_TO_STREAM
        self.assistant_message_id: Optional[str] = None
        self._log = log
        self._started = False
        self._completed = False

    @property
    def conversation_id(self) -> str:
        return self.conversation.id

    @property
    def user_message_id(self) -> str:
        return self.user_message.id

    @property
    def user_text(self) -> str:
        return self.user_message.content

    async def stream(self) -> AsyncIterator[str]:
        """
        Yield assistant text deltas from the completion provider.

        Raises:
            UpstreamFailure: The provider is missing or failed mid-stream
        """
        if self._started:
            raise RuntimeError("Turn has already been streamed")
        self._started = True
        self.state = TurnState.STREAMING

        provider = self._coordinator.llm_provider
        if provider is None:
            self.state = TurnState.FAILED
            self._log.error("No completion provider configured")
            raise UpstreamFailure("LLM provider not configured")

        upstream = provider.chat_completion_stream(self.llm_messages, model=self.model)
        source = upstream
        if self._coordinator.stream_smoothing:
            source = smooth_stream(upstream, self._coordinator.stream_chunk_delay_ms)

        chunks: List[str] = []
        finished = False
        try:
            async for delta in source:
                chunks.append(delta)
                yield delta
            finished = True
        except Exception as e:
            self.state = TurnState.FAILED
            self._log.error(f"Completion stream failed: {str(e)}", exc_info=True)
            raise UpstreamFailure() from e
        finally:
            if not finished and self.state is TurnState.STREAMING:
                # Closed by the consumer (client stop / disconnect)
                self.state = TurnState.ABORTED
                self._log.info(
                    f"Stream aborted after {sum(len(c) for c in chunks)} chars; assistant message not saved"
                )
            if not finished:
                await self._close_source(source, upstream)

        await self.complete("".join(chunks))

    async def _close_source(self, *generators: Any) -> None:
        """Release the provider stream (and its smoothing wrapper) after an abort or failure."""
        for generator in generators:
            aclose = getattr(generator, "aclose", None)
            if aclose is None:
                continue
            try:
                await aclose()
            except Exception as e:
                self._log.warning(f"Failed to close completion stream: {str(e)}")

    async def complete(self, text: str) -> bool:
        """
        Persist the assistant reply and trigger title generation.

        Runs at most once per turn; later calls return False. Storage
        failures are logged, not raised.
        """
        if self._completed:
            self._log.warning("Completion fired twice; ignoring duplicate")
            return False
        self._completed = True

        store = self._coordinator.store
        self.state = TurnState.PERSISTING_ASSISTANT_MESSAGE
        try:
            message = await store.add_message(self.conversation_id, "assistant", text)
            self.assistant_message_id = message.id
            await store.touch_conversation(self.conversation_id)
        except Exception as e:
            self._log.error(f"Failed to save assistant message: {str(e)}", exc_info=True)

        self.state = TurnState.TRIGGERING_TITLE
        await self._trigger_title(text)

        self.state = TurnState.DONE
        self._log.info(f"Turn completed: {len(text)} chars")
        return True

    async def _trigger_title(self, assistant_text: str) -> None:
        titles = self._coordinator.title_generator
        if titles is None:
            return
        try:
            if self.is_new_conversation:
                fire = True
            else:
                messages = await self._coordinator.store.list_messages(self.conversation_id)
                first_text = first_user_text(messages)
                mechanical = (
                    placeholder_title(first_text, self._coordinator.placeholder_title_length)
                    if first_text is not None else None
                )
                fire = should_generate_title(
                    False,
                    len(messages),
                    self.title_at_start,
                    mechanical,
                    self._coordinator.title_refresh_max_messages,
                )
            if fire:
                titles.schedule(self.conversation_id, self.user_text, assistant_text)
                self._log.debug("Title generation scheduled")
        except Exception as e:
            self._log.warning(f"Skipping title generation: {str(e)}")


class SessionCoordinator:
    """Validates and prepares chat turns."""

    def __init__(
        self,
        store: ChatStore,
        usage_ledger: UsageLedger,
        llm_provider: Optional[LLMProvider],
        title_generator: Optional[TitleGenerator] = None,
        allowed_models: Optional[List[str]] = None,
        default_model: str = "google/gemini-2.0-flash-001",
        placeholder_title_length: int = 50,
        title_refresh_max_messages: int = 6,
        stream_smoothing: bool = False,
        stream_chunk_delay_ms: int = 10
    ):
        self.store = store
        self.usage_ledger = usage_ledger
        self.llm_provider = llm_provider
        self.title_generator = title_generator
        self.allowed_models = allowed_models or [default_model]
        self.default_model = default_model
        self.placeholder_title_length = placeholder_title_length
        self.title_refresh_max_messages = title_refresh_max_messages
        self.stream_smoothing = stream_smoothing
        self.stream_chunk_delay_ms = stream_chunk_delay_ms

    async def handle_turn(self, user_id: Optional[str], payload: Any) -> ChatTurn:
        """
        Run every pre-stream step of a turn.

        Args:
            user_id: Caller resolved from request credentials, or None
            payload: Decoded JSON request body (None if it wasn't valid JSON)

        Returns:
            ChatTurn: Ready to stream, with the user message stored

        Raises:
            Unauthorized, QuotaUnavailable, RateLimited, InvalidRequest,
            NotFound, StorageError
        """
        log = TurnLoggerAdapter(logger, {"user_id": user_id, "conversation_id": None})

        self._advance(log, TurnState.AUTHENTICATING)
        await self._authenticate(user_id, log)

        self._advance(log, TurnState.QUOTA_CHECKING)
        await self._check_quota(user_id, log)

        self._advance(log, TurnState.VALIDATING)
        request, user_text, model = self._validate(payload)

        character = get_character(request.character_slug)
        if character is None:
            log.info(f"Unknown character: {request.character_slug}")
            raise NotFound("Character not found")

        self._advance(log, TurnState.RESOLVING_CONVERSATION)
        conversation, is_new = await self._resolve_conversation(user_id, request, user_text, log)
        log.extra["conversation_id"] = conversation.id

        self._advance(log, TurnState.PERSISTING_USER_MESSAGE)
        user_message = await self._persist_user_message(conversation, is_new, user_text, log)

        llm_messages = [LLMMessage.text("system", character.system_prompt)]
        llm_messages.extend(ui_to_llm_messages(request.messages))

        log.info(
            f"Turn prepared: character={character.slug}, model={model}, "
            f"new_conversation={is_new}, history={len(llm_messages) - 1} messages"
        )
        return ChatTurn(
            coordinator=self,
            character=character,
            conversation=conversation,
            is_new_conversation=is_new,
            user_message=user_message,
            llm_messages=llm_messages,
            model=model,
            log=log,
        )

    async def _authenticate(self, user_id: Optional[str], log: TurnLoggerAdapter) -> None:
        """The token must name a user that still exists."""
        if not user_id:
            raise Unauthorized()
        try:
            user = await self.store.get_user(user_id)
        except Exception as e:
            log.error(f"User lookup failed: {str(e)}", exc_info=True)
            raise StorageError("Failed to load user") from e
        if user is None:
            log.info("Token names an unknown user")
            raise Unauthorized()

    @staticmethod
    def _advance(log: TurnLoggerAdapter, state: TurnState) -> None:
        log.debug(f"Turn state: {state.value}")

    async def _check_quota(self, user_id: str, log: TurnLoggerAdapter) -> None:
        try:
            usage = await self.usage_ledger.get_daily_usage(user_id)
        except Exception as e:
            log.error(f"Usage check failed: {str(e)}", exc_info=True)
            raise QuotaUnavailable() from e

        if usage.remaining <= 0:
            log.info(f"Daily limit reached: {usage.message_count}/{usage.daily_limit}")
            raise RateLimited(usage.message_count, usage.daily_limit)

    def _validate(self, payload: Any) -> Tuple[ChatRequest, str, str]:
        try:
            request = ChatRequest.model_validate(payload)
        except ValidationError as e:
            raise InvalidRequest(details=json.loads(e.json(include_url=False))) from e

        if request.model is not None and request.model not in self.allowed_models:
            raise InvalidRequest(details=[{
                "type": "enum",
                "loc": ["model"],
                "msg": f"Model must be one of: {', '.join(self.allowed_models)}",
                "input": request.model,
            }])

        user_text = latest_user_text(request.messages)
        if request.messages[-1].role != "user" or not user_text or not user_text.strip():
            raise InvalidRequest(details=[{
                "type": "value_error",
                "loc": ["messages"],
                "msg": "The last message must be a user message with text",
            }])

        return request, user_text, request.model or self.default_model

    async def _resolve_conversation(
        self,
        user_id: str,
        request: ChatRequest,
        user_text: str,
        log: TurnLoggerAdapter
    ) -> Tuple[Conversation, bool]:
        if request.conversation_id is None:
            title = placeholder_title(user_text, self.placeholder_title_length)
            try:
                conversation = await self.store.create_conversation(user_id, request.character_slug, title)
            except Exception as e:
                log.error(f"Failed to create conversation: {str(e)}", exc_info=True)
                raise StorageError("Failed to create conversation") from e
            return conversation, True

        try:
            conversation = await self.store.get_conversation(str(request.conversation_id), user_id)
        except Exception as e:
            log.error(f"Failed to load conversation: {str(e)}", exc_info=True)
            raise StorageError("Failed to load conversation") from e

        if conversation is None:
            # Same answer for "absent" and "someone else's"
            raise NotFound("Conversation not found")
        return conversation, False

    async def _persist_user_message(
        self,
        conversation: Conversation,
        is_new: bool,
        user_text: str,
        log: TurnLoggerAdapter
    ) -> Message:
        try:
            return await self.store.add_message(conversation.id, "user", user_text)
        except Exception as e:
            log.error(f"Failed to save user message: {str(e)}", exc_info=True)
            if is_new:
                await self._discard_conversation(conversation, log)
            raise StorageError("Failed to save message") from e

    async def _discard_conversation(self, conversation: Conversation, log: TurnLoggerAdapter) -> None:
        """Remove a conversation created by a turn that then failed to store its first message."""
        try:
            await self.store.delete_conversation(conversation.id, conversation.user_id)
        except Exception as e:
            log.warning(f"Could not remove empty conversation: {str(e)}")
