"""
Title Generator - best-effort conversation titles produced in the background.

Generation runs detached from the request that triggered it. Every failure is
logged and dropped; nothing here may affect a chat turn.
"""

import asyncio
import logging
from typing import Optional, Set

from ..llm.base import LLMMessage, LLMProvider
from ..storage import ChatStore
from .errors import TitleGenerationFailure

logger = logging.getLogger(__name__)

TITLE_INSTRUCTION = (
    "Generate a short, descriptive title (2-5 words) for this conversation. "
    "Return only the title, no quotes or punctuation at the end."
)


def should_generate_title(
    is_new_conversation: bool,
    message_count: int,
    current_title: Optional[str],
    mechanical_title: Optional[str],
    max_messages: int = 6
) -> bool:
    """
    Decide whether a finished turn should (re)generate the title.

    Args:
        is_new_conversation: The conversation was created by this turn
        message_count: Messages now stored in the conversation
        current_title: Title recorded when the turn started
        mechanical_title: Prefix title derived from the first user message
        max_messages: Largest conversation still eligible for a refresh

    Returns:
        bool: True for new conversations, or short ones still carrying the
        mechanical prefix title
    """
    if is_new_conversation:
        return True
    if message_count > max_messages:
        return False
    return mechanical_title is not None and current_title == mechanical_title


class TitleGenerator:
    """Generates and stores conversation titles."""

    def __init__(
        self,
        store: ChatStore,
        llm_provider: Optional[LLMProvider],
        model: Optional[str] = None,
        max_length: int = 50,
        assistant_excerpt_length: int = 500
    ):
        self.store = store
        self.llm_provider = llm_provider
        self.model = model
        self.max_length = max_length
        self.assistant_excerpt_length = assistant_excerpt_length
        self._tasks: Set[asyncio.Task] = set()

    async def generate_title(self, conversation_id: str, user_text: str, assistant_text: str) -> Optional[str]:
        """
        Ask the provider for a title and write it to the conversation.

        Returns:
            The stored title, or None when nothing was written. Never raises.
        """
        try:
            if self.llm_provider is None:
                raise TitleGenerationFailure("LLM provider not configured")

            response = await self.llm_provider.chat_completion(
                [
                    LLMMessage.text("system", TITLE_INSTRUCTION),
                    LLMMessage.text(
                        "user",
                        f"User: {user_text}\nAssistant: {assistant_text[:self.assistant_excerpt_length]}"
                    ),
                ],
                temperature=0.3,
                max_tokens=20,
                model=self.model,
            )

            title = response.content.strip()[:self.max_length].strip()
            if not title:
                logger.warning(f"Empty title generated for conversation {conversation_id}, skipping update")
                return None

            updated = await self.store.update_conversation_title(conversation_id, title)
            if not updated:
                raise TitleGenerationFailure(f"Conversation {conversation_id} no longer exists")

            logger.info(
                f"Title updated: {title}",
                extra={"extra_fields": {"conversation_id": conversation_id, "title": title}}
            )
            return title
        except Exception as e:
            logger.error(
                f"Title generation failed for conversation {conversation_id}: {str(e)}",
                exc_info=not isinstance(e, TitleGenerationFailure),
                extra={"extra_fields": {"conversation_id": conversation_id, "error": str(e)}}
            )
            return None

    def schedule(self, conversation_id: str, user_text: str, assistant_text: str) -> asyncio.Task:
        """
        Start title generation without awaiting it.

        A reference is held until the task finishes.
        """
        task = asyncio.create_task(
            self.generate_title(conversation_id, user_text, assistant_text),
            name=f"title-{conversation_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def wait_idle(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight title tasks; cancel whatever is left after ``timeout``."""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        done, still_running = await asyncio.wait(tasks, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning(f"Cancelled {len(still_running)} pending title task(s)")
