"""
Message conversion helpers shared by the turn coordinator and the client
session manager: UI messages (parts-based), stored messages, and LLM messages.
"""

from typing import Iterable, List, Optional, Sequence

from ..llm.base import LLMMessage
from ..models import Message, MessagePart, UIMessage


def extract_text(message: UIMessage) -> str:
    """Concatenate the text parts of a UI message, ignoring other part types."""
    return "".join(p.text or "" for p in message.parts if p.type == "text")


def text_message(message_id: str, role: str, text: str) -> UIMessage:
    return UIMessage(id=message_id, role=role, parts=[MessagePart(type="text", text=text)])


def stored_to_ui_messages(messages: Iterable[Message]) -> List[UIMessage]:
    """Convert stored messages to the UI format used by the client session."""
    return [text_message(m.id, m.role, m.content) for m in messages]


def ui_to_llm_messages(messages: Iterable[UIMessage]) -> List[LLMMessage]:
    """
    Convert client history to provider messages.

    Client-supplied system messages are dropped (the character prompt is the
    only system prompt) and so are messages without text.
    """
    converted = []
    for message in messages:
        if message.role == "system":
            continue
        text = extract_text(message)
        if not text.strip():
            continue
        converted.append(LLMMessage.text(message.role, text))
    return converted


def latest_user_text(messages: Sequence[UIMessage]) -> Optional[str]:
    """Text of the last user message, or None if there is none."""
    for message in reversed(messages):
        if message.role == "user":
            return extract_text(message)
    return None


def first_user_text(messages: Iterable[Message]) -> Optional[str]:
    for message in messages:
        if message.role == "user":
            return message.content
    return None


def placeholder_title(text: str, length: int = 50) -> str:
    """Mechanical title used until a generated one replaces it."""
    return text[:length]
