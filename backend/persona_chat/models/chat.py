"""
Chat Models - wire format of a turn request plus stored conversation/message records.
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessagePart(BaseModel):
    """
    One part of a UI message. Only ``text`` parts carry content the
    backend reads; other part types are accepted and ignored.
    """
    model_config = ConfigDict(extra="allow")

    type: str
    text: Optional[str] = None


class UIMessage(BaseModel):
    """A message as exchanged with the client session manager."""
    id: str
    role: Literal["user", "assistant", "system"]
    parts: List[MessagePart] = Field(default_factory=list)


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``."""
    model_config = ConfigDict(populate_by_name=True)

    messages: List[UIMessage] = Field(..., min_length=1)
    character_slug: str = Field(..., alias="characterSlug", min_length=1)
    conversation_id: Optional[uuid.UUID] = Field(None, alias="conversationId")
    model: Optional[str] = None


class Conversation(BaseModel):
    """Stored conversation record."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    character_slug: str
    title: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class Message(BaseModel):
    """Stored message record. Immutable once written."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    conversation_id: str
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime


class ConversationWithMessages(Conversation):
    messages: List[Message] = Field(default_factory=list)


class ConversationUpdate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)


class UsageResponse(BaseModel):
    message_count: int
    daily_limit: int
    remaining: int


class UsageStatsResponse(BaseModel):
    today_count: int
    week_count: int
    month_count: int
    daily_limit: int


class CharacterOut(BaseModel):
    slug: str
    name: str
    avatar_url: str
    description: str
    kickstart_messages: List[str]
    is_favorite: bool = False


class ModelOut(BaseModel):
    id: str
    name: str
    description: str
    is_default: bool = False
