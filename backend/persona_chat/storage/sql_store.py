"""
SQLAlchemy implementation of the chat store.
Works against any async driver; SQLite (aiosqlite) is the default.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from ..models import Conversation, Message, UserInDB
from .database import create_session_factory
from .interface import ChatStore
from .tables import (
    ConversationRow,
    FavoriteCharacterRow,
    MessageRow,
    MessageUsageRow,
    UserRow,
    utcnow,
)

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything is stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_user(row: UserRow) -> UserInDB:
    return UserInDB(
        id=row.id,
        username=row.username,
        email=row.email,
        display_name=row.display_name,
        hashed_password=row.hashed_password,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


def _to_conversation(row: ConversationRow) -> Conversation:
    return Conversation(
        id=row.id,
        user_id=row.user_id,
        character_slug=row.character_slug,
        title=row.title,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


def _to_message(row: MessageRow) -> Message:
    return Message(
        id=row.id,
        conversation_id=row.conversation_id,
        role=row.role,
        content=row.content,
        created_at=_as_utc(row.created_at),
    )


class SQLChatStore(ChatStore):
    """
    Relational chat store backed by an async SQLAlchemy engine.
    Each method runs in its own short transaction.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = create_session_factory(engine)

    # Users

    async def create_user(self, username, hashed_password, email=None, display_name=None) -> UserInDB:
        row = UserRow(
            username=username,
            hashed_password=hashed_password,
            email=email,
            display_name=display_name,
        )
        async with self._session_factory() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ValueError(f"Username already registered: {username}") from e
            return _to_user(row)

    async def get_user(self, user_id: str) -> Optional[UserInDB]:
        async with self._session_factory() as session:
            row = await session.get(UserRow, user_id)
            return _to_user(row) if row else None

    async def get_user_by_username(self, username: str) -> Optional[UserInDB]:
        async with self._session_factory() as session:
            result = await session.execute(select(UserRow).where(UserRow.username == username))
            row = result.scalar_one_or_none()
            return _to_user(row) if row else None

    async def update_user(self, user_id, display_name=None, hashed_password=None) -> Optional[UserInDB]:
        async with self._session_factory() as session:
            row = await session.get(UserRow, user_id)
            if row is None:
                return None
            if display_name is not None:
                row.display_name = display_name
            if hashed_password is not None:
                row.hashed_password = hashed_password
            row.updated_at = utcnow()
            await session.commit()
            return _to_user(row)

    # Conversations

    async def create_conversation(self, user_id, character_slug, title=None) -> Conversation:
        now = utcnow()
        row = ConversationRow(
            user_id=user_id,
            character_slug=character_slug,
            title=title,
            created_at=now,
            updated_at=now,
        )
        async with self._session_factory() as session:
            session.add(row)
            await session.commit()
            logger.debug(f"Conversation created: {row.id} (user={user_id}, character={character_slug})")
            return _to_conversation(row)

    async def get_conversation(self, conversation_id: str, user_id: str) -> Optional[Conversation]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ConversationRow).where(
                    ConversationRow.id == conversation_id,
                    ConversationRow.user_id == user_id,
                )
            )
            row = result.scalar_one_or_none()
            return _to_conversation(row) if row else None

    async def list_conversations(self, user_id: str) -> List[Conversation]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ConversationRow)
                .where(ConversationRow.user_id == user_id)
                .order_by(ConversationRow.updated_at.desc())
            )
            return [_to_conversation(row) for row in result.scalars()]

    async def update_conversation_title(self, conversation_id, title, user_id=None) -> bool:
        stmt = update(ConversationRow).where(ConversationRow.id == conversation_id)
        if user_id is not None:
            stmt = stmt.where(ConversationRow.user_id == user_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt.values(title=title))
            await session.commit()
            return result.rowcount > 0

    async def touch_conversation(self, conversation_id: str) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(ConversationRow)
                .where(ConversationRow.id == conversation_id)
                .values(updated_at=utcnow())
            )
            await session.commit()

    async def delete_conversation(self, conversation_id: str, user_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(ConversationRow).where(
                    ConversationRow.id == conversation_id,
                    ConversationRow.user_id == user_id,
                )
            )
            await session.commit()
            return result.rowcount > 0

    # Messages

    async def add_message(self, conversation_id: str, role: str, content: str) -> Message:
        now = utcnow()
        row = MessageRow(conversation_id=conversation_id, role=role, content=content, created_at=now)
        async with self._session_factory() as session:
            if role == "user":
                owner_id = await session.scalar(
                    select(ConversationRow.user_id).where(ConversationRow.id == conversation_id)
                )
                if owner_id is None:
                    raise LookupError(f"Conversation not found: {conversation_id}")
                session.add(MessageUsageRow(user_id=owner_id, created_at=now))
            session.add(row)
            await session.commit()
            return _to_message(row)

    async def list_messages(self, conversation_id: str) -> List[Message]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(MessageRow)
                .where(MessageRow.conversation_id == conversation_id)
                .order_by(MessageRow.created_at.asc())
            )
            return [_to_message(row) for row in result.scalars()]

    # Usage

    async def count_user_messages_since(self, user_id: str, since: datetime) -> int:
        async with self._session_factory() as session:
            count = await session.scalar(
                select(func.count(MessageUsageRow.id)).where(
                    MessageUsageRow.user_id == user_id,
                    MessageUsageRow.created_at >= since,
                )
            )
            return int(count or 0)

    async def list_user_message_times_since(self, user_id: str, since: datetime) -> List[datetime]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(MessageUsageRow.created_at).where(
                    MessageUsageRow.user_id == user_id,
                    MessageUsageRow.created_at >= since,
                )
            )
            return [_as_utc(value) for value in result.scalars()]

    # Favorites

    async def list_favorites(self, user_id: str) -> List[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(FavoriteCharacterRow.character_slug)
                .where(FavoriteCharacterRow.user_id == user_id)
                .order_by(FavoriteCharacterRow.created_at.asc())
            )
            return list(result.scalars())

    async def add_favorite(self, user_id: str, character_slug: str) -> bool:
        async with self._session_factory() as session:
            session.add(FavoriteCharacterRow(user_id=user_id, character_slug=character_slug))
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                return False
            return True

    async def remove_favorite(self, user_id: str, character_slug: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(FavoriteCharacterRow).where(
                    FavoriteCharacterRow.user_id == user_id,
                    FavoriteCharacterRow.character_slug == character_slug,
                )
            )
            await session.commit()
            return result.rowcount > 0
