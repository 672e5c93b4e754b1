"""
Chat Store Interface - Abstract base class for the relational chat store.
Implementations own persistence, cascade deletes, and creation-time ordering.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..models import Conversation, Message, UserInDB


class ChatStore(ABC):
    """
    Abstract store for users, conversations, messages, usage, and favorites.
    All methods raise on infrastructure failure; "not found" is reported
    through ``None`` / ``False`` return values.
    """

    # Users

    @abstractmethod
    async def create_user(
        self,
        username: str,
        hashed_password: str,
        email: Optional[str] = None,
        display_name: Optional[str] = None
    ) -> UserInDB:
        """Create a user. Raises ValueError if the username is taken."""
        pass

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[UserInDB]:
        pass

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[UserInDB]:
        pass

    @abstractmethod
    async def update_user(
        self,
        user_id: str,
        display_name: Optional[str] = None,
        hashed_password: Optional[str] = None
    ) -> Optional[UserInDB]:
        pass

    # Conversations

    @abstractmethod
    async def create_conversation(
        self,
        user_id: str,
        character_slug: str,
        title: Optional[str] = None
    ) -> Conversation:
        """
        Create a conversation owned by ``user_id``.

        Args:
            user_id: Owning user
            character_slug: Selected character
            title: Initial display title

        Returns:
            Conversation: The created row
        """
        pass

    @abstractmethod
    async def get_conversation(self, conversation_id: str, user_id: str) -> Optional[Conversation]:
        """
        Fetch a conversation filtered by both id and owner.

        Returns:
            Optional[Conversation]: None when absent or owned by another user
        """
        pass

    @abstractmethod
    async def list_conversations(self, user_id: str) -> List[Conversation]:
        """List a user's conversations, most recently active first."""
        pass

    @abstractmethod
    async def update_conversation_title(
        self,
        conversation_id: str,
        title: str,
        user_id: Optional[str] = None
    ) -> bool:
        """
        Overwrite a conversation title.

        Args:
            conversation_id: Conversation to update
            title: New title
            user_id: When given, only update if the conversation is owned by this user

        Returns:
            bool: True if a row was updated
        """
        pass

    @abstractmethod
    async def touch_conversation(self, conversation_id: str) -> None:
        """Set the conversation's last-activity timestamp to now."""
        pass

    @abstractmethod
    async def delete_conversation(self, conversation_id: str, user_id: str) -> bool:
        """Delete a conversation and, by cascade, all its messages."""
        pass

    # Messages

    @abstractmethod
    async def add_message(self, conversation_id: str, role: str, content: str) -> Message:
        """
        Append a message to a conversation.

        User messages also record a usage-log entry for the conversation's
        owner in the same transaction.
        """
        pass

    @abstractmethod
    async def list_messages(self, conversation_id: str) -> List[Message]:
        """List messages ordered by creation time."""
        pass

    # Usage

    @abstractmethod
    async def count_user_messages_since(self, user_id: str, since: datetime) -> int:
        pass

    @abstractmethod
    async def list_user_message_times_since(self, user_id: str, since: datetime) -> List[datetime]:
        pass

    # Favorites

    @abstractmethod
    async def list_favorites(self, user_id: str) -> List[str]:
        """Favorite character slugs, oldest first."""
        pass

    @abstractmethod
    async def add_favorite(self, user_id: str, character_slug: str) -> bool:
        """Returns False if it was already a favorite."""
        pass

    @abstractmethod
    async def remove_favorite(self, user_id: str, character_slug: str) -> bool:
        pass
