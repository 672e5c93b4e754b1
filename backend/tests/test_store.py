"""
Tests for the SQL chat store.
"""

import pytest

from persona_chat.storage import SQLChatStore


class TestUsers:
    """User account persistence."""

    @pytest.mark.asyncio
    async def test_create_and_fetch_user(self, store: SQLChatStore):
        user = await store.create_user("carol", "hash", email="carol@example.com", display_name="Carol")

        assert user.id
        assert user.created_at.tzinfo is not None
        fetched = await store.get_user(user.id)
        assert fetched.username == "carol"
        assert fetched.hashed_password == "hash"
        by_name = await store.get_user_by_username("carol")
        assert by_name.id == user.id

    @pytest.mark.asyncio
    async def test_duplicate_username_raises(self, store, user):
        with pytest.raises(ValueError):
            await store.create_user("alice", "other-hash")

    @pytest.mark.asyncio
    async def test_update_user(self, store, user):
        updated = await store.update_user(user.id, display_name="Alice A.")
        assert updated.display_name == "Alice A."
        assert updated.hashed_password == user.hashed_password

    @pytest.mark.asyncio
    async def test_update_missing_user(self, store):
        assert await store.update_user("missing", display_name="x") is None


class TestConversations:
    """Conversation ownership, ordering and deletion."""

    @pytest.mark.asyncio
    async def test_get_conversation_requires_owner(self, store, user, other_user):
        conversation = await store.create_conversation(user.id, "nova", "Hello")

        assert (await store.get_conversation(conversation.id, user.id)).title == "Hello"
        assert await store.get_conversation(conversation.id, other_user.id) is None
        assert await store.get_conversation("does-not-exist", user.id) is None

    @pytest.mark.asyncio
    async def test_list_orders_by_last_activity(self, store, user, other_user):
        first = await store.create_conversation(user.id, "nova", "First")
        second = await store.create_conversation(user.id, "luna", "Second")
        await store.create_conversation(other_user.id, "zen", "Not mine")

        await store.touch_conversation(first.id)

        listed = await store.list_conversations(user.id)
        assert [c.id for c in listed] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_update_title_respects_owner(self, store, user, other_user):
        conversation = await store.create_conversation(user.id, "nova", "Old")

        assert await store.update_conversation_title(conversation.id, "Stolen", user_id=other_user.id) is False
        assert await store.update_conversation_title(conversation.id, "New", user_id=user.id) is True
        assert await store.update_conversation_title("missing", "New") is False
        assert (await store.get_conversation(conversation.id, user.id)).title == "New"

    @pytest.mark.asyncio
    async def test_delete_cascades_to_messages(self, store, user):
        conversation = await store.create_conversation(user.id, "nova", "Bye")
        await store.add_message(conversation.id, "user", "hi")
        await store.add_message(conversation.id, "assistant", "hello")

        assert await store.delete_conversation(conversation.id, user.id) is True
        assert await store.list_messages(conversation.id) == []
        assert await store.delete_conversation(conversation.id, user.id) is False

    @pytest.mark.asyncio
    async def test_delete_by_other_user_is_refused(self, store, user, other_user):
        conversation = await store.create_conversation(user.id, "nova", "Mine")
        assert await store.delete_conversation(conversation.id, other_user.id) is False
        assert await store.get_conversation(conversation.id, user.id) is not None


class TestMessages:
    """Message ordering and the usage log."""

    @pytest.mark.asyncio
    async def test_messages_ordered_by_creation(self, store, user):
        conversation = await store.create_conversation(user.id, "nova", "Order")
        for i in range(4):
            await store.add_message(conversation.id, "user" if i % 2 == 0 else "assistant", f"m{i}")

        messages = await store.list_messages(conversation.id)
        assert [m.content for m in messages] == ["m0", "m1", "m2", "m3"]
        assert [m.role for m in messages] == ["user", "assistant", "user", "assistant"]

    @pytest.mark.asyncio
    async def test_only_user_messages_are_counted(self, store, user):
        conversation = await store.create_conversation(user.id, "nova", "Count")
        message = await store.add_message(conversation.id, "user", "hi")
        await store.add_message(conversation.id, "assistant", "hello")

        assert await store.count_user_messages_since(user.id, message.created_at) == 1

    @pytest.mark.asyncio
    async def test_usage_survives_conversation_delete(self, store, user):
        conversation = await store.create_conversation(user.id, "nova", "Gone")
        message = await store.add_message(conversation.id, "user", "hi")
        await store.delete_conversation(conversation.id, user.id)

        assert await store.count_user_messages_since(user.id, message.created_at) == 1

    @pytest.mark.asyncio
    async def test_user_message_for_missing_conversation(self, store, user):
        with pytest.raises(LookupError):
            await store.add_message("missing", "user", "hi")


class TestFavorites:
    """Favorite characters."""

    @pytest.mark.asyncio
    async def test_add_list_remove(self, store, user):
        assert await store.add_favorite(user.id, "luna") is True
        assert await store.add_favorite(user.id, "zen") is True
        assert await store.add_favorite(user.id, "luna") is False

        assert await store.list_favorites(user.id) == ["luna", "zen"]

        assert await store.remove_favorite(user.id, "luna") is True
        assert await store.remove_favorite(user.id, "luna") is False
        assert await store.list_favorites(user.id) == ["zen"]
