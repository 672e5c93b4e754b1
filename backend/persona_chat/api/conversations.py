"""
Conversation API endpoints - list, read, rename and delete the caller's conversations.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ..models import Conversation, ConversationUpdate, ConversationWithMessages
from ..storage import ChatStore
from ..utils.auth import get_current_user_id
from .deps import get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")


@router.get("", response_model=List[Conversation])
async def list_conversations(
    user_id: str = Depends(get_current_user_id),
    store: ChatStore = Depends(get_store)
):
    """List the caller's conversations, most recently active first."""
    return await store.list_conversations(user_id)


@router.get("/{conversation_id}", response_model=ConversationWithMessages)
async def get_conversation(
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ChatStore = Depends(get_store)
):
    """
    Get a conversation with its messages in creation order.

    Raises:
        HTTPException: 404 if absent or owned by someone else
    """
    conversation = await store.get_conversation(conversation_id, user_id)
    if conversation is None:
        raise _not_found()

    messages = await store.list_messages(conversation_id)
    return ConversationWithMessages(**conversation.model_dump(), messages=messages)


@router.patch("/{conversation_id}", response_model=Conversation)
async def rename_conversation(
    conversation_id: str,
    update: ConversationUpdate,
    user_id: str = Depends(get_current_user_id),
    store: ChatStore = Depends(get_store)
):
    """Rename a conversation owned by the caller."""
    updated = await store.update_conversation_title(conversation_id, update.title, user_id=user_id)
    if not updated:
        raise _not_found()

    logger.info(
        f"Conversation renamed: {conversation_id}",
        extra={"extra_fields": {"user_id": user_id, "conversation_id": conversation_id}}
    )
    return await store.get_conversation(conversation_id, user_id)


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ChatStore = Depends(get_store)
):
    """Delete a conversation and all of its messages."""
    deleted = await store.delete_conversation(conversation_id, user_id)
    if not deleted:
        raise _not_found()

    logger.info(
        f"Conversation deleted: {conversation_id}",
        extra={"extra_fields": {"user_id": user_id, "conversation_id": conversation_id}}
    )
