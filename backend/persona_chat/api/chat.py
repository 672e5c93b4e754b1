"""
Chat API endpoint - one streamed chat turn per request.
"""

import json
import logging
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from ..core import SessionCoordinator
from ..utils.auth import get_optional_user_id
from .deps import get_session_coordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


async def _prepend(first: Optional[str], rest: AsyncIterator[str]) -> AsyncIterator[str]:
    try:
        if first:
            yield first
        async for delta in rest:
            yield delta
    finally:
        # Client went away: close the turn stream so it is marked aborted now
        await rest.aclose()


@router.post("/chat")
async def chat(
    request: Request,
    user_id: Optional[str] = Depends(get_optional_user_id),
    coordinator: SessionCoordinator = Depends(get_session_coordinator)
):
    """
    Run a chat turn and stream the assistant reply as plain text.

    The body is read raw so auth and quota are checked before it is
    validated. Domain errors raised here are rendered by the application's
    ``ChatError`` handler.

    Returns:
        StreamingResponse: ``text/plain`` deltas, with ``X-Conversation-Id``
        and ``X-User-Message-Id`` headers
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = None

    turn = await coordinator.handle_turn(user_id, payload)

    # Pull the first delta before headers go out so an early provider
    # failure is still a plain 502 response
    stream = turn.stream()
    try:
        first = await stream.__anext__()
    except StopAsyncIteration:
        first = None

    return StreamingResponse(
        _prepend(first, stream),
        media_type="text/plain; charset=utf-8",
        headers={
            "X-Conversation-Id": turn.conversation_id,
            "X-User-Message-Id": turn.user_message_id,
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        }
    )
