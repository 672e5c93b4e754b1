"""
Conversation list cache - the sidebar's copy of ``GET /api/conversations``.
"""

import logging
from typing import List, Optional

import httpx

from ..models import Conversation

logger = logging.getLogger(__name__)


class ConversationListCache:
    """
    Lazily fetched conversation list.

    ``invalidate()`` only marks the copy stale; the next ``get()`` refetches.
    """

    def __init__(self, client: httpx.AsyncClient, path: str = "/api/conversations"):
        self._client = client
        self.path = path
        self._items: Optional[List[Conversation]] = None
        self.stale = True
        self.invalidation_count = 0

    def invalidate(self) -> None:
        self.stale = True
        self.invalidation_count += 1
        logger.debug(f"Conversation list invalidated ({self.invalidation_count})")

    async def get(self) -> List[Conversation]:
        """
        Return the cached list, refetching it if stale.

        Raises:
            httpx.HTTPStatusError: If the server rejects the request
        """
        if self.stale or self._items is None:
            response = await self._client.get(self.path)
            response.raise_for_status()
            self._items = [Conversation.model_validate(item) for item in response.json()]
            self.stale = False
        return self._items
