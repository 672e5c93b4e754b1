"""
Usage Ledger - per-user daily message quota and rolling usage statistics.

Counts come from the store's message usage log; a day is a UTC calendar day.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..models import UsageResponse, UsageStatsResponse
from ..storage import ChatStore

logger = logging.getLogger(__name__)


def utc_day_start(now: Optional[datetime] = None) -> datetime:
    """Midnight UTC of the day containing ``now``."""
    now = now or datetime.now(timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def next_reset(now: Optional[datetime] = None) -> datetime:
    """When the daily quota resets (next UTC midnight)."""
    return utc_day_start(now) + timedelta(days=1)


class UsageLedger:
    """Reads usage counts for quota enforcement and the usage endpoints."""

    def __init__(self, store: ChatStore, daily_limit: int = 15):
        self.store = store
        self.daily_limit = daily_limit

    async def get_daily_usage(self, user_id: str, now: Optional[datetime] = None) -> UsageResponse:
        """
        Count today's user messages for ``user_id``.

        Args:
            user_id: Caller
            now: Reference time (defaults to the current time)

        Returns:
            UsageResponse: ``{message_count, daily_limit, remaining}``
        """
        count = await self.store.count_user_messages_since(user_id, utc_day_start(now))
        return UsageResponse(
            message_count=count,
            daily_limit=self.daily_limit,
            remaining=max(self.daily_limit - count, 0),
        )

    async def get_usage_stats(self, user_id: str, now: Optional[datetime] = None) -> UsageStatsResponse:
        """
        Aggregate message counts over today, the last 7 days and the last 30 days.

        The 7- and 30-day windows are measured back from today's UTC midnight,
        so they always include today.
        """
        today_start = utc_day_start(now)
        week_ago = today_start - timedelta(days=7)
        month_ago = today_start - timedelta(days=30)

        times = await self.store.list_user_message_times_since(user_id, month_ago)

        today_count = sum(1 for t in times if t >= today_start)
        week_count = sum(1 for t in times if t >= week_ago)

        return UsageStatsResponse(
            today_count=today_count,
            week_count=week_count,
            month_count=len(times),
            daily_limit=self.daily_limit,
        )
