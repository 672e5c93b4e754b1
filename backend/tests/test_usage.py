"""
Tests for the usage ledger.
"""

import pytest
from datetime import datetime, timedelta, timezone

from persona_chat.core.usage import UsageLedger, next_reset, utc_day_start
from persona_chat.storage import create_session_factory
from persona_chat.storage.tables import MessageUsageRow

NOW = datetime(2024, 5, 15, 13, 30, tzinfo=timezone.utc)


async def seed_usage(engine, user_id, *times):
    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        session.add_all([MessageUsageRow(user_id=user_id, created_at=t) for t in times])
        await session.commit()


class TestDayBoundaries:
    """UTC day helpers."""

    def test_day_start(self):
        assert utc_day_start(NOW) == datetime(2024, 5, 15, tzinfo=timezone.utc)

    def test_day_start_converts_to_utc(self):
        local = datetime(2024, 5, 15, 1, 0, tzinfo=timezone(timedelta(hours=5)))
        assert utc_day_start(local) == datetime(2024, 5, 14, tzinfo=timezone.utc)

    def test_next_reset(self):
        assert next_reset(NOW) == datetime(2024, 5, 16, tzinfo=timezone.utc)


class TestDailyUsage:
    """Quota reads."""

    @pytest.mark.asyncio
    async def test_defaults_without_rows(self, store, user):
        usage = await UsageLedger(store).get_daily_usage(user.id, now=NOW)
        assert usage.model_dump() == {"message_count": 0, "daily_limit": 15, "remaining": 15}

    @pytest.mark.asyncio
    async def test_counts_only_today(self, engine, store, user):
        await seed_usage(
            engine, user.id,
            NOW - timedelta(hours=1),
            NOW.replace(hour=0, minute=0),
            NOW - timedelta(days=1),
        )

        usage = await UsageLedger(store, daily_limit=15).get_daily_usage(user.id, now=NOW)
        assert usage.message_count == 2
        assert usage.remaining == 13

    @pytest.mark.asyncio
    async def test_remaining_never_negative(self, engine, store, user):
        await seed_usage(engine, user.id, *[NOW - timedelta(minutes=i) for i in range(5)])

        usage = await UsageLedger(store, daily_limit=3).get_daily_usage(user.id, now=NOW)
        assert usage.message_count == 5
        assert usage.remaining == 0

    @pytest.mark.asyncio
    async def test_other_users_not_counted(self, engine, store, user, other_user):
        await seed_usage(engine, other_user.id, NOW - timedelta(minutes=1))

        usage = await UsageLedger(store).get_daily_usage(user.id, now=NOW)
        assert usage.message_count == 0


class TestUsageStats:
    """Rolling windows."""

    @pytest.mark.asyncio
    async def test_windows(self, engine, store, user, other_user):
        today_start = utc_day_start(NOW)
        await seed_usage(
            engine, user.id,
            NOW - timedelta(minutes=5),          # today
            today_start - timedelta(days=3),     # this week
            today_start - timedelta(days=7),     # week boundary (inclusive)
            today_start - timedelta(days=20),    # this month
            today_start - timedelta(days=45),    # too old
        )
        await seed_usage(engine, other_user.id, NOW - timedelta(minutes=5))

        stats = await UsageLedger(store).get_usage_stats(user.id, now=NOW)
        assert stats.today_count == 1
        assert stats.week_count == 3
        assert stats.month_count == 4
        assert stats.daily_limit == 15
