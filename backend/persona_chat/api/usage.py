"""
Usage API endpoints - daily quota and rolling message statistics.
"""

from fastapi import APIRouter, Depends

from ..core import UsageLedger
from ..models import UsageResponse, UsageStatsResponse
from ..utils.auth import get_current_user_id
from .deps import get_usage_ledger

router = APIRouter(prefix="/api/usage", tags=["usage"])


@router.get("", response_model=UsageResponse)
async def get_usage(
    user_id: str = Depends(get_current_user_id),
    ledger: UsageLedger = Depends(get_usage_ledger)
):
    """Today's message count, the daily limit and what remains of it."""
    return await ledger.get_daily_usage(user_id)


@router.get("/stats", response_model=UsageStatsResponse)
async def get_usage_stats(
    user_id: str = Depends(get_current_user_id),
    ledger: UsageLedger = Depends(get_usage_ledger)
):
    """Message counts for today, the last 7 days and the last 30 days."""
    return await ledger.get_usage_stats(user_id)
