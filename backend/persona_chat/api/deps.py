"""
Request dependencies - services shared through ``app.state``.

The application lifespan builds one store, provider and title generator per
process; routes reach them through these dependencies.
"""

from typing import Optional

from fastapi import Depends, Request

from ..config import settings
from ..core import SessionCoordinator, TitleGenerator, UsageLedger
from ..llm.base import LLMProvider
from ..storage import ChatStore


def get_store(request: Request) -> ChatStore:
    return request.app.state.store


def get_llm_provider(request: Request) -> Optional[LLMProvider]:
    return getattr(request.app.state, "llm_provider", None)


def get_title_generator(request: Request) -> Optional[TitleGenerator]:
    return getattr(request.app.state, "title_generator", None)


def get_usage_ledger(store: ChatStore = Depends(get_store)) -> UsageLedger:
    return UsageLedger(store, daily_limit=settings.daily_message_limit)


def get_session_coordinator(
    store: ChatStore = Depends(get_store),
    usage_ledger: UsageLedger = Depends(get_usage_ledger),
    llm_provider: Optional[LLMProvider] = Depends(get_llm_provider),
    title_generator: Optional[TitleGenerator] = Depends(get_title_generator),
) -> SessionCoordinator:
    return SessionCoordinator(
        store=store,
        usage_ledger=usage_ledger,
        llm_provider=llm_provider,
        title_generator=title_generator,
        allowed_models=settings.allowed_models,
        default_model=settings.default_model,
        placeholder_title_length=settings.placeholder_title_length,
        title_refresh_max_messages=settings.title_refresh_max_messages,
        stream_smoothing=settings.stream_smoothing,
        stream_chunk_delay_ms=settings.stream_chunk_delay_ms,
    )
