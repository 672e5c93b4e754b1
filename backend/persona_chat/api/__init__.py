"""API module."""

from .auth import router as auth_router
from .chat import router as chat_router
from .conversations import router as conversations_router
from .usage import router as usage_router
from .characters import router as catalog_router

__all__ = ['auth_router', 'chat_router', 'conversations_router', 'usage_router', 'catalog_router']
