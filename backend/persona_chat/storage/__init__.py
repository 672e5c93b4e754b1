"""Storage module - relational persistence for users, conversations, and messages."""

from .interface import ChatStore
from .sql_store import SQLChatStore
from .database import Base, create_engine, create_session_factory, init_models

__all__ = ['ChatStore', 'SQLChatStore', 'Base', 'create_engine', 'create_session_factory', 'init_models']
