"""SQLAlchemy async engine, session factory, and declarative base."""

from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    pass


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Build an async engine for the given URL.

    SQLite connections get foreign keys enabled so conversation deletes
    cascade to messages. In-memory SQLite shares one connection so every
    session sees the same database.
    """
    is_sqlite = database_url.startswith("sqlite")
    kwargs = {}
    if is_sqlite and (database_url.endswith("://") or ":memory:" in database_url):
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    elif is_sqlite:
        db_path = make_url(database_url).database
        if db_path:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    engine = create_async_engine(database_url, echo=echo, **kwargs)

    if is_sqlite:
        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    """Create tables if they don't exist (dev convenience)."""
    from . import tables  # noqa: F401 - register tables with Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
