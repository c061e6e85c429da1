"""Async database engine and session management for aumos-case-manager."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from aumos_case_manager.core.models import Base
from aumos_case_manager.errors import ConfigurationError

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # noqa: ANN001
    # SQLite ignores ON DELETE SET NULL unless foreign keys are switched on per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(database_url: str, echo: bool = False, **engine_options: Any) -> AsyncEngine:
    """Create an async engine for the given URL.

    Args:
        database_url: SQLAlchemy async URL (postgresql+asyncpg, sqlite+aiosqlite).
        echo: Log emitted SQL.
        engine_options: Extra keyword arguments for create_async_engine.

    Returns:
        The configured AsyncEngine.
    """
    engine = create_async_engine(database_url, echo=echo, **engine_options)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory whose objects stay usable after commit."""
    return async_sessionmaker(engine, expire_on_commit=False)


def init_database(database_url: str, echo: bool = False) -> AsyncEngine:
    """Initialize the module-level engine and session factory.

    Args:
        database_url: SQLAlchemy async URL.
        echo: Log emitted SQL.

    Returns:
        The engine now used by get_db_session.
    """
    global _engine, _session_factory
    _engine = create_engine(database_url, echo=echo)
    _session_factory = create_session_factory(_engine)
    return _engine


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)


async def dispose_database() -> None:
    """Dispose the module-level engine, closing pooled connections."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session that commits on success and rolls back on error.

    Yields:
        An AsyncSession bound to the initialized engine.

    Raises:
        ConfigurationError: If init_database has not been called.
    """
    if _session_factory is None:
        raise ConfigurationError("Database not initialized; call init_database() first")
    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
