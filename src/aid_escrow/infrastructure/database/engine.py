"""Async database engine and session management.

Provides:
    - _get_engine: The SQLAlchemy async engine (lazy singleton, shared process-wide).
    - _get_session_factory: A sessionmaker bound to the engine.
    - get_async_session: FastAPI dependency that yields a session per request.
    - session_scope: Same unit-of-work semantics for the worker process.
    - init_db / close_db / ping_db: Lifecycle and health hooks.

Usage in FastAPI:
    @app.get("/claims")
    async def list_claims(session: AsyncSession = Depends(get_async_session)):
        ...
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from aid_escrow.config import Settings, get_settings
from aid_escrow.infrastructure.database.errors import translate_db_errors
from aid_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = get_logger(__name__)

# Module-level singletons (initialized lazily)
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _get_engine(settings: Settings | None = None) -> AsyncEngine:
    """Get or create the async engine (lazy singleton).

    ``settings`` only matters for the call that creates the engine; later
    calls return the existing one. Falls back to the process settings.
    """
    global _engine
    if _engine is None:
        settings = settings or get_settings()
        options: dict = {"pool_pre_ping": True, "echo": settings.db_echo_sql}
        if not settings.database_url.startswith("sqlite"):
            options.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
            )
        _engine = create_async_engine(settings.database_url, **options)
        logger.info(
            "database.engine_created",
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )
    return _engine


def _get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory (lazy singleton)."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=_get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async database session.

    The session is committed on success or rolled back on error, so every
    change made while serving one request (status update plus audit outbox
    row) lands atomically.
    """
    async with session_scope() as session:
        yield session


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """Open a session, commit on clean exit, roll back on any exception."""
    factory = _get_session_factory()
    async with factory() as session:
        try:
            yield session
            async with translate_db_errors():
                await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(settings: Settings | None = None) -> None:
    """Initialize the database engine and create tables if they don't exist.

    Tables are only created outside production; production schemas are
    managed by the deployment. An engine left over from other settings
    (another database URL) is disposed first.
    """
    from aid_escrow.infrastructure.database.orm_models import Base

    settings = settings or get_settings()
    if _engine is not None and _bound_url(_engine) != settings.database_url:
        await close_db()
    engine = _get_engine(settings)

    if not settings.is_production:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("database.tables_created")
    else:
        logger.info("database.skipping_create_all", reason="production mode")


def _bound_url(engine: AsyncEngine) -> str:
    return engine.url.render_as_string(hide_password=False)


async def ping_db() -> None:
    """Run ``SELECT 1``. Raises whatever the driver raises on failure."""
    async with _get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db() -> None:
    """Dispose of the database engine."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("database.engine_disposed")
        _engine = None
        _session_factory = None
