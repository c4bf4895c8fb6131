"""Async engine, session factory and the storage transaction boundary."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from .config import settings
from .exceptions import UpstreamError

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(database_url: str) -> AsyncEngine:
    url = make_url(database_url)
    options = {"echo": settings.debug, "pool_pre_ping": True}

    if url.get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            # Every connection would otherwise see its own empty database
            options["poolclass"] = StaticPool

    return create_async_engine(url, **options)


engine = build_engine(settings.database_url)
async_session_factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield one session per request; the caller decides when to commit."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create missing tables. Deployed databases are managed by Alembic instead."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()


@asynccontextmanager
async def storage_transaction(db: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """
    Wrap a unit of work that must apply completely or not at all.

    The session is rolled back on any exception. SQLAlchemy errors surface as
    a retryable ``UpstreamError`` naming the storage collaborator; domain
    errors raised inside the block propagate as they are.
    """
    try:
        yield db
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Storage transaction rolled back", extra={"operation": operation, "error": str(exc)})
        raise UpstreamError("storage", detail=f"Storage failure during {operation}") from exc
    except Exception:
        await db.rollback()
        raise
