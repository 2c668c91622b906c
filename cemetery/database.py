"""
Cemetery Records Service: Database Session Management
======================================================

What:  Async SQLAlchemy engine, session factory, declarative Base, and the
       per-request session dependency.
How:   One engine per process. Each HTTP request gets its own AsyncSession that
       commits once when the handler returns and rolls back on any exception,
       so multi-row writes (status upsert + log append, request creation,
       cascading deletes) land together or not at all.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from cemetery.config import settings


def utcnow() -> datetime:
    """Timezone-aware current UTC time, used for every timestamp column."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """String UUID primary key."""
    return str(uuid.uuid4())


def _engine_options() -> Dict[str, Any]:
    # SQLite (tests, local experiments) uses its own pool classes which reject
    # pool sizing arguments.
    if settings.is_sqlite:
        return {"echo": settings.log_level == "DEBUG"}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": 3600,
        "echo": settings.log_level == "DEBUG",
    }


engine = create_async_engine(settings.database_url, **_engine_options())

# expire_on_commit=False: response building reads attributes after commit.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic."""
    pass


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Commits after the route handler returns, rolls back and re-raises on any
    exception, and always closes the session. Services only `flush()`.

    Example:
        @router.get("/api/clusters")
        async def list_clusters(db: AsyncSession = Depends(get_db_session)):
            return await cluster_service.list_clusters(db)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine() -> None:
    """Closes all pooled connections; called on application shutdown."""
    await engine.dispose()
