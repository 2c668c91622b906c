"""
Cemetery Records Service: Test Configuration (conftest.py)
===========================================================

What:  Shared fixtures: a fresh in-memory database per test, user/admin
       factories with session tokens, and an HTTP client bound to the app.
How:   Environment overrides are applied before any `cemetery` import so the
       settings singleton, the engine and the FileService storage root pick
       them up. Each test gets its own aiosqlite engine (StaticPool keeps the
       single in-memory connection alive) with tables built from
       Base.metadata; the app's `get_db_session` is overridden to use it.

Fixture Hierarchy (all function-scoped):
    engine ─┬─ session_factory ─┬─ db_session          (service tests)
            │                   ├─ make_user / user / admin
            │                   └─ test_client         (HTTP tests)
    temp_storage, sample_image_bytes
"""

import os
import tempfile
from datetime import date
from typing import AsyncGenerator, Awaitable, Callable, Dict

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="cemetery_test_")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import cemetery.models  # noqa: F401
from cemetery.database import Base, get_db_session
from cemetery.models.user import ROLE_ADMIN, ROLE_USER, User
from cemetery.schemas.cluster import ClusterCreate
from cemetery.schemas.common import Coordinates
from cemetery.schemas.grave import GraveCreate
from cemetery.services.auth_service import auth_service
from cemetery.services.cluster_service import cluster_service
from cemetery.services.grave_service import grave_service


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    A session for calling services directly. Services only flush, so the
    test sees its own writes without committing.
    """
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Users & sessions
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def make_user(session_factory) -> Callable[..., Awaitable[Dict]]:
    """
    Factory that commits a user plus a live session and returns
    {"user": User, "token": str, "headers": {...}}.

    Usage:
        async def test_x(make_user):
            family = await make_user("Maria Santos")
    """
    counter = {"n": 0}

    async def _make(name: str = "Test User", role: str = ROLE_USER, **fields) -> Dict:
        counter["n"] += 1
        email = fields.pop("email", f"user{counter['n']}@example.com")
        async with session_factory() as session:
            user = User(name=name, email=email, role=role, email_verified=True, **fields)
            session.add(user)
            await session.flush()
            issued = await auth_service.issue_session(session, user)
            await session.commit()
        return {
            "user": user,
            "token": issued.token,
            "headers": {"Authorization": f"Bearer {issued.token}"},
        }

    return _make


@pytest_asyncio.fixture
async def user(make_user) -> Dict:
    return await make_user("Maria Santos", email="maria.santos@example.com")


@pytest_asyncio.fixture
async def admin(make_user) -> Dict:
    return await make_user("Admin User", role=ROLE_ADMIN, email="admin@example.com")


# ══════════════════════════════════════════════════════════════════════════
# Files
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def temp_storage(tmp_path) -> str:
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Smallest JPEG: SOI + JFIF APP0 header + EOI."""
    return (
        b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
        b"\xff\xd9"
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def test_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX client talking to the app in-process. Requests run against the
    per-test database with the same commit/rollback rules as production.
    """
    from cemetery.main import app

    async def _get_test_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _get_test_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ══════════════════════════════════════════════════════════════════════════
# Clusters & graves (service-level, flushed on db_session)
#
# All sessions share one StaticPool connection. Request user fixtures before
# these so their commits land before db_session opens a transaction.
# ══════════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def cluster(db_session):
    return await cluster_service.create_cluster(
        db_session,
        ClusterCreate(
            name="Garden of Peace",
            cluster_number=1,
            coordinates=Coordinates(latitude=14.5995, longitude=120.9842),
        ),
    )


@pytest.fixture
def make_grave(db_session, cluster):
    """Factory creating a grave in the `cluster` fixture unless told otherwise."""

    async def _make(plot_number: str = "A-001", deceased_name: str = "Jose Santos", **fields):
        fields.setdefault("cluster_id", cluster.id)
        fields.setdefault("grave_type", "Lawn")
        return await grave_service.create_grave(
            db_session,
            GraveCreate(plot_number=plot_number, deceased_name=deceased_name, **fields),
        )

    return _make


@pytest_asyncio.fixture
async def grave(make_grave):
    return await make_grave(grave_expiration_date=date(2053, 3, 15))
