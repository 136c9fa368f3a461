"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database (aiosqlite) with the full
schema created from the models. Collaborators that leave the process (push
gateway, S3) are replaced per test.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from netgains import models  # noqa: F401
from netgains.database import Base
from netgains.models import PlaySession, User
from netgains.services.storage_service import InMemoryObjectStorage, set_object_storage

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def make_engine():
    return create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest_asyncio.fixture
async def engine():
    engine = make_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def storage():
    storage = InMemoryObjectStorage()
    set_object_storage(storage)
    yield storage
    set_object_storage(None)


def as_user(user_id: str) -> dict:
    return {"uid": user_id}


@pytest.fixture
def user_factory(db):
    async def _make(user_id: str, name: str = None, phone: str = None, email: str = None) -> User:
        user = User(id=user_id, name=name or user_id.capitalize(), phone=phone, email=email)
        db.add(user)
        await db.commit()
        return user
    return _make


@pytest_asyncio.fixture
async def alice(user_factory):
    return await user_factory("alice", phone="+15550001111", email="alice@example.com")


@pytest_asyncio.fixture
async def bob(user_factory):
    return await user_factory("bob", phone="+15550002222", email="bob@example.com")


@pytest_asyncio.fixture
async def carol(user_factory):
    return await user_factory("carol", phone="+15550003333")


@pytest_asyncio.fixture
async def play_session(db, alice):
    session = PlaySession(
        user_id=alice.id,
        name="Saturday Doubles",
        session_type="Doubles",
        location="Riverside Courts",
        max_players=8,
        allow_guests=True,
        dupr_min=3.0,
        dupr_max=4.0,
        accepted_participants=[],
    )
    db.add(session)
    await db.commit()
    return session
