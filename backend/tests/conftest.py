"""Shared fixtures: an in-memory SQLite database per test, seeded with a
small directory of users and projects."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.models.project import Project
from app.models.user import User
from app.schemas.task import TaskCreate
from app.services.task_service import TaskService

from factories import (
    ACTIVE_PROJECT,
    ALICE,
    ARCHIVED_PROJECT,
    BOB,
    CAROL,
    DAVE,
    OTHER_PROJECT,
    task_payload,
)


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
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def seeded(session_factory):
    """alice and bob are active, carol is inactive, dave is active until a
    test soft-deletes him. Project 2 is archived."""
    async with session_factory() as session:
        session.add_all([
            User(id=ALICE, username="alice", email="alice@example.com", full_name="Alice Nguyen"),
            User(id=BOB, username="bob", email="bob@example.com", full_name="Bob Tran"),
            User(id=CAROL, username="carol", email="carol@example.com", full_name="Carol Le", active=False),
            User(id=DAVE, username="dave", email="dave@example.com", full_name="Dave Pham"),
            Project(id=ACTIVE_PROJECT, name="Website"),
            Project(id=ARCHIVED_PROJECT, name="Legacy portal", active=False),
            Project(id=OTHER_PROJECT, name="Mobile app"),
        ])
        await session.commit()
    return session_factory


@pytest_asyncio.fixture
async def db(seeded):
    async with seeded() as session:
        yield session


@pytest.fixture
def service(db):
    return TaskService(db)


@pytest.fixture
def soft_delete_user(session_factory):
    async def _soft_delete(user_id):
        async with session_factory() as session:
            user = await session.get(User, user_id, execution_options={"include_deleted": True})
            user.soft_delete()
            await session.commit()
    return _soft_delete


@pytest.fixture
def deactivate_user(session_factory):
    async def _deactivate(user_id):
        async with session_factory() as session:
            user = await session.get(User, user_id)
            user.deactivate()
            await session.commit()
    return _deactivate


@pytest.fixture
def make_task(session_factory, seeded):
    """Create a task through the service in its own session and return its id."""
    async def _make(**overrides):
        async with session_factory() as session:
            task = await TaskService(session).create_task(TaskCreate(**task_payload(**overrides)))
            return task.id
    return _make

