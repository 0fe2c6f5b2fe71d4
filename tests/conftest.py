"""
Pytest configuration for Scrumboard backend tests.

Service tests run against an in-memory SQLite database; the schema is
created from the ORM metadata for every test.
"""

from __future__ import annotations

from uuid import UUID

import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from scrumboard.models import Base, Item, ItemType, Project, Sprint, User
from scrumboard.schemas.item import ItemCreateRequest
from scrumboard.schemas.project import ProjectCreateRequest
from scrumboard.services.item_service import ItemService
from scrumboard.services.ledger_service import LedgerService
from scrumboard.services.project_service import ProjectService
from scrumboard.services.sprint_service import SprintService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def items(db) -> ItemService:
    return ItemService(db)


@pytest_asyncio.fixture
async def sprints(db) -> SprintService:
    return SprintService(db)


@pytest_asyncio.fixture
async def ledger(db) -> LedgerService:
    return LedgerService(db)


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def project(db) -> Project:
    """A project with a 14 day sprint duration and its first READY sprint."""
    return await ProjectService(db).create_project(
        ProjectCreateRequest(title="Checkout", sprint_duration=14)
    )


@pytest_asyncio.fixture
async def sprint(sprints, project) -> Sprint:
    """The READY sprint created with the project."""
    current = await sprints.find_active_sprint_in_project(project.id)
    assert current is not None
    return current


@pytest_asyncio.fixture
async def user(db) -> User:
    member = User(email="dev@example.com", display_name="Dev", is_active=True)
    db.add(member)
    await db.flush()
    return member


@pytest_asyncio.fixture
async def make_item(items, project):
    """Factory creating items in `project` through the service so hierarchy rules apply."""

    async def _make(
        item_type: ItemType = ItemType.task,
        effort: int = 0,
        parent: Item | None = None,
        title: str | None = None,
        project_id: UUID | None = None,
    ) -> Item:
        return await items.create_item(
            project_id or project.id,
            ItemCreateRequest(
                title=title or f"{item_type.value} item",
                type=item_type.value,
                effort=effort,
                parent_id=parent.id if parent else None,
            ),
        )

    return _make
