"""Shared test fixtures for entity-workflows test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from entity_workflows.db.models import EntityModel

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine

ORG = "org-1"
OTHER_ORG = "org-2"


class MockEventBus:
    """Mock event bus for testing."""

    def __init__(self) -> None:
        """Initialize mock event bus."""
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def emit(self, event_type: str, **kwargs: Any) -> None:
        """Emit an event."""
        self.events.append((event_type, kwargs))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]


@pytest.fixture
def mock_event_bus() -> MockEventBus:
    """Create mock event bus.

    Returns:
        MockEventBus instance
    """
    return MockEventBus()


@pytest.fixture
async def db_engine() -> AsyncIterator[AsyncEngine]:
    """Create async SQLite in-memory engine with the universal tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(EntityModel.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
async def session_maker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create session factory."""
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Create a session for one test."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_entity(
    session_maker: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[EntityModel]]:
    """Return a factory that commits a business entity and returns it."""

    async def factory(
        entity_type: str = "INVOICE",
        *,
        organization_id: str = ORG,
        entity_name: str = "Invoice 1001",
        entity_code: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> EntityModel:
        async with session_maker() as session:
            entity = EntityModel(
                organization_id=organization_id,
                entity_type=entity_type,
                entity_name=entity_name,
                entity_code=entity_code,
                metadata_=metadata if metadata is not None else {},
            )
            session.add(entity)
            await session.commit()
            return entity

    return factory


@pytest.fixture
def make_user(make_entity: Callable[..., Awaitable[EntityModel]]) -> Callable[..., Awaitable[EntityModel]]:
    """Return a factory for USER entities carrying roles."""

    async def factory(user_id: str, roles: list[str], *, organization_id: str = ORG) -> EntityModel:
        return await make_entity(
            "USER",
            organization_id=organization_id,
            entity_name=user_id,
            entity_code=user_id,
            metadata={"roles": roles},
        )

    return factory


@pytest.fixture
def invoice_config_data() -> dict[str, Any]:
    """INVOICE workflow: DRAFT -> SUBMITTED (1 approval) -> APPROVED, plus auto moves."""
    return {
        "states": [
            {"code": "DRAFT", "name": "Draft", "is_initial": True},
            {"code": "SUBMITTED", "name": "Submitted"},
            {"code": "APPROVED", "name": "Approved", "is_final": True},
            {"code": "CANCELLED", "name": "Cancelled", "is_final": True},
        ],
        "transitions": [
            {"from_state": "DRAFT", "to_state": "SUBMITTED", "required_approvals": 1},
            {"from_state": "SUBMITTED", "to_state": "APPROVED", "auto_approve": True},
            {"from_state": "SUBMITTED", "to_state": "DRAFT"},
            {"from_state": "DRAFT", "to_state": "CANCELLED", "required_approvals": 2, "auto_approve": True},
        ],
    }


@pytest.fixture
def tiered_config_data() -> dict[str, Any]:
    """Purchase order workflow with a two-level approval rule and forcing roles."""
    return {
        "states": [
            {"code": "DRAFT", "is_initial": True},
            {"code": "PENDING"},
            {"code": "ORDERED", "is_final": True},
        ],
        "transitions": [
            {"from_state": "DRAFT", "to_state": "PENDING"},
            {"from_state": "PENDING", "to_state": "ORDERED", "required_approvals": 2},
        ],
        "approval_rules": [
            {
                "name": "po-approval",
                "entity_types": ["PURCHASE_ORDER"],
                "levels": [
                    {"level": 2, "required_approvals": 1, "approver_roles": ["finance"]},
                    {"level": 1, "required_approvals": 1, "approver_roles": ["manager"]},
                ],
            },
            {"name": "invoice-only", "entity_types": ["INVOICE"], "levels": [{"level": 1}]},
        ],
        "force_transition_roles": ["admin"],
    }
