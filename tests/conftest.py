"""Shared test fixtures for aumos-case-manager."""

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.pool import StaticPool

from aumos_case_manager.adapters.database import (
    create_engine,
    create_session_factory,
    create_tables,
)
from aumos_case_manager.core.models import Lawsuit, Lawyer
from aumos_case_manager.settings import Settings

_BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def settings() -> Settings:
    """Provide settings with the default business limits.

    Returns:
        Settings independent of AUMOS_CASES_ environment variables.
    """
    return Settings(
        max_active_cases=10,
        high_workload_threshold=7,
        recommendation_limit=3,
        recent_lawsuits_limit=5,
        default_page_size=10,
        max_page_size=100,
    )


@pytest.fixture
def mock_logger() -> MagicMock:
    """Provide a logger double recording every structured event."""
    return MagicMock()


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with all tables created.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    db_engine = create_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Async session bound to the in-memory database."""
    factory = create_session_factory(engine)
    async with factory() as db_session:
        yield db_session


def _make_lawyer(
    specialization: str = "Laboral",
    status: str = "active",
    lawsuits: list[Lawsuit] | None = None,
    **overrides: object,
) -> Lawyer:
    """Build a detached Lawyer for service-level tests."""
    lawyer = Lawyer(
        id=overrides.pop("id", uuid.uuid4()),
        name=overrides.pop("name", "Ana Torres"),
        email=overrides.pop("email", f"{uuid.uuid4().hex[:8]}@firm.co"),
        phone=overrides.pop("phone", "3001234567"),
        specialization=specialization,
        status=status,
        created_at=overrides.pop("created_at", _BASE_TIME),
        updated_at=_BASE_TIME,
    )
    lawyer.lawsuits = lawsuits or []
    return lawyer


def _make_lawsuit(
    status: str = "pending",
    case_type: str = "labor",
    lawyer_id: uuid.UUID | None = None,
    created_offset_minutes: int = 0,
    **overrides: object,
) -> Lawsuit:
    """Build a detached Lawsuit for service-level tests."""
    return Lawsuit(
        id=overrides.pop("id", uuid.uuid4()),
        case_number=overrides.pop("case_number", "DEM-2025-001"),
        plaintiff=overrides.pop("plaintiff", "Carlos Ruiz"),
        defendant=overrides.pop("defendant", "Acme S.A.S."),
        case_type=case_type,
        status=status,
        lawyer_id=lawyer_id,
        created_at=_BASE_TIME + timedelta(minutes=created_offset_minutes),
        updated_at=_BASE_TIME,
    )


@pytest.fixture
def make_lawyer():  # noqa: ANN201
    """Factory fixture building detached Lawyer instances."""
    return _make_lawyer


@pytest.fixture
def make_lawsuit():  # noqa: ANN201
    """Factory fixture building detached Lawsuit instances."""
    return _make_lawsuit
