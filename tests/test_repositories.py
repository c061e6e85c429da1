"""Integration tests for the SQLAlchemy repositories.

Runs against an in-memory SQLite database (see conftest.engine) so constraint
handling and query building are exercised for real.
"""

import asyncio
import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from aumos_case_manager.adapters.database import (
    create_engine,
    create_session_factory,
    create_tables,
)
from aumos_case_manager.adapters.repositories import LawsuitRepository, LawyerRepository
from aumos_case_manager.core.models import Base, Lawsuit, Lawyer
from aumos_case_manager.errors import (
    INACTIVE_LAWYER_RULE,
    BusinessRuleError,
    ConflictError,
    InvalidReferenceError,
    NotFoundError,
    StorageError,
    ValidationError,
    WorkloadExceededError,
)

_BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def lawyers(session: AsyncSession) -> LawyerRepository:
    """Provide a lawyer repository bound to the test session."""
    return LawyerRepository(session)


@pytest.fixture
def lawsuits(session: AsyncSession) -> LawsuitRepository:
    """Provide a lawsuit repository bound to the test session."""
    return LawsuitRepository(session)


async def _create_lawyer(repo: LawyerRepository, index: int = 0, **overrides: object) -> Lawyer:
    data = {
        "name": f"Lawyer {index}",
        "email": f"lawyer{index}@firm.co",
        "phone": "3001234567",
        "specialization": "Laboral",
        "created_at": _BASE_TIME + timedelta(minutes=index),
    }
    data.update(overrides)
    return await repo.create(data)


async def _create_lawsuit(repo: LawsuitRepository, index: int = 0, **overrides: object) -> Lawsuit:
    data = {
        "case_number": f"DEM-2025-{index + 1:03d}",
        "plaintiff": "Carlos Ruiz",
        "defendant": "Acme S.A.S.",
        "case_type": "labor",
        "created_at": _BASE_TIME + timedelta(minutes=index),
    }
    data.update(overrides)
    return await repo.create(data)


# ---------------------------------------------------------------------------
# Generic CRUD
# ---------------------------------------------------------------------------


class TestCrud:
    """Tests for create, find_by_id, update and delete."""

    @pytest.mark.asyncio
    async def test_create_applies_defaults(self, lawyers: LawyerRepository) -> None:
        """New lawyers get an id, timestamps and the active status."""
        lawyer = await _create_lawyer(lawyers)

        assert isinstance(lawyer.id, uuid.UUID)
        assert lawyer.status == "active"
        assert lawyer.created_at is not None
        assert lawyer.updated_at is not None

    @pytest.mark.asyncio
    async def test_find_by_id_round_trip(self, lawyers: LawyerRepository) -> None:
        created = await _create_lawyer(lawyers, name="Ana Torres")

        found = await lawyers.find_by_id(created.id)

        assert found.id == created.id
        assert found.name == "Ana Torres"

    @pytest.mark.asyncio
    async def test_find_by_id_missing_raises_not_found(self, lawyers: LawyerRepository) -> None:
        with pytest.raises(NotFoundError, match="Lawyer not found"):
            await lawyers.find_by_id(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_duplicate_email_raises_conflict_naming_field(
        self, lawyers: LawyerRepository
    ) -> None:
        """A unique violation becomes ConflictError carrying the column name."""
        await _create_lawyer(lawyers, 0, email="same@firm.co")

        with pytest.raises(ConflictError) as exc_info:
            await _create_lawyer(lawyers, 1, email="same@firm.co")

        assert exc_info.value.field == "email"
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_duplicate_case_number_raises_conflict(self, lawsuits: LawsuitRepository) -> None:
        await _create_lawsuit(lawsuits, 0)

        with pytest.raises(ConflictError) as exc_info:
            await _create_lawsuit(lawsuits, 1, case_number="DEM-2025-001")

        assert exc_info.value.field == "case_number"

    @pytest.mark.asyncio
    async def test_unknown_field_raises_validation_error(self, lawyers: LawyerRepository) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await _create_lawyer(lawyers, nickname="Ace")

        assert exc_info.value.errors == [{"field": "nickname", "message": "Unknown field"}]

    @pytest.mark.asyncio
    async def test_invalid_enum_value_raises_validation_error(
        self, lawsuits: LawsuitRepository
    ) -> None:
        with pytest.raises(ValidationError):
            await _create_lawsuit(lawsuits, case_type="maritime")

    @pytest.mark.asyncio
    async def test_dangling_lawyer_reference_is_rejected(self, lawsuits: LawsuitRepository) -> None:
        with pytest.raises(InvalidReferenceError):
            await _create_lawsuit(lawsuits, lawyer_id=uuid.uuid4())

    @pytest.mark.asyncio
    async def test_driver_failure_raises_storage_error(
        self, engine: AsyncEngine, lawyers: LawyerRepository
    ) -> None:
        """Operational database errors are server faults, not bad input."""
        async with engine.begin() as connection:
            await connection.run_sync(Base.metadata.drop_all)

        with pytest.raises(StorageError) as exc_info:
            await lawyers.count()

        assert exc_info.value.status_code == 500
        assert exc_info.value.is_operational is False

    @pytest.mark.asyncio
    async def test_update_applies_patch(self, lawyers: LawyerRepository) -> None:
        lawyer = await _create_lawyer(lawyers)

        updated = await lawyers.update(lawyer.id, {"phone": "3119876543", "status": "inactive"})

        assert updated.phone == "3119876543"
        assert updated.status == "inactive"

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, lawyers: LawyerRepository) -> None:
        with pytest.raises(NotFoundError):
            await lawyers.update(uuid.uuid4(), {"name": "Nobody"})

    @pytest.mark.asyncio
    async def test_delete_returns_acknowledgement(self, lawsuits: LawsuitRepository) -> None:
        lawsuit = await _create_lawsuit(lawsuits)

        result = await lawsuits.delete(lawsuit.id)

        assert result == {"message": "Lawsuit deleted successfully"}
        with pytest.raises(NotFoundError):
            await lawsuits.find_by_id(lawsuit.id)

    @pytest.mark.asyncio
    async def test_deleting_lawyer_unassigns_its_lawsuits(
        self,
        session: AsyncSession,
        lawyers: LawyerRepository,
        lawsuits: LawsuitRepository,
    ) -> None:
        """The lawyer foreign key is cleared by ON DELETE SET NULL."""
        lawyer = await _create_lawyer(lawyers)
        lawsuit = await _create_lawsuit(lawsuits, lawyer_id=lawyer.id, status="resolved")

        await lawyers.delete(lawyer.id)
        await session.refresh(lawsuit)

        assert lawsuit.lawyer_id is None


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestFindAll:
    """Tests for pagination, filters and ordering."""

    @pytest.mark.asyncio
    async def test_pagination_metadata(self, lawyers: LawyerRepository) -> None:
        for index in range(3):
            await _create_lawyer(lawyers, index)

        first = await lawyers.find_all(page=1, limit=2)
        second = await lawyers.find_all(page=2, limit=2)

        assert [lawyer.name for lawyer in first.items] == ["Lawyer 0", "Lawyer 1"]
        assert first.pagination.total == 3
        assert first.pagination.total_pages == 2
        assert first.pagination.has_next_page is True
        assert first.pagination.has_prev_page is False
        assert [lawyer.name for lawyer in second.items] == ["Lawyer 2"]
        assert second.pagination.has_next_page is False
        assert second.pagination.has_prev_page is True

    @pytest.mark.asyncio
    async def test_no_limit_returns_everything(self, lawyers: LawyerRepository) -> None:
        for index in range(12):
            await _create_lawyer(lawyers, index)

        page = await lawyers.find_all(limit=None)

        assert len(page.items) == 12
        assert page.pagination.total_pages == 1

    @pytest.mark.asyncio
    async def test_empty_table(self, lawyers: LawyerRepository) -> None:
        page = await lawyers.find_all()

        assert page.items == []
        assert page.pagination.total == 0
        assert page.pagination.total_pages == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("options", [{"page": 0}, {"limit": 0}])
    async def test_invalid_paging_raises_validation_error(
        self, lawyers: LawyerRepository, options: dict
    ) -> None:
        with pytest.raises(ValidationError):
            await lawyers.find_all(**options)

    @pytest.mark.asyncio
    async def test_filters_by_value_and_by_list(self, lawyers: LawyerRepository) -> None:
        await _create_lawyer(lawyers, 0, specialization="Laboral")
        await _create_lawyer(lawyers, 1, specialization="Penal", status="inactive")
        await _create_lawyer(lawyers, 2, specialization="Civil")

        inactive = await lawyers.find_all(filters={"status": "inactive"})
        either = await lawyers.find_all(filters={"specialization": ["Laboral", "Civil"]})

        assert [lawyer.name for lawyer in inactive.items] == ["Lawyer 1"]
        assert [lawyer.name for lawyer in either.items] == ["Lawyer 0", "Lawyer 2"]

    @pytest.mark.asyncio
    async def test_unknown_filter_raises_validation_error(self, lawyers: LawyerRepository) -> None:
        with pytest.raises(ValidationError):
            await lawyers.find_all(filters={"age": 40})

    @pytest.mark.asyncio
    async def test_explicit_order(self, lawyers: LawyerRepository) -> None:
        for index in range(3):
            await _create_lawyer(lawyers, index)

        page = await lawyers.find_all(order=[("created_at", "desc")])

        assert [lawyer.name for lawyer in page.items] == ["Lawyer 2", "Lawyer 1", "Lawyer 0"]

    @pytest.mark.asyncio
    async def test_invalid_order_direction(self, lawyers: LawyerRepository) -> None:
        with pytest.raises(ValidationError):
            await lawyers.find_all(order=[("name", "sideways")])

    @pytest.mark.asyncio
    async def test_count_with_filters(self, lawyers: LawyerRepository) -> None:
        await _create_lawyer(lawyers, 0)
        await _create_lawyer(lawyers, 1, status="inactive")

        assert await lawyers.count() == 2
        assert await lawyers.count({"status": "active"}) == 1


# ---------------------------------------------------------------------------
# Lawyer queries
# ---------------------------------------------------------------------------


class TestLawyerRepository:
    """Tests for lawyer-specific queries."""

    @pytest.mark.asyncio
    async def test_active_and_specialization_queries(self, lawyers: LawyerRepository) -> None:
        await _create_lawyer(lawyers, 0, specialization="Laboral")
        await _create_lawyer(lawyers, 1, specialization="Laboral", status="inactive")
        await _create_lawyer(lawyers, 2, specialization="Penal")

        active = await lawyers.find_active_lawyers(limit=None)
        labor = await lawyers.find_by_specialization("Laboral", page=1, limit=10)

        assert [lawyer.name for lawyer in active.items] == ["Lawyer 0", "Lawyer 2"]
        assert [lawyer.name for lawyer in labor.items] == ["Lawyer 0", "Lawyer 1"]

    @pytest.mark.asyncio
    async def test_lawyer_stats(
        self, lawyers: LawyerRepository, lawsuits: LawsuitRepository
    ) -> None:
        lawyer = await _create_lawyer(lawyers)
        await _create_lawsuit(lawsuits, 0, lawyer_id=lawyer.id, status="assigned")
        await _create_lawsuit(lawsuits, 1, lawyer_id=lawyer.id, status="resolved", case_type="civil")
        await _create_lawsuit(lawsuits, 2)

        stats = await lawyers.get_lawyer_stats(lawyer.id)

        assert stats is not None
        assert stats.stats.total == 2
        assert stats.stats.by_status == {"pending": 0, "assigned": 1, "resolved": 1}
        assert stats.stats.by_type["labor"] == 1
        assert stats.stats.by_type["civil"] == 1
        assert len(stats.lawsuits) == 2

    @pytest.mark.asyncio
    async def test_lawyer_stats_missing_returns_none(self, lawyers: LawyerRepository) -> None:
        assert await lawyers.get_lawyer_stats(uuid.uuid4()) is None

    @pytest.mark.asyncio
    async def test_count_assigned_cases_zero_fills(
        self, lawyers: LawyerRepository, lawsuits: LawsuitRepository
    ) -> None:
        """Only assigned lawsuits count, and idle lawyers report zero."""
        busy = await _create_lawyer(lawyers, 0)
        idle = await _create_lawyer(lawyers, 1)
        await _create_lawsuit(lawsuits, 0, lawyer_id=busy.id, status="assigned")
        await _create_lawsuit(lawsuits, 1, lawyer_id=busy.id, status="assigned")
        await _create_lawsuit(lawsuits, 2, lawyer_id=busy.id, status="resolved")

        counts = await lawyers.count_assigned_cases([busy.id, idle.id])

        assert counts == {busy.id: 2, idle.id: 0}
        assert await lawyers.count_assigned_cases([]) == {}


# ---------------------------------------------------------------------------
# Lawsuit queries and assignment
# ---------------------------------------------------------------------------


class TestLawsuitRepository:
    """Tests for lawsuit-specific queries and the locked assignment."""

    @pytest.mark.asyncio
    async def test_assign_writes_lawyer_and_status_together(
        self, lawyers: LawyerRepository, lawsuits: LawsuitRepository
    ) -> None:
        lawyer = await _create_lawyer(lawyers)
        lawsuit = await _create_lawsuit(lawsuits)

        assigned = await lawsuits.assign_lawyer(lawsuit.id, lawyer.id, max_active_cases=10)

        assert assigned.status == "assigned"
        assert assigned.lawyer_id == lawyer.id
        assert assigned.lawyer.name == lawyer.name

    @pytest.mark.asyncio
    async def test_assign_enforces_cap_under_lock(
        self, lawyers: LawyerRepository, lawsuits: LawsuitRepository
    ) -> None:
        """The cap is re-checked at write time and the lawsuit stays pending."""
        lawyer = await _create_lawyer(lawyers)
        first = await _create_lawsuit(lawsuits, 0)
        second = await _create_lawsuit(lawsuits, 1)
        await lawsuits.assign_lawyer(first.id, lawyer.id, max_active_cases=1)

        with pytest.raises(WorkloadExceededError):
            await lawsuits.assign_lawyer(second.id, lawyer.id, max_active_cases=1)

        unchanged = await lawsuits.find_by_id(second.id)
        assert unchanged.status == "pending"
        assert unchanged.lawyer_id is None

    @pytest.mark.asyncio
    async def test_assign_rejects_inactive_lawyer(
        self, lawyers: LawyerRepository, lawsuits: LawsuitRepository
    ) -> None:
        lawyer = await _create_lawyer(lawyers, status="inactive")
        lawsuit = await _create_lawsuit(lawsuits)

        with pytest.raises(BusinessRuleError) as exc_info:
            await lawsuits.assign_lawyer(lawsuit.id, lawyer.id, max_active_cases=10)

        assert exc_info.value.rule == INACTIVE_LAWYER_RULE

    @pytest.mark.asyncio
    async def test_assign_unknown_lawyer(self, lawsuits: LawsuitRepository) -> None:
        lawsuit = await _create_lawsuit(lawsuits)

        with pytest.raises(NotFoundError, match="Lawyer not found"):
            await lawsuits.assign_lawyer(lawsuit.id, uuid.uuid4(), max_active_cases=10)

    @pytest.mark.asyncio
    async def test_assign_unknown_lawsuit(
        self, lawyers: LawyerRepository, lawsuits: LawsuitRepository
    ) -> None:
        lawyer = await _create_lawyer(lawyers)

        with pytest.raises(NotFoundError, match="Lawsuit not found"):
            await lawsuits.assign_lawyer(uuid.uuid4(), lawyer.id, max_active_cases=10)

    @pytest.mark.asyncio
    async def test_status_and_lawyer_listings_load_lawyer(
        self, lawyers: LawyerRepository, lawsuits: LawsuitRepository
    ) -> None:
        lawyer = await _create_lawyer(lawyers, name="Ana Torres")
        lawsuit = await _create_lawsuit(lawsuits, 0)
        await _create_lawsuit(lawsuits, 1)
        await lawsuits.assign_lawyer(lawsuit.id, lawyer.id, max_active_cases=10)

        assigned = await lawsuits.find_by_status("assigned")
        pending = await lawsuits.find_by_status("pending")
        by_lawyer = await lawsuits.find_by_lawyer(lawyer.id)

        assert [item.case_number for item in assigned.items] == ["DEM-2025-001"]
        assert assigned.items[0].lawyer.name == "Ana Torres"
        assert [item.case_number for item in pending.items] == ["DEM-2025-002"]
        assert pending.items[0].lawyer is None
        assert [item.id for item in by_lawyer.items] == [lawsuit.id]

    @pytest.mark.asyncio
    async def test_lawsuit_stats_zero_fill(self, lawsuits: LawsuitRepository) -> None:
        await _create_lawsuit(lawsuits, 0, case_type="civil")
        await _create_lawsuit(lawsuits, 1, case_type="civil", status="resolved")
        await _create_lawsuit(lawsuits, 2, case_type="commercial")

        stats = await lawsuits.get_lawsuit_stats()

        assert stats.total == 3
        assert stats.by_status == {"pending": 2, "assigned": 0, "resolved": 1}
        assert stats.by_type == {"civil": 2, "criminal": 0, "labor": 0, "commercial": 1}


# ---------------------------------------------------------------------------
# Concurrent assignment
# ---------------------------------------------------------------------------


class TestConcurrentAssignment:
    """Assignments racing from separate sessions against a file database."""

    @pytest.fixture
    async def file_engine(self, tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
        db_engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'cases.db'}")
        await create_tables(db_engine)
        yield db_engine
        await db_engine.dispose()

    @pytest.mark.asyncio
    async def test_parallel_assignments_cannot_exceed_cap(self, file_engine: AsyncEngine) -> None:
        """With one slot left, exactly one of two racing assignments wins."""
        factory = create_session_factory(file_engine)
        async with factory() as setup_session:
            lawyer = await _create_lawyer(LawyerRepository(setup_session))
            lawsuit_repo = LawsuitRepository(setup_session)
            for index in range(9):
                await _create_lawsuit(
                    lawsuit_repo, index, lawyer_id=lawyer.id, status="assigned"
                )
            first = await _create_lawsuit(lawsuit_repo, 9)
            second = await _create_lawsuit(lawsuit_repo, 10)
            await setup_session.commit()

        async def _assign(lawsuit_id: uuid.UUID) -> str:
            async with factory() as db_session:
                try:
                    await LawsuitRepository(db_session).assign_lawyer(
                        lawsuit_id, lawyer.id, max_active_cases=10
                    )
                except WorkloadExceededError:
                    await db_session.rollback()
                    return "rejected"
                await db_session.commit()
                return "assigned"

        results = await asyncio.gather(_assign(first.id), _assign(second.id))

        assert sorted(results) == ["assigned", "rejected"]
        async with factory() as check_session:
            assigned = await LawsuitRepository(check_session).count(
                {"lawyer_id": lawyer.id, "status": "assigned"}
            )
        assert assigned == 10
