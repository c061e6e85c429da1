"""SQLAlchemy repository implementations for aumos-case-manager.

SQLAlchemyRepository implements the generic CRUD contract for any mapped
model and translates every storage failure into a domain error:

  - unique constraint violations  -> ConflictError
  - dangling foreign keys         -> InvalidReferenceError
  - other constraint / type errors -> ValidationError
  - missing rows                  -> NotFoundError
  - driver and connection errors  -> StorageError

Entity repositories only add the queries that differ from the generic ones.
"""

import math
import re
import uuid
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    NoResultFound,
    SQLAlchemyError,
    StatementError,
)
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, selectinload

from aumos_case_manager.core.interfaces import OrderSpec
from aumos_case_manager.core.models import (
    Base,
    Lawsuit,
    LawsuitBreakdown,
    Lawyer,
    LawyerStats,
    Page,
    Pagination,
)
from aumos_case_manager.errors import (
    BusinessRuleError,
    ConflictError,
    InvalidReferenceError,
    NotFoundError,
    StorageError,
    ValidationError,
    WorkloadExceededError,
)

ModelT = TypeVar("ModelT", bound=Base)

_UNIQUE_SQLSTATE = "23505"
_FOREIGN_KEY_SQLSTATE = "23503"
# "UNIQUE constraint failed: lawyers.email" (sqlite), "Key (email)=(...)" (postgres)
_UNIQUE_FIELD_PATTERNS = (
    re.compile(r"UNIQUE constraint failed: \w+\.(\w+)"),
    re.compile(r"Key \((\w+)\)="),
)


def _sqlstate(error: IntegrityError) -> str | None:
    orig = error.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def _unique_field(message: str) -> str | None:
    for pattern in _UNIQUE_FIELD_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group(1)
    return None


class SQLAlchemyRepository(Generic[ModelT]):
    """Generic async CRUD repository for a single mapped model.

    Args:
        session: The async SQLAlchemy session for the current unit of work.
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @property
    def entity_name(self) -> str:
        """Model class name used in error messages."""
        return self.model.__name__

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create(self, data: Mapping[str, Any]) -> ModelT:
        """Insert a new record.

        Raises:
            ConflictError: A unique field already exists.
            ValidationError: A field is unknown or violates a column constraint.
            InvalidReferenceError: A foreign key points nowhere.
        """
        self._check_fields(data)
        entity = self.model(**data)
        with self._translate_errors():
            self.session.add(entity)
            await self.session.flush()
            await self.session.refresh(entity)
        return entity

    async def find_by_id(self, entity_id: uuid.UUID, include: Sequence[str] = ()) -> ModelT:
        """Fetch a record by primary key, eager-loading the named relationships.

        Raises:
            NotFoundError: No record has this id.
        """
        with self._translate_errors():
            entity = await self._get(entity_id, include)
        if entity is None:
            raise NotFoundError(f"{self.entity_name} not found")
        return entity

    async def find_all(
        self,
        page: int = 1,
        limit: int | None = 10,
        filters: Mapping[str, Any] | None = None,
        include: Sequence[str] = (),
        order: OrderSpec = (),
    ) -> Page:
        """Return one page of records matching ``filters``.

        A ``limit`` of None returns every matching record on a single page.
        Without an explicit ``order`` records come back in creation order.
        """
        if page < 1:
            raise ValidationError.for_field("page", "page must be greater than or equal to 1")
        if limit is not None and limit < 1:
            raise ValidationError.for_field("limit", "limit must be greater than or equal to 1")

        total = await self.count(filters)

        statement = self._apply_filters(select(self.model), filters)
        statement = statement.order_by(*self._order_clauses(order))
        statement = self._with_includes(statement, include)
        if limit is not None:
            statement = statement.limit(limit).offset((page - 1) * limit)

        with self._translate_errors():
            result = await self.session.execute(statement)
            items = list(result.scalars().all())

        if limit is None:
            total_pages = 1 if total else 0
        else:
            total_pages = math.ceil(total / limit)

        return Page(
            items=items,
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=total_pages,
                has_next_page=page < total_pages,
                has_prev_page=page > 1,
            ),
        )

    async def update(self, entity_id: uuid.UUID, patch: Mapping[str, Any]) -> ModelT:
        """Apply ``patch`` to an existing record.

        Raises:
            NotFoundError: No record has this id.
            ConflictError: The patch duplicates a unique field.
            ValidationError: A field is unknown or violates a column constraint.
        """
        self._check_fields(patch)
        entity = await self.find_by_id(entity_id)
        with self._translate_errors():
            for key, value in patch.items():
                setattr(entity, key, value)
            await self.session.flush()
            await self.session.refresh(entity)
        return entity

    async def delete(self, entity_id: uuid.UUID) -> dict[str, str]:
        """Permanently remove a record.

        Raises:
            NotFoundError: No record has this id.
        """
        entity = await self.find_by_id(entity_id)
        with self._translate_errors():
            await self.session.delete(entity)
            await self.session.flush()
        return {"message": f"{self.entity_name} deleted successfully"}

    async def count(self, filters: Mapping[str, Any] | None = None) -> int:
        """Count records matching ``filters``."""
        statement = self._apply_filters(
            select(func.count()).select_from(self.model), filters
        )
        with self._translate_errors():
            result = await self.session.execute(statement)
        return int(result.scalar_one())

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    async def _get(self, entity_id: uuid.UUID, include: Sequence[str] = ()) -> ModelT | None:
        statement = self._with_includes(
            select(self.model).where(self.model.id == entity_id), include
        )
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    def _column(self, name: str) -> Any:
        columns = self.model.__table__.columns
        if name not in columns:
            raise ValidationError.for_field(name, f"Unknown {self.entity_name} field '{name}'")
        return getattr(self.model, name)

    def _check_fields(self, data: Mapping[str, Any]) -> None:
        columns = self.model.__table__.columns
        unknown = [key for key in data if key not in columns]
        if unknown:
            raise ValidationError(
                f"Unknown {self.entity_name} fields: {', '.join(sorted(unknown))}",
                [{"field": key, "message": "Unknown field"} for key in sorted(unknown)],
            )

    def _apply_filters(self, statement: Select, filters: Mapping[str, Any] | None) -> Select:
        for key, value in (filters or {}).items():
            column = self._column(key)
            if isinstance(value, (list, tuple, set, frozenset)):
                statement = statement.where(column.in_(list(value)))
            elif value is None:
                statement = statement.where(column.is_(None))
            else:
                statement = statement.where(column == value)
        return statement

    def _order_clauses(self, order: OrderSpec) -> list[Any]:
        if not order:
            return [self.model.created_at.asc(), self.model.id.asc()]
        clauses = []
        for field_name, direction in order:
            column = self._column(field_name)
            if direction.lower() == "asc":
                clauses.append(column.asc())
            elif direction.lower() == "desc":
                clauses.append(column.desc())
            else:
                raise ValidationError.for_field(
                    "order", f"Order direction must be 'asc' or 'desc', got '{direction}'"
                )
        # Stable tie-break
        clauses.append(self.model.id.asc())
        return clauses

    def _with_includes(self, statement: Select, include: Sequence[str]) -> Select:
        if not include:
            return statement
        relationships = self.model.__mapper__.relationships
        for name in include:
            if name not in relationships:
                raise ValidationError.for_field(
                    "include", f"Unknown {self.entity_name} relationship '{name}'"
                )
            statement = statement.options(selectinload(getattr(self.model, name)))
        # Identity-mapped objects must pick up freshly loaded relationships
        return statement.execution_options(populate_existing=True)

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            raise self._integrity_error(exc) from exc
        except DBAPIError as exc:
            raise StorageError(f"Database operation failed: {exc.orig}") from exc
        except NoResultFound as exc:
            raise NotFoundError(f"{self.entity_name} not found") from exc
        except StatementError as exc:
            detail = str(exc.orig) if exc.orig is not None else str(exc)
            raise ValidationError(f"Validation error: {detail}") from exc
        except SQLAlchemyError as exc:
            raise StorageError(f"Database operation failed: {exc}") from exc

    def _integrity_error(self, exc: IntegrityError) -> ConflictError | InvalidReferenceError | ValidationError:
        message = str(exc.orig)
        state = _sqlstate(exc)
        lowered = message.lower()
        if state == _UNIQUE_SQLSTATE or "unique" in lowered or "duplicate" in lowered:
            field = _unique_field(message)
            label = field or "record"
            return ConflictError(f"{label} already exists", field=field)
        if state == _FOREIGN_KEY_SQLSTATE or "foreign key" in lowered:
            return InvalidReferenceError("Referenced record does not exist")
        return ValidationError(f"Validation error: {message}")


class LawyerRepository(SQLAlchemyRepository[Lawyer]):
    """Repository for Lawyer records."""

    model = Lawyer

    async def find_by_id_with_lawsuits(self, lawyer_id: uuid.UUID) -> Lawyer | None:
        """Fetch a lawyer with its lawsuits loaded, or None if absent."""
        with self._translate_errors():
            return await self._get(lawyer_id, include=("lawsuits",))

    async def find_active_lawyers(self, **options: Any) -> Page:
        """List lawyers whose status is ``active``.

        Args:
            options: find_all options; any ``filters`` are combined with the status filter.

        Returns:
            A Page of active lawyers.
        """
        filters = {**(options.pop("filters", None) or {}), "status": "active"}
        return await self.find_all(filters=filters, **options)

    async def find_by_specialization(self, specialization: str, **options: Any) -> Page:
        """List lawyers with exactly this (already normalized) specialization.

        Args:
            specialization: Title-cased specialization to match.
            options: find_all options.

        Returns:
            A Page of matching lawyers.
        """
        filters = {**(options.pop("filters", None) or {}), "specialization": specialization}
        return await self.find_all(filters=filters, **options)

    async def get_lawyer_stats(self, lawyer_id: uuid.UUID) -> LawyerStats | None:
        """Return the lawyer with its lawsuit breakdown, or None if absent."""
        lawyer = await self.find_by_id_with_lawsuits(lawyer_id)
        if lawyer is None:
            return None
        lawsuits = list(lawyer.lawsuits)
        return LawyerStats(
            lawyer=lawyer,
            stats=LawsuitBreakdown.from_lawsuits(lawsuits),
            lawsuits=lawsuits,
        )

    async def count_assigned_cases(
        self, lawyer_ids: Sequence[uuid.UUID]
    ) -> dict[uuid.UUID, int]:
        """Count ``assigned`` lawsuits per lawyer in a single query.

        Lawyers without assigned lawsuits are reported with a count of 0.
        """
        counts: dict[uuid.UUID, int] = dict.fromkeys(lawyer_ids, 0)
        if not lawyer_ids:
            return counts
        statement = (
            select(Lawsuit.lawyer_id, func.count(Lawsuit.id))
            .where(Lawsuit.lawyer_id.in_(list(lawyer_ids)), Lawsuit.status == "assigned")
            .group_by(Lawsuit.lawyer_id)
        )
        with self._translate_errors():
            result = await self.session.execute(statement)
        for lawyer_id, case_count in result.all():
            counts[lawyer_id] = int(case_count)
        return counts


class LawsuitRepository(SQLAlchemyRepository[Lawsuit]):
    """Repository for Lawsuit records."""

    model = Lawsuit

    async def find_all_with_lawyers(self, **options: Any) -> Page:
        """List lawsuits with the ``lawyer`` relationship eager-loaded.

        Args:
            options: find_all options; ``lawyer`` is added to any ``include``.

        Returns:
            A Page of lawsuits.
        """
        include = tuple(options.pop("include", ())) + ("lawyer",)
        return await self.find_all(include=tuple(dict.fromkeys(include)), **options)

    async def find_by_status(self, status: str, **options: Any) -> Page:
        """List lawsuits in one status, with their lawyers.

        Args:
            status: pending, assigned or resolved.
            options: find_all options.

        Returns:
            A Page of lawsuits.
        """
        filters = {**(options.pop("filters", None) or {}), "status": status}
        return await self.find_all_with_lawyers(filters=filters, **options)

    async def find_by_lawyer(self, lawyer_id: uuid.UUID, **options: Any) -> Page:
        """List the lawsuits referencing a lawyer, in any status.

        Args:
            lawyer_id: Lawyer whose lawsuits are listed.
            options: find_all options.

        Returns:
            A Page of lawsuits.
        """
        filters = {**(options.pop("filters", None) or {}), "lawyer_id": lawyer_id}
        return await self.find_all_with_lawyers(filters=filters, **options)

    async def assign_lawyer(
        self, lawsuit_id: uuid.UUID, lawyer_id: uuid.UUID, max_active_cases: int
    ) -> Lawsuit:
        """Assign a lawyer to a lawsuit inside the current transaction.

        The workload cap is enforced by the write itself: the UPDATE only
        matches when the lawyer's assigned-case count, evaluated inside the
        same statement, is still below ``max_active_cases``. SQLite takes its
        write lock before evaluating the statement, and on databases that
        support it the lawyer row is also held with ``SELECT ... FOR UPDATE``,
        so concurrent assignments cannot push a lawyer past the cap.
        ``lawyer_id`` and ``status`` are written together.

        Args:
            lawsuit_id: Lawsuit to assign.
            lawyer_id: Lawyer receiving the case.
            max_active_cases: Upper bound on the lawyer's assigned cases.

        Returns:
            The assigned lawsuit with its lawyer loaded.

        Raises:
            NotFoundError: The lawsuit or the lawyer does not exist.
            BusinessRuleError: The lawyer is not active.
            WorkloadExceededError: The lawyer already has the maximum workload.
        """
        await self.find_by_id(lawsuit_id)

        with self._translate_errors():
            result = await self.session.execute(
                select(Lawyer).where(Lawyer.id == lawyer_id).with_for_update()
            )
            lawyer = result.scalar_one_or_none()
        if lawyer is None:
            raise NotFoundError("Lawyer not found")
        if lawyer.status != "active":
            raise BusinessRuleError.inactive_lawyer(lawyer_id, lawyer.status)

        # Aliased so the count is not correlated with the row being updated
        counted = aliased(Lawsuit)
        assigned_cases = (
            select(func.count(counted.id))
            .where(counted.lawyer_id == lawyer_id, counted.status == "assigned")
            .scalar_subquery()
        )
        statement = (
            update(Lawsuit)
            .where(Lawsuit.id == lawsuit_id, assigned_cases < max_active_cases)
            .values(
                lawyer_id=lawyer_id,
                status="assigned",
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        with self._translate_errors():
            result = await self.session.execute(statement)
        if result.rowcount == 0:
            active_cases = await self.count({"lawyer_id": lawyer_id, "status": "assigned"})
            raise WorkloadExceededError(active_cases, max_active_cases)

        return await self.find_by_id(lawsuit_id, include=("lawyer",))

    async def get_lawsuit_stats(self) -> LawsuitBreakdown:
        """Count all lawsuits, by status and by case type."""
        breakdown = LawsuitBreakdown()
        with self._translate_errors():
            by_status = await self.session.execute(
                select(Lawsuit.status, func.count(Lawsuit.id)).group_by(Lawsuit.status)
            )
            by_type = await self.session.execute(
                select(Lawsuit.case_type, func.count(Lawsuit.id)).group_by(Lawsuit.case_type)
            )
        for status, status_count in by_status.all():
            breakdown.by_status[status] = int(status_count)
            breakdown.total += int(status_count)
        for case_type, type_count in by_type.all():
            breakdown.by_type[case_type] = int(type_count)
        return breakdown
