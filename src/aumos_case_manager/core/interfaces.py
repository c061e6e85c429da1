"""Abstract interfaces (Protocol classes) for aumos-case-manager.

Services depend on interfaces, not concrete implementations,
enabling dependency injection and easy test mocking.
"""

import uuid
from collections.abc import Mapping, Sequence
from typing import Any, Protocol, TypeVar, runtime_checkable

from aumos_case_manager.core.models import (
    Lawsuit,
    LawsuitBreakdown,
    Lawyer,
    LawyerStats,
    Page,
)

ModelT = TypeVar("ModelT")

# (field, "asc" | "desc") pairs
OrderSpec = Sequence[tuple[str, str]]


@runtime_checkable
class IEntityRepository(Protocol[ModelT]):
    """Generic CRUD contract every entity repository satisfies."""

    async def create(self, data: Mapping[str, Any]) -> ModelT: ...

    async def find_by_id(
        self, entity_id: uuid.UUID, include: Sequence[str] = ()
    ) -> ModelT: ...

    async def find_all(
        self,
        page: int = 1,
        limit: int | None = 10,
        filters: Mapping[str, Any] | None = None,
        include: Sequence[str] = (),
        order: OrderSpec = (),
    ) -> Page: ...

    async def update(self, entity_id: uuid.UUID, patch: Mapping[str, Any]) -> ModelT: ...

    async def delete(self, entity_id: uuid.UUID) -> dict[str, str]: ...

    async def count(self, filters: Mapping[str, Any] | None = None) -> int: ...


@runtime_checkable
class IRuleSet(Protocol):
    """Entity-specific hooks run by EntityService around repository calls.

    Hooks may mutate the payload they receive (normalization) and raise
    domain errors to abort the operation.
    """

    async def before_create(self, data: dict[str, Any]) -> None: ...

    async def before_update(self, entity_id: uuid.UUID, patch: dict[str, Any]) -> None: ...

    async def before_delete(self, entity_id: uuid.UUID) -> None: ...

    async def process_list_options(self, options: dict[str, Any]) -> dict[str, Any]: ...


@runtime_checkable
class ILawyerRepository(IEntityRepository[Lawyer], Protocol):
    """Repository interface for Lawyer records."""

    async def find_by_id_with_lawsuits(self, lawyer_id: uuid.UUID) -> Lawyer | None: ...

    async def find_active_lawyers(self, **options: Any) -> Page: ...

    async def find_by_specialization(self, specialization: str, **options: Any) -> Page: ...

    async def get_lawyer_stats(self, lawyer_id: uuid.UUID) -> LawyerStats | None: ...

    async def count_assigned_cases(
        self, lawyer_ids: Sequence[uuid.UUID]
    ) -> dict[uuid.UUID, int]: ...


@runtime_checkable
class ILawsuitRepository(IEntityRepository[Lawsuit], Protocol):
    """Repository interface for Lawsuit records."""

    async def find_all_with_lawyers(self, **options: Any) -> Page: ...

    async def find_by_status(self, status: str, **options: Any) -> Page: ...

    async def find_by_lawyer(self, lawyer_id: uuid.UUID, **options: Any) -> Page: ...

    async def assign_lawyer(
        self, lawsuit_id: uuid.UUID, lawyer_id: uuid.UUID, max_active_cases: int
    ) -> Lawsuit: ...

    async def get_lawsuit_stats(self) -> LawsuitBreakdown: ...
