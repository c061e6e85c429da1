"""Business logic services for aumos-case-manager.

Services contain all domain logic. They:
  - Accept dependencies via constructor injection (repositories, rule sets,
    settings, logger)
  - Run rule-set hooks before delegating to repositories
  - Raise domain errors from aumos_case_manager.errors
  - Are framework-agnostic (no FastAPI, no direct DB access)

Every failure is logged and re-raised unchanged to the caller.
"""

import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any, Generic, TypeVar

import structlog

from aumos_case_manager.core.interfaces import (
    IEntityRepository,
    ILawsuitRepository,
    ILawyerRepository,
    IRuleSet,
)
from aumos_case_manager.core.models import (
    LAWSUIT_STATUSES,
    Lawsuit,
    LawsuitAnalytics,
    LawsuitMetrics,
    LawsuitSummary,
    Lawyer,
    LawyerRecommendation,
    LawyerStats,
    LawyerWorkload,
    Page,
    RecommendationResult,
    WorkloadReport,
    WorkloadSummary,
)
from aumos_case_manager.core.rules import (
    DefaultRules,
    LawsuitRules,
    LawyerRules,
    expected_specialization,
    match_reason,
    normalize_specialization,
    score_candidate,
)
from aumos_case_manager.errors import (
    BusinessRuleError,
    NotFoundError,
    ValidationError,
    WorkloadExceededError,
)
from aumos_case_manager.observability import SafeLogger, get_logger
from aumos_case_manager.settings import Settings

ModelT = TypeVar("ModelT")


def _percentage(numerator: int, denominator: int) -> float:
    if denominator == 0:
        return 0.0
    return round(numerator / denominator * 100, 2)


class EntityService(Generic[ModelT]):
    """Generic create/read/update/delete flow over one repository.

    Each operation logs its intent, runs the rule-set hook, delegates to the
    repository and logs the outcome. Errors are logged and re-raised as is.

    Args:
        repository: Data access layer implementing IEntityRepository.
        rules: Hooks run before mutations and list calls.
        entity_name: Label used in log events.
        logger: Structured logger, wrapped in SafeLogger; defaults to the module logger.
    """

    def __init__(
        self,
        repository: IEntityRepository[ModelT],
        rules: IRuleSet | None = None,
        entity_name: str = "Entity",
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._repository = repository
        self._rules = rules or DefaultRules()
        self._entity_name = entity_name
        self._logger = SafeLogger(logger or get_logger(__name__))

    @property
    def repository(self) -> IEntityRepository[ModelT]:
        """The repository this service delegates to."""
        return self._repository

    async def create(self, data: Mapping[str, Any]) -> ModelT:
        """Create an entity after the before_create hook.

        Args:
            data: Field values; the caller's mapping is not modified.

        Returns:
            The stored entity.

        Raises:
            CaseManagerError: Raised by the hook or the repository, unchanged.
        """
        payload = dict(data)
        self._logger.info(f"Creating new {self._entity_name}", data=payload)
        with self._log_failure(f"Error creating {self._entity_name}", data=payload):
            await self._rules.before_create(payload)
            entity = await self._repository.create(payload)
        self._logger.info(f"{self._entity_name} created successfully", id=str(entity.id))
        return entity

    async def get_by_id(self, entity_id: uuid.UUID) -> ModelT:
        """Fetch one entity.

        Raises:
            NotFoundError: If no entity exists with the given ID.
        """
        self._logger.info(f"Fetching {self._entity_name} by ID", id=str(entity_id))
        with self._log_failure(f"Error fetching {self._entity_name} by ID", id=str(entity_id)):
            return await self._repository.find_by_id(entity_id)

    async def get_all(self, **options: Any) -> Page:
        """List entities after the process_list_options hook.

        Args:
            options: page, limit, filters, include and order.

        Returns:
            A Page of entities with its pagination metadata.
        """
        self._logger.info(f"Fetching all {self._entity_name}s", options=options)
        with self._log_failure(f"Error fetching {self._entity_name}s", options=options):
            processed = await self._rules.process_list_options(dict(options))
            return await self._repository.find_all(**processed)

    async def update(self, entity_id: uuid.UUID, data: Mapping[str, Any]) -> ModelT:
        """Apply a partial update after the before_update hook.

        Args:
            entity_id: Entity to update.
            data: Fields to change; the caller's mapping is not modified.

        Returns:
            The updated entity.

        Raises:
            CaseManagerError: Raised by the hook or the repository, unchanged.
        """
        patch = dict(data)
        self._logger.info(f"Updating {self._entity_name}", id=str(entity_id), data=patch)
        with self._log_failure(
            f"Error updating {self._entity_name}", id=str(entity_id), data=patch
        ):
            await self._rules.before_update(entity_id, patch)
            entity = await self._repository.update(entity_id, patch)
        self._logger.info(f"{self._entity_name} updated successfully", id=str(entity_id))
        return entity

    async def delete(self, entity_id: uuid.UUID) -> dict[str, str]:
        """Delete an entity after the before_delete hook.

        Returns:
            An acknowledgement of the form ``{"message": ...}``.

        Raises:
            CaseManagerError: Raised by the hook or the repository, unchanged.
        """
        self._logger.info(f"Deleting {self._entity_name}", id=str(entity_id))
        with self._log_failure(f"Error deleting {self._entity_name}", id=str(entity_id)):
            await self._rules.before_delete(entity_id)
            result = await self._repository.delete(entity_id)
        self._logger.info(f"{self._entity_name} deleted successfully", id=str(entity_id))
        return result

    @contextmanager
    def _log_failure(self, message: str, **context: Any) -> Iterator[None]:
        try:
            yield
        except Exception as exc:
            self._logger.error(message, error=str(exc), error_type=type(exc).__name__, **context)
            raise


class LawyerService(EntityService[Lawyer]):
    """Manages lawyers: CRUD with lawyer rules, statistics and workload.

    Args:
        repository: Data access layer implementing ILawyerRepository.
        settings: Service settings (page sizes).
        logger: Structured logger; defaults to the module logger.
    """

    def __init__(
        self,
        repository: ILawyerRepository,
        settings: Settings | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        settings = settings or Settings()
        super().__init__(
            repository,
            LawyerRules(
                repository,
                default_page_size=settings.default_page_size,
                max_page_size=settings.max_page_size,
            ),
            entity_name="Lawyer",
            logger=logger,
        )
        self._lawyers = repository
        self._settings = settings

    async def get_lawyer_with_stats(self, lawyer_id: uuid.UUID) -> LawyerStats:
        """Return a lawyer with its lawsuits broken down by status and type.

        Raises:
            NotFoundError: If no lawyer exists with the given ID.
        """
        self._logger.info("Fetching lawyer with statistics", id=str(lawyer_id))
        with self._log_failure("Error fetching lawyer statistics", id=str(lawyer_id)):
            stats = await self._lawyers.get_lawyer_stats(lawyer_id)
            if stats is None:
                raise NotFoundError("Lawyer not found")
            return stats

    async def get_lawyer_lawsuits(self, lawyer_id: uuid.UUID) -> LawyerStats:
        """Return a lawyer's lawsuits newest first, with the same breakdown.

        Raises:
            NotFoundError: If no lawyer exists with the given ID.
        """
        stats = await self.get_lawyer_with_stats(lawyer_id)
        stats.lawsuits = sorted(stats.lawsuits, key=lambda lawsuit: lawsuit.created_at, reverse=True)
        return stats

    async def get_active_lawyers(self, **options: Any) -> Page:
        """List lawyers whose status is ``active``.

        Args:
            options: page, limit, filters and order.

        Returns:
            A Page of active lawyers.
        """
        self._logger.info("Fetching active lawyers", options=options)
        with self._log_failure("Error fetching active lawyers", options=options):
            processed = await self._rules.process_list_options(dict(options))
            return await self._lawyers.find_active_lawyers(**processed)

    async def get_lawyers_by_specialization(self, specialization: str | None, **options: Any) -> Page:
        """List lawyers whose normalized specialization equals ``specialization``.

        Raises:
            ValidationError: If the specialization is missing or blank.
        """
        self._logger.info(
            "Fetching lawyers by specialization", specialization=specialization, options=options
        )
        with self._log_failure(
            "Error fetching lawyers by specialization",
            specialization=specialization,
            options=options,
        ):
            if not specialization or not specialization.strip():
                raise ValidationError.for_field("specialization", "Specialization is required")
            processed = await self._rules.process_list_options(dict(options))
            return await self._lawyers.find_by_specialization(
                normalize_specialization(specialization), **processed
            )

    async def get_lawyer_workload(self) -> WorkloadReport:
        """Compute per-lawyer case counts, busiest first, plus a summary.

        Ties on active cases keep the lawyers' creation order.
        """
        self._logger.info("Calculating lawyer workload statistics")
        with self._log_failure("Error calculating lawyer workload"):
            page = await self._lawyers.find_all(limit=None, include=("lawsuits",))

        workloads = [
            LawyerWorkload(
                id=lawyer.id,
                name=lawyer.name,
                specialization=lawyer.specialization,
                status=lawyer.status,
                active_cases=sum(1 for lawsuit in lawyer.lawsuits if lawsuit.status == "assigned"),
                resolved_cases=sum(1 for lawsuit in lawyer.lawsuits if lawsuit.status == "resolved"),
                total_cases=len(lawyer.lawsuits),
            )
            for lawyer in page.items
        ]
        workloads.sort(key=lambda workload: workload.active_cases, reverse=True)

        total_active = sum(workload.active_cases for workload in workloads)
        summary = WorkloadSummary(
            total_lawyers=len(workloads),
            active_lawyers=sum(1 for workload in workloads if workload.status == "active"),
            average_cases_per_lawyer=total_active / len(workloads) if workloads else 0.0,
            most_busy_lawyer=workloads[0] if workloads else None,
        )
        return WorkloadReport(lawyers=workloads, summary=summary)


class LawsuitService(EntityService[Lawsuit]):
    """Manages lawsuits: CRUD with lawsuit rules, assignment, recommendation
    and analytics.

    Args:
        repository: Data access layer implementing ILawsuitRepository.
        lawyer_repository: Lawyer data access used by assignment and ranking.
        settings: Workload caps, recommendation and analytics sizes.
        logger: Structured logger; defaults to the module logger.
    """

    def __init__(
        self,
        repository: ILawsuitRepository,
        lawyer_repository: ILawyerRepository,
        settings: Settings | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        settings = settings or Settings()
        super().__init__(
            repository,
            LawsuitRules(
                repository,
                default_page_size=settings.default_page_size,
                max_page_size=settings.max_page_size,
            ),
            entity_name="Lawsuit",
            logger=logger,
        )
        self._lawsuits = repository
        self._lawyers = lawyer_repository
        self._settings = settings

    async def assign_lawyer(self, lawsuit_id: uuid.UUID, lawyer_id: uuid.UUID) -> Lawsuit:
        """Assign an active lawyer to a lawsuit.

        Workload and status are checked here for early, descriptive failures
        and checked again by the repository under a lock on the lawyer row
        while writing ``lawyer_id`` and ``status=assigned`` together.

        Args:
            lawsuit_id: Lawsuit to assign.
            lawyer_id: Lawyer receiving the case.

        Returns:
            The assigned lawsuit with its lawyer loaded.

        Raises:
            NotFoundError: The lawsuit or the lawyer does not exist.
            BusinessRuleError: The lawyer is not active.
            WorkloadExceededError: The lawyer already has the maximum workload.
        """
        context = {"lawsuit_id": str(lawsuit_id), "lawyer_id": str(lawyer_id)}
        self._logger.info("Assigning lawyer to lawsuit", **context)
        with self._log_failure("Error assigning lawyer", **context):
            lawsuit = await self._lawsuits.find_by_id(lawsuit_id)
            lawyer = await self._lawyers.find_by_id(lawyer_id)
            if lawyer.status != "active":
                raise BusinessRuleError.inactive_lawyer(lawyer_id, lawyer.status)

            counts = await self._lawyers.count_assigned_cases([lawyer_id])
            self._check_workload(lawyer_id, counts.get(lawyer_id, 0))
            self._check_specialization_match(lawsuit, lawyer)

            result = await self._lawsuits.assign_lawyer(
                lawsuit_id, lawyer_id, max_active_cases=self._settings.max_active_cases
            )
        self._logger.info("Lawyer assigned successfully", **context)
        return result

    async def recommend_lawyer(self, lawsuit_id: uuid.UUID) -> RecommendationResult:
        """Rank active lawyers for a lawsuit by specialization and workload.

        Raises:
            NotFoundError: The lawsuit does not exist or no lawyer is active.
        """
        self._logger.info("Recommending lawyer for lawsuit", lawsuit_id=str(lawsuit_id))
        with self._log_failure("Error recommending lawyer", lawsuit_id=str(lawsuit_id)):
            lawsuit = await self._lawsuits.find_by_id(lawsuit_id)
            candidates = (await self._lawyers.find_active_lawyers(limit=None)).items
            if not candidates:
                raise NotFoundError("No active lawyers available")
            counts = await self._lawyers.count_assigned_cases([lawyer.id for lawyer in candidates])

        wanted = expected_specialization(lawsuit.case_type)
        scored = []
        for lawyer in candidates:
            active_cases = counts.get(lawyer.id, 0)
            matches = lawyer.specialization == wanted
            scored.append(
                LawyerRecommendation(
                    lawyer=lawyer,
                    score=score_candidate(matches, active_cases),
                    active_cases=active_cases,
                    match_reason=match_reason(matches, active_cases),
                )
            )
        # list.sort is stable, so equal scores keep fetch order
        scored.sort(key=lambda recommendation: recommendation.score, reverse=True)

        return RecommendationResult(
            lawsuit=LawsuitSummary(
                id=lawsuit.id,
                case_number=lawsuit.case_number,
                case_type=lawsuit.case_type,
            ),
            recommendations=scored[: self._settings.recommendation_limit],
        )

    async def get_lawsuit_analytics(self) -> LawsuitAnalytics:
        """Summarize lawsuits by status and type with derived rates."""
        self._logger.info("Generating lawsuit analytics")
        with self._log_failure("Error generating lawsuit analytics"):
            stats = await self._lawsuits.get_lawsuit_stats()
            recent = await self._lawsuits.find_all(
                limit=self._settings.recent_lawsuits_limit,
                order=[("created_at", "desc")],
            )

        pending = stats.by_status.get("pending", 0)
        assigned = stats.by_status.get("assigned", 0)
        resolved = stats.by_status.get("resolved", 0)
        metrics = LawsuitMetrics(
            assignment_rate=_percentage(assigned + resolved, stats.total),
            resolution_rate=_percentage(resolved, assigned + resolved),
            pending_percentage=_percentage(pending, stats.total),
        )
        return LawsuitAnalytics(
            total=stats.total,
            by_status=dict(stats.by_status),
            by_type=dict(stats.by_type),
            metrics=metrics,
            recent_lawsuits=recent.items,
        )

    async def get_lawsuits_by_status(self, status: str, **options: Any) -> Page:
        """List lawsuits in one status, with their lawyers.

        Raises:
            ValidationError: If status is not pending, assigned or resolved.
        """
        self._logger.info("Fetching lawsuits by status", status=status, options=options)
        with self._log_failure("Error fetching lawsuits by status", status=status, options=options):
            if status not in LAWSUIT_STATUSES:
                raise ValidationError.for_field(
                    "status", f"Invalid status. Must be one of: {', '.join(LAWSUIT_STATUSES)}"
                )
            processed = await self._rules.process_list_options(dict(options))
            return await self._lawsuits.find_by_status(status, **processed)

    async def get_all_with_lawyers(self, **options: Any) -> Page:
        """List lawsuits with their assigned lawyer eager-loaded.

        Args:
            options: page, limit, filters and order.

        Returns:
            A Page of lawsuits.
        """
        self._logger.info("Fetching lawsuits with lawyer information", options=options)
        with self._log_failure("Error fetching lawsuits with lawyers", options=options):
            processed = await self._rules.process_list_options(dict(options))
            return await self._lawsuits.find_all_with_lawyers(**processed)

    async def get_pending_lawsuits(self, **options: Any) -> Page:
        """List lawsuits still waiting for a lawyer."""
        return await self.get_lawsuits_by_status("pending", **options)

    async def get_lawsuits_by_lawyer(self, lawyer_id: uuid.UUID, **options: Any) -> Page:
        """List a lawyer's lawsuits.

        Raises:
            NotFoundError: If no lawyer exists with the given ID.
        """
        self._logger.info("Fetching lawsuits by lawyer", lawyer_id=str(lawyer_id), options=options)
        with self._log_failure("Error fetching lawsuits by lawyer", lawyer_id=str(lawyer_id)):
            await self._lawyers.find_by_id(lawyer_id)
            processed = await self._rules.process_list_options(dict(options))
            return await self._lawsuits.find_by_lawyer(lawyer_id, **processed)

    def _check_workload(self, lawyer_id: uuid.UUID, active_cases: int) -> None:
        max_cases = self._settings.max_active_cases
        if active_cases >= max_cases:
            raise WorkloadExceededError(active_cases, max_cases)
        if active_cases >= self._settings.high_workload_threshold:
            self._logger.warning(
                "High workload assignment",
                lawyer_id=str(lawyer_id),
                active_cases=active_cases,
                max_cases=max_cases,
            )

    def _check_specialization_match(self, lawsuit: Lawsuit, lawyer: Lawyer) -> None:
        wanted = expected_specialization(lawsuit.case_type)
        if wanted != lawyer.specialization:
            self._logger.warning(
                "Specialization mismatch",
                lawsuit_id=str(lawsuit.id),
                lawyer_id=str(lawyer.id),
                case_type=lawsuit.case_type,
                expected_specialization=wanted,
                lawyer_specialization=lawyer.specialization,
            )

