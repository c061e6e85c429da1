"""API router for aumos-case-manager.

All endpoints are registered here and included in main.py under /api/v1.
Routes delegate all logic to the service layer; there is no business logic in routes.
Services are resolved from a per-request dependency container.
"""

import uuid
from functools import lru_cache

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aumos_case_manager.adapters.database import get_db_session
from aumos_case_manager.api.schemas import (
    AssignLawyerRequest,
    DeleteResponse,
    LawsuitAnalyticsResponse,
    LawsuitCreateRequest,
    LawsuitListResponse,
    LawsuitResponse,
    LawsuitUpdateRequest,
    LawsuitWithLawyerListResponse,
    LawsuitWithLawyerResponse,
    LawyerCreateRequest,
    LawyerListResponse,
    LawyerResponse,
    LawyerStatsResponse,
    LawyerUpdateRequest,
    RecommendationResponse,
    WorkloadReportResponse,
)
from aumos_case_manager.bootstrap import LAWSUIT_SERVICE, LAWYER_SERVICE, build_container
from aumos_case_manager.core.container import Container
from aumos_case_manager.core.services import LawsuitService, LawyerService
from aumos_case_manager.settings import Settings

router = APIRouter()


# ---------------------------------------------------------------------------
# Dependency factories
# ---------------------------------------------------------------------------


@lru_cache
def get_settings() -> Settings:
    """Provide the process-wide settings, read once from the environment."""
    return Settings()


def get_container(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> Container:
    """Provide a container bound to the request's database session."""
    return build_container(session, settings)


def get_lawyer_service(container: Container = Depends(get_container)) -> LawyerService:
    return container.resolve(LAWYER_SERVICE)


def get_lawsuit_service(container: Container = Depends(get_container)) -> LawsuitService:
    return container.resolve(LAWSUIT_SERVICE)


# ---------------------------------------------------------------------------
# Lawyer endpoints
# ---------------------------------------------------------------------------


@router.post("/lawyers", response_model=LawyerResponse, status_code=201, tags=["lawyers"])
async def create_lawyer(
    request: LawyerCreateRequest,
    service: LawyerService = Depends(get_lawyer_service),
) -> LawyerResponse:
    """Register a new lawyer."""
    lawyer = await service.create(request.model_dump())
    return LawyerResponse.model_validate(lawyer)


@router.get("/lawyers", response_model=LawyerListResponse, tags=["lawyers"])
async def list_lawyers(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: str | None = Query(default=None, description="Filter by lawyer status"),
    service: LawyerService = Depends(get_lawyer_service),
) -> LawyerListResponse:
    """List lawyers, optionally filtered by status."""
    filters = {"status": status} if status else {}
    result = await service.get_all(page=page, limit=limit, filters=filters)
    return LawyerListResponse.model_validate(result)


@router.get("/lawyers/workload", response_model=WorkloadReportResponse, tags=["lawyers"])
async def get_lawyer_workload(
    service: LawyerService = Depends(get_lawyer_service),
) -> WorkloadReportResponse:
    """Report every lawyer's case counts, busiest first."""
    report = await service.get_lawyer_workload()
    return WorkloadReportResponse.model_validate(report)


@router.get("/lawyers/active", response_model=LawyerListResponse, tags=["lawyers"])
async def list_active_lawyers(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    service: LawyerService = Depends(get_lawyer_service),
) -> LawyerListResponse:
    """List lawyers available for assignment."""
    result = await service.get_active_lawyers(page=page, limit=limit)
    return LawyerListResponse.model_validate(result)


@router.get(
    "/lawyers/specialization/{specialization}",
    response_model=LawyerListResponse,
    tags=["lawyers"],
)
async def list_lawyers_by_specialization(
    specialization: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    service: LawyerService = Depends(get_lawyer_service),
) -> LawyerListResponse:
    """List lawyers practicing the given specialization."""
    result = await service.get_lawyers_by_specialization(specialization, page=page, limit=limit)
    return LawyerListResponse.model_validate(result)


@router.get("/lawyers/{lawyer_id}", response_model=LawyerResponse, tags=["lawyers"])
async def get_lawyer(
    lawyer_id: uuid.UUID,
    service: LawyerService = Depends(get_lawyer_service),
) -> LawyerResponse:
    """Return one lawyer."""
    lawyer = await service.get_by_id(lawyer_id)
    return LawyerResponse.model_validate(lawyer)


@router.get("/lawyers/{lawyer_id}/stats", response_model=LawyerStatsResponse, tags=["lawyers"])
async def get_lawyer_stats(
    lawyer_id: uuid.UUID,
    service: LawyerService = Depends(get_lawyer_service),
) -> LawyerStatsResponse:
    """Return a lawyer with its lawsuits broken down by status and type."""
    stats = await service.get_lawyer_with_stats(lawyer_id)
    return LawyerStatsResponse.model_validate(stats)


@router.get("/lawyers/{lawyer_id}/lawsuits", response_model=LawyerStatsResponse, tags=["lawyers"])
async def get_lawyer_lawsuits(
    lawyer_id: uuid.UUID,
    service: LawyerService = Depends(get_lawyer_service),
) -> LawyerStatsResponse:
    """Return a lawyer's lawsuits, newest first."""
    report = await service.get_lawyer_lawsuits(lawyer_id)
    return LawyerStatsResponse.model_validate(report)


@router.patch("/lawyers/{lawyer_id}", response_model=LawyerResponse, tags=["lawyers"])
async def update_lawyer(
    lawyer_id: uuid.UUID,
    request: LawyerUpdateRequest,
    service: LawyerService = Depends(get_lawyer_service),
) -> LawyerResponse:
    """Update a lawyer. Deactivation is refused while cases are assigned."""
    lawyer = await service.update(lawyer_id, request.model_dump(exclude_unset=True))
    return LawyerResponse.model_validate(lawyer)


@router.delete("/lawyers/{lawyer_id}", response_model=DeleteResponse, tags=["lawyers"])
async def delete_lawyer(
    lawyer_id: uuid.UUID,
    service: LawyerService = Depends(get_lawyer_service),
) -> DeleteResponse:
    """Delete a lawyer that has no lawsuits."""
    return DeleteResponse(**await service.delete(lawyer_id))


# ---------------------------------------------------------------------------
# Lawsuit endpoints
# ---------------------------------------------------------------------------


@router.post("/lawsuits", response_model=LawsuitResponse, status_code=201, tags=["lawsuits"])
async def create_lawsuit(
    request: LawsuitCreateRequest,
    service: LawsuitService = Depends(get_lawsuit_service),
) -> LawsuitResponse:
    """Open a new lawsuit in pending status."""
    lawsuit = await service.create(request.model_dump())
    return LawsuitResponse.model_validate(lawsuit)


@router.get("/lawsuits", response_model=LawsuitWithLawyerListResponse, tags=["lawsuits"])
async def list_lawsuits(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    case_type: str | None = Query(default=None, description="Filter by case type"),
    service: LawsuitService = Depends(get_lawsuit_service),
) -> LawsuitWithLawyerListResponse:
    """List lawsuits with their assigned lawyers."""
    filters = {"case_type": case_type} if case_type else {}
    result = await service.get_all_with_lawyers(page=page, limit=limit, filters=filters)
    return LawsuitWithLawyerListResponse.model_validate(result)


@router.get("/lawsuits/analytics", response_model=LawsuitAnalyticsResponse, tags=["lawsuits"])
async def get_lawsuit_analytics(
    service: LawsuitService = Depends(get_lawsuit_service),
) -> LawsuitAnalyticsResponse:
    """Summarize lawsuits by status and type with derived rates."""
    analytics = await service.get_lawsuit_analytics()
    return LawsuitAnalyticsResponse.model_validate(analytics)


@router.get(
    "/lawsuits/status/{status}",
    response_model=LawsuitWithLawyerListResponse,
    tags=["lawsuits"],
)
async def list_lawsuits_by_status(
    status: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    service: LawsuitService = Depends(get_lawsuit_service),
) -> LawsuitWithLawyerListResponse:
    """List lawsuits in one status, with their lawyers."""
    result = await service.get_lawsuits_by_status(status, page=page, limit=limit)
    return LawsuitWithLawyerListResponse.model_validate(result)


@router.get(
    "/lawsuits/lawyer/{lawyer_id}",
    response_model=LawsuitWithLawyerListResponse,
    tags=["lawsuits"],
)
async def list_lawsuits_by_lawyer(
    lawyer_id: uuid.UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    service: LawsuitService = Depends(get_lawsuit_service),
) -> LawsuitWithLawyerListResponse:
    """List the lawsuits referencing a lawyer."""
    result = await service.get_lawsuits_by_lawyer(lawyer_id, page=page, limit=limit)
    return LawsuitWithLawyerListResponse.model_validate(result)


@router.get("/lawsuits/{lawsuit_id}", response_model=LawsuitResponse, tags=["lawsuits"])
async def get_lawsuit(
    lawsuit_id: uuid.UUID,
    service: LawsuitService = Depends(get_lawsuit_service),
) -> LawsuitResponse:
    """Return one lawsuit."""
    lawsuit = await service.get_by_id(lawsuit_id)
    return LawsuitResponse.model_validate(lawsuit)


@router.patch("/lawsuits/{lawsuit_id}", response_model=LawsuitResponse, tags=["lawsuits"])
async def update_lawsuit(
    lawsuit_id: uuid.UUID,
    request: LawsuitUpdateRequest,
    service: LawsuitService = Depends(get_lawsuit_service),
) -> LawsuitResponse:
    """Update a lawsuit. Assignment goes through POST /assign instead."""
    lawsuit = await service.update(lawsuit_id, request.model_dump(exclude_unset=True))
    return LawsuitResponse.model_validate(lawsuit)


@router.delete("/lawsuits/{lawsuit_id}", response_model=DeleteResponse, tags=["lawsuits"])
async def delete_lawsuit(
    lawsuit_id: uuid.UUID,
    service: LawsuitService = Depends(get_lawsuit_service),
) -> DeleteResponse:
    """Delete a lawsuit."""
    return DeleteResponse(**await service.delete(lawsuit_id))


@router.post(
    "/lawsuits/{lawsuit_id}/assign",
    response_model=LawsuitWithLawyerResponse,
    tags=["lawsuits"],
)
async def assign_lawyer(
    lawsuit_id: uuid.UUID,
    request: AssignLawyerRequest,
    service: LawsuitService = Depends(get_lawsuit_service),
) -> LawsuitWithLawyerResponse:
    """Assign an active lawyer with spare workload to the lawsuit."""
    lawsuit = await service.assign_lawyer(lawsuit_id, request.lawyer_id)
    return LawsuitWithLawyerResponse.model_validate(lawsuit)


@router.get(
    "/lawsuits/{lawsuit_id}/recommendations",
    response_model=RecommendationResponse,
    tags=["lawsuits"],
)
async def recommend_lawyer(
    lawsuit_id: uuid.UUID,
    service: LawsuitService = Depends(get_lawsuit_service),
) -> RecommendationResponse:
    """Rank the best active lawyers for the lawsuit."""
    result = await service.recommend_lawyer(lawsuit_id)
    return RecommendationResponse.model_validate(result)
