"""Pydantic request and response schemas for aumos-case-manager API.

Request schemas perform shape validation (required fields, lengths, enums);
business validation happens in the service layer. Schemas are grouped by
resource following the naming convention:
  {Resource}CreateRequest / {Resource}UpdateRequest: POST / PATCH body
  {Resource}Response: GET/POST response
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

LawyerStatus = Literal["active", "inactive"]
LawsuitStatus = Literal["pending", "assigned", "resolved"]
CaseType = Literal["civil", "criminal", "labor", "commercial"]


class _ResponseModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PaginationResponse(_ResponseModel):
    """Pagination metadata for list responses."""

    page: int = Field(description="Current page number (1-based)")
    limit: int | None = Field(description="Page size; null when unpaginated")
    total: int = Field(description="Total number of matching records")
    total_pages: int = Field(description="Number of pages available")
    has_next_page: bool = Field(description="Whether a following page exists")
    has_prev_page: bool = Field(description="Whether a preceding page exists")


# ---------------------------------------------------------------------------
# Lawyer Schemas
# ---------------------------------------------------------------------------


class LawyerCreateRequest(BaseModel):
    """Request body for POST /api/v1/lawyers."""

    name: str = Field(min_length=2, max_length=100, description="Full name of the lawyer")
    email: str = Field(max_length=255, description="Unique contact email")
    phone: str = Field(min_length=7, max_length=15, description="Phone number, digits only")
    specialization: str = Field(
        min_length=2, max_length=100, description="Practice area, e.g. Laboral, Penal"
    )
    status: LawyerStatus = Field(default="active", description="Availability for assignment")


class LawyerUpdateRequest(BaseModel):
    """Request body for PATCH /api/v1/lawyers/{lawyer_id}."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, min_length=7, max_length=15)
    specialization: str | None = Field(default=None, min_length=2, max_length=100)
    status: LawyerStatus | None = Field(default=None)


class LawyerSummaryResponse(_ResponseModel):
    """Lawyer fields embedded in lawsuit responses."""

    id: uuid.UUID
    name: str
    specialization: str


class LawyerResponse(_ResponseModel):
    """Response schema for a lawyer."""

    id: uuid.UUID = Field(description="Unique identifier of the lawyer")
    name: str
    email: str
    phone: str
    specialization: str
    status: LawyerStatus
    created_at: datetime
    updated_at: datetime


class LawyerListResponse(_ResponseModel):
    items: list[LawyerResponse]
    pagination: PaginationResponse


# ---------------------------------------------------------------------------
# Lawsuit Schemas
# ---------------------------------------------------------------------------


class LawsuitCreateRequest(BaseModel):
    """Request body for POST /api/v1/lawsuits."""

    case_number: str = Field(min_length=3, max_length=50, description="Format ABC-YYYY-001")
    plaintiff: str = Field(min_length=2, max_length=200)
    defendant: str = Field(min_length=2, max_length=200)
    case_type: CaseType


class LawsuitUpdateRequest(BaseModel):
    """Request body for PATCH /api/v1/lawsuits/{lawsuit_id}."""

    case_number: str | None = Field(default=None, min_length=3, max_length=50)
    plaintiff: str | None = Field(default=None, min_length=2, max_length=200)
    defendant: str | None = Field(default=None, min_length=2, max_length=200)
    case_type: CaseType | None = Field(default=None)
    status: LawsuitStatus | None = Field(default=None)


class AssignLawyerRequest(BaseModel):
    """Request body for POST /api/v1/lawsuits/{lawsuit_id}/assign."""

    lawyer_id: uuid.UUID = Field(description="Lawyer receiving the case")


class LawsuitResponse(_ResponseModel):
    """Response schema for a lawsuit."""

    id: uuid.UUID = Field(description="Unique identifier of the lawsuit")
    case_number: str
    plaintiff: str
    defendant: str
    case_type: CaseType
    status: LawsuitStatus
    lawyer_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime


class LawsuitWithLawyerResponse(LawsuitResponse):
    """Lawsuit response including the assigned lawyer's summary."""

    lawyer: LawyerSummaryResponse | None


class LawsuitListResponse(_ResponseModel):
    items: list[LawsuitResponse]
    pagination: PaginationResponse


class LawsuitWithLawyerListResponse(_ResponseModel):
    items: list[LawsuitWithLawyerResponse]
    pagination: PaginationResponse


# ---------------------------------------------------------------------------
# Statistics, workload, recommendation and analytics Schemas
# ---------------------------------------------------------------------------


class LawsuitBreakdownResponse(_ResponseModel):
    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]


class LawyerStatsResponse(_ResponseModel):
    """A lawyer, its lawsuits and their breakdown."""

    lawyer: LawyerResponse
    stats: LawsuitBreakdownResponse
    lawsuits: list[LawsuitResponse]


class LawyerWorkloadResponse(_ResponseModel):
    id: uuid.UUID
    name: str
    specialization: str
    status: LawyerStatus
    active_cases: int
    resolved_cases: int
    total_cases: int


class WorkloadSummaryResponse(_ResponseModel):
    total_lawyers: int
    active_lawyers: int
    average_cases_per_lawyer: float
    most_busy_lawyer: LawyerWorkloadResponse | None


class WorkloadReportResponse(_ResponseModel):
    """Per-lawyer workloads, busiest first, with a summary."""

    lawyers: list[LawyerWorkloadResponse]
    summary: WorkloadSummaryResponse


class LawsuitSummaryResponse(_ResponseModel):
    id: uuid.UUID
    case_number: str
    case_type: CaseType


class LawyerRecommendationResponse(_ResponseModel):
    lawyer: LawyerResponse
    score: int = Field(description="Specialization bonus plus workload scarcity")
    active_cases: int
    match_reason: str


class RecommendationResponse(_ResponseModel):
    """Top candidate lawyers for a lawsuit."""

    lawsuit: LawsuitSummaryResponse
    recommendations: list[LawyerRecommendationResponse]


class LawsuitMetricsResponse(_ResponseModel):
    assignment_rate: float = Field(description="Percentage of lawsuits assigned or resolved")
    resolution_rate: float = Field(description="Percentage of handled lawsuits that are resolved")
    pending_percentage: float = Field(description="Percentage of lawsuits still pending")


class LawsuitAnalyticsResponse(_ResponseModel):
    """Lawsuit totals, breakdowns, derived metrics and recent cases."""

    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    metrics: LawsuitMetricsResponse
    recent_lawsuits: list[LawsuitResponse]


class DeleteResponse(BaseModel):
    message: str
