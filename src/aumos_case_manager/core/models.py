"""SQLAlchemy ORM models and read models for aumos-case-manager.

Tables:
  - lawyers: lawyers who can be assigned cases
  - lawsuits: legal cases, optionally assigned to one lawyer

A Lawyer never stores references to its Lawsuits; ``Lawyer.lawsuits`` is the
back-reference of ``Lawsuit.lawyer_id`` and is only loaded on request.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, Enum, ForeignKey, String, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

LAWYER_STATUSES = ("active", "inactive")
LAWSUIT_STATUSES = ("pending", "assigned", "resolved")
CASE_TYPES = ("civil", "criminal", "labor", "commercial")

# Expected lawyer specialization for each case type
CASE_TYPE_SPECIALIZATIONS: dict[str, str] = {
    "civil": "Civil",
    "criminal": "Penal",
    "labor": "Laboral",
    "commercial": "Comercial",
}
DEFAULT_SPECIALIZATION = "General"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base shared by all aumos-case-manager tables."""


class TimestampedModel(Base):
    """Abstract base providing a UUID primary key and audit timestamps."""

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class Lawyer(TimestampedModel):
    """A lawyer who can be assigned lawsuits.

    Table: lawyers
    """

    __tablename__ = "lawyers"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[str] = mapped_column(String(15), nullable=False)
    specialization: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        Enum(*LAWYER_STATUSES, name="lawyer_status", create_constraint=True, validate_strings=True),
        nullable=False,
        default="active",
        index=True,
    )

    lawsuits: Mapped[list["Lawsuit"]] = relationship(
        back_populates="lawyer",
        passive_deletes=True,
        order_by="Lawsuit.created_at",
    )


class Lawsuit(TimestampedModel):
    """A legal case tracked through pending → assigned → resolved.

    Table: lawsuits
    """

    __tablename__ = "lawsuits"

    case_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    plaintiff: Mapped[str] = mapped_column(String(200), nullable=False)
    defendant: Mapped[str] = mapped_column(String(200), nullable=False)
    case_type: Mapped[str] = mapped_column(
        Enum(*CASE_TYPES, name="case_type", create_constraint=True, validate_strings=True),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        Enum(*LAWSUIT_STATUSES, name="lawsuit_status", create_constraint=True, validate_strings=True),
        nullable=False,
        default="pending",
        index=True,
    )
    lawyer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("lawyers.id", ondelete="SET NULL"), nullable=True, index=True
    )

    lawyer: Mapped[Lawyer | None] = relationship(back_populates="lawsuits")


# ---------------------------------------------------------------------------
# Read models returned by service operations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Pagination:
    """Pagination metadata for a page of results."""

    page: int
    limit: int | None
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


@dataclass(frozen=True)
class Page:
    """A page of entities plus its pagination metadata."""

    items: list[Any]
    pagination: Pagination


@dataclass
class LawsuitBreakdown:
    """Lawsuit counts grouped by status and by case type."""

    total: int = 0
    by_status: dict[str, int] = field(default_factory=lambda: dict.fromkeys(LAWSUIT_STATUSES, 0))
    by_type: dict[str, int] = field(default_factory=lambda: dict.fromkeys(CASE_TYPES, 0))

    @classmethod
    def from_lawsuits(cls, lawsuits: list[Lawsuit]) -> "LawsuitBreakdown":
        breakdown = cls()
        for lawsuit in lawsuits:
            breakdown.total += 1
            breakdown.by_status[lawsuit.status] = breakdown.by_status.get(lawsuit.status, 0) + 1
            breakdown.by_type[lawsuit.case_type] = breakdown.by_type.get(lawsuit.case_type, 0) + 1
        return breakdown


@dataclass
class LawyerStats:
    """A lawyer together with the breakdown of its lawsuits."""

    lawyer: Lawyer
    stats: LawsuitBreakdown
    lawsuits: list[Lawsuit]


@dataclass(frozen=True)
class LawyerWorkload:
    """Case counts for a single lawyer."""

    id: uuid.UUID
    name: str
    specialization: str
    status: str
    active_cases: int
    resolved_cases: int
    total_cases: int


@dataclass(frozen=True)
class WorkloadSummary:
    """Aggregate workload figures across all lawyers."""

    total_lawyers: int
    active_lawyers: int
    average_cases_per_lawyer: float
    most_busy_lawyer: LawyerWorkload | None


@dataclass(frozen=True)
class WorkloadReport:
    """Per-lawyer workloads sorted by active cases, plus a summary."""

    lawyers: list[LawyerWorkload]
    summary: WorkloadSummary


@dataclass(frozen=True)
class LawsuitSummary:
    """Minimal identifying fields of a lawsuit."""

    id: uuid.UUID
    case_number: str
    case_type: str


@dataclass(frozen=True)
class LawyerRecommendation:
    """A scored candidate lawyer for a lawsuit."""

    lawyer: Lawyer
    score: int
    active_cases: int
    match_reason: str


@dataclass(frozen=True)
class RecommendationResult:
    """The top-ranked candidate lawyers for a lawsuit."""

    lawsuit: LawsuitSummary
    recommendations: list[LawyerRecommendation]


@dataclass(frozen=True)
class LawsuitMetrics:
    """Derived percentages, rounded to two decimals."""

    assignment_rate: float
    resolution_rate: float
    pending_percentage: float


@dataclass(frozen=True)
class LawsuitAnalytics:
    """Lawsuit totals, breakdowns, metrics and the most recent cases."""

    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    metrics: LawsuitMetrics
    recent_lawsuits: list[Lawsuit]
