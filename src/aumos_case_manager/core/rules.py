"""Entity rule sets for aumos-case-manager.

A rule set supplies the hooks EntityService runs around repository calls
(before_create, before_update, before_delete, process_list_options). Hooks
normalize the payload in place and raise domain errors to abort.
"""

import re
import uuid
from collections.abc import Mapping
from typing import Any

from aumos_case_manager.core.interfaces import ILawsuitRepository, ILawyerRepository
from aumos_case_manager.core.models import (
    CASE_TYPE_SPECIALIZATIONS,
    DEFAULT_SPECIALIZATION,
    Lawyer,
)
from aumos_case_manager.errors import (
    BusinessRuleError,
    InvalidCaseNumberError,
    NotFoundError,
    ValidationError,
)

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
PHONE_PATTERN = re.compile(r"[0-9]{7,15}")
CASE_NUMBER_PATTERN = re.compile(r"[A-Z]{2,4}-[0-9]{4}-[0-9]{3,4}")

LOW_WORKLOAD_MAX = 3
MODERATE_WORKLOAD_MAX = 6
SPECIALIZATION_BONUS = 10
WORKLOAD_SCORE_CEILING = 10


def normalize_specialization(specialization: str) -> str:
    """Title-case each word; runs of whitespace collapse to one space.

    >>> normalize_specialization("derecho   LABORAL")
    'Derecho Laboral'
    """
    return " ".join(word[:1].upper() + word[1:].lower() for word in specialization.split())


def expected_specialization(case_type: str) -> str:
    """Return the lawyer specialization a case type calls for."""
    return CASE_TYPE_SPECIALIZATIONS.get(case_type, DEFAULT_SPECIALIZATION)


def is_valid_case_number(case_number: Any) -> bool:
    return isinstance(case_number, str) and CASE_NUMBER_PATTERN.fullmatch(case_number) is not None


def is_same_party(plaintiff: str, defendant: str) -> bool:
    return plaintiff.strip().lower() == defendant.strip().lower()


def score_candidate(specialization_matches: bool, active_cases: int) -> int:
    """Score a candidate lawyer: specialization bonus plus workload scarcity."""
    bonus = SPECIALIZATION_BONUS if specialization_matches else 0
    return bonus + max(0, WORKLOAD_SCORE_CEILING - active_cases)


def match_reason(specialization_matches: bool, active_cases: int) -> str:
    reasons = []
    if specialization_matches:
        reasons.append("Perfect specialization match")
    if active_cases <= LOW_WORKLOAD_MAX:
        reasons.append("Low workload")
    elif active_cases <= MODERATE_WORKLOAD_MAX:
        reasons.append("Moderate workload")
    else:
        reasons.append("High workload")
    return ", ".join(reasons)


def normalize_list_options(
    options: Mapping[str, Any], default_page_size: int, max_page_size: int
) -> dict[str, Any]:
    """Fill in missing paging options and cap the page size.

    Only absent (None) values are defaulted; out-of-range values such as
    ``limit=0`` are passed on for the repository to reject.
    """
    normalized = dict(options)
    if normalized.get("page") is None:
        normalized["page"] = 1
    limit = normalized.get("limit")
    if limit is None:
        limit = default_page_size
    normalized["limit"] = min(limit, max_page_size)
    return normalized


class DefaultRules:
    """Rule set with no entity-specific behaviour."""

    def __init__(self, default_page_size: int = 10, max_page_size: int = 100) -> None:
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size

    async def before_create(self, data: dict[str, Any]) -> None:
        return None

    async def before_update(self, entity_id: uuid.UUID, patch: dict[str, Any]) -> None:
        return None

    async def before_delete(self, entity_id: uuid.UUID) -> None:
        return None

    async def process_list_options(self, options: dict[str, Any]) -> dict[str, Any]:
        return normalize_list_options(options, self._default_page_size, self._max_page_size)


class LawyerRules:
    """Validation and lifecycle constraints for Lawyer records.

    Args:
        repository: Lawyer repository used to inspect a lawyer's lawsuits.
        default_page_size: Page size applied when a list call gives none.
        max_page_size: Upper bound on the page size of list calls.
    """

    def __init__(
        self,
        repository: ILawyerRepository,
        default_page_size: int = 10,
        max_page_size: int = 100,
    ) -> None:
        self._repository = repository
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size

    async def before_create(self, data: dict[str, Any]) -> None:
        """Re-check email and phone shape and normalize the specialization.

        Raises:
            ValidationError: Email or phone is missing or malformed.
        """
        self._validate_contact(data, partial=False)
        self._normalize(data)

    async def before_update(self, lawyer_id: uuid.UUID, patch: dict[str, Any]) -> None:
        """Validate the fields present in ``patch`` and guard deactivation.

        Raises:
            ValidationError: A supplied email or phone is malformed.
            NotFoundError: The lawyer does not exist.
            BusinessRuleError: Deactivation requested while cases are assigned.
        """
        self._validate_contact(patch, partial=True)
        self._normalize(patch)

        if patch.get("status") == "inactive":
            lawyer = await self._load_with_lawsuits(lawyer_id)
            active_cases = sum(1 for lawsuit in lawyer.lawsuits if lawsuit.status == "assigned")
            if active_cases > 0:
                raise BusinessRuleError.cannot_deactivate_lawyer_with_cases(active_cases)

    async def before_delete(self, lawyer_id: uuid.UUID) -> None:
        """Block deletion while any lawsuit, of any status, references the lawyer.

        Raises:
            NotFoundError: The lawyer does not exist.
            BusinessRuleError: The lawyer still has lawsuits.
        """
        lawyer = await self._load_with_lawsuits(lawyer_id)
        if lawyer.lawsuits:
            raise BusinessRuleError.cannot_delete_lawyer_with_cases(len(lawyer.lawsuits))

    async def process_list_options(self, options: dict[str, Any]) -> dict[str, Any]:
        """Apply paging defaults and normalize a ``specialization`` filter.

        Args:
            options: Raw list options from the caller.

        Returns:
            A new options dict; ``options`` itself is left untouched.
        """
        normalized = normalize_list_options(options, self._default_page_size, self._max_page_size)
        filters = dict(normalized.get("filters") or {})
        if isinstance(filters.get("specialization"), str):
            filters["specialization"] = normalize_specialization(filters["specialization"])
            normalized["filters"] = filters
        return normalized

    async def _load_with_lawsuits(self, lawyer_id: uuid.UUID) -> Lawyer:
        lawyer = await self._repository.find_by_id_with_lawsuits(lawyer_id)
        if lawyer is None:
            raise NotFoundError("Lawyer not found")
        return lawyer

    @staticmethod
    def _validate_contact(data: Mapping[str, Any], partial: bool) -> None:
        errors = []
        if not partial or "email" in data:
            email = data.get("email")
            if not isinstance(email, str) or EMAIL_PATTERN.fullmatch(email) is None:
                errors.append({"field": "email", "message": "Invalid email format"})
        if not partial or "phone" in data:
            phone = data.get("phone")
            if not isinstance(phone, str) or PHONE_PATTERN.fullmatch(phone) is None:
                errors.append(
                    {
                        "field": "phone",
                        "message": "Phone must contain only numbers and be between 7-15 digits",
                    }
                )
        if errors:
            raise ValidationError("; ".join(error["message"] for error in errors), errors)

    @staticmethod
    def _normalize(data: dict[str, Any]) -> None:
        if isinstance(data.get("specialization"), str):
            data["specialization"] = normalize_specialization(data["specialization"])


class LawsuitRules:
    """Validation and lifecycle constraints for Lawsuit records.

    ``lawyer_id`` and ``status=assigned`` are only ever written by the
    assignment workflow, never through create or update payloads.

    Args:
        repository: Lawsuit repository used to read stored party names.
        default_page_size: Page size applied when a list call gives none.
        max_page_size: Upper bound on the page size of list calls.
    """

    def __init__(
        self,
        repository: ILawsuitRepository,
        default_page_size: int = 10,
        max_page_size: int = 100,
    ) -> None:
        self._repository = repository
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size

    async def before_create(self, data: dict[str, Any]) -> None:
        """Check the case number format, party distinctness and initial state.

        Raises:
            InvalidCaseNumberError: The case number is not ``ABC-YYYY-001`` shaped.
            BusinessRuleError: Plaintiff equals defendant, or the payload
                tries to assign a lawyer.
        """
        self._check_case_number(data.get("case_number"))
        self._check_parties(data.get("plaintiff"), data.get("defendant"))
        if data.get("lawyer_id") is not None:
            raise BusinessRuleError.assignment_only_field("lawyer_id")
        if data.get("status") == "assigned":
            raise BusinessRuleError.assignment_only_field("status")

    async def before_update(self, lawsuit_id: uuid.UUID, patch: dict[str, Any]) -> None:
        """Re-apply the create rules to the fields present in ``patch``.

        Moving a lawsuit back to ``pending`` also clears its lawyer.

        Raises:
            InvalidCaseNumberError: A new case number is malformed.
            BusinessRuleError: The parties would coincide, or the patch
                writes ``lawyer_id`` or ``status=assigned``.
            NotFoundError: The lawsuit does not exist.
        """
        if "lawyer_id" in patch:
            raise BusinessRuleError.assignment_only_field("lawyer_id")
        if patch.get("status") == "assigned":
            raise BusinessRuleError.assignment_only_field("status")
        if "case_number" in patch:
            self._check_case_number(patch["case_number"])
        if "plaintiff" in patch or "defendant" in patch:
            plaintiff = patch.get("plaintiff")
            defendant = patch.get("defendant")
            if plaintiff is None or defendant is None:
                current = await self._repository.find_by_id(lawsuit_id)
                plaintiff = current.plaintiff if plaintiff is None else plaintiff
                defendant = current.defendant if defendant is None else defendant
            self._check_parties(plaintiff, defendant)
        if patch.get("status") == "pending":
            patch["lawyer_id"] = None

    async def before_delete(self, lawsuit_id: uuid.UUID) -> None:
        return None

    async def process_list_options(self, options: dict[str, Any]) -> dict[str, Any]:
        """Apply paging defaults to a lawsuit list call."""
        return normalize_list_options(options, self._default_page_size, self._max_page_size)

    @staticmethod
    def _check_case_number(case_number: Any) -> None:
        if not is_valid_case_number(case_number):
            raise InvalidCaseNumberError(str(case_number))

    @staticmethod
    def _check_parties(plaintiff: Any, defendant: Any) -> None:
        if not isinstance(plaintiff, str) or not isinstance(defendant, str):
            return
        if is_same_party(plaintiff, defendant):
            raise BusinessRuleError.same_party_in_lawsuit(plaintiff.strip())
