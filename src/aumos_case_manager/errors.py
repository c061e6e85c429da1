"""Domain error taxonomy for aumos-case-manager.

Every error raised by the repositories and services derives from
CaseManagerError. Errors are operational (a client can act on them) unless
stated otherwise; ConfigurationError signals a wiring bug at startup.
"""

from typing import Any

MAX_WORKLOAD_RULE = "MAX_WORKLOAD_RULE"
DEACTIVATION_RULE = "DEACTIVATION_RULE"
DELETION_RULE = "DELETION_RULE"
SAME_PARTY_RULE = "SAME_PARTY_RULE"
CASE_NUMBER_FORMAT_RULE = "CASE_NUMBER_FORMAT_RULE"
INACTIVE_LAWYER_RULE = "INACTIVE_LAWYER_RULE"
ASSIGNMENT_RULE = "ASSIGNMENT_RULE"


class CaseManagerError(Exception):
    """Base class for all aumos-case-manager errors.

    Attributes:
        status_code: HTTP status the API layer reports for this error.
        error_code: Stable machine-readable error identifier.
        is_operational: False for programmer/configuration errors.
    """

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    is_operational: bool = True

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def status(self) -> str:
        """Return 'fail' for client errors and 'error' for server errors."""
        return "fail" if 400 <= self.status_code < 500 else "error"

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for logging and API responses."""
        return {
            "name": type(self).__name__,
            "message": self.message,
            "status_code": self.status_code,
            "error_code": self.error_code,
            "is_operational": self.is_operational,
        }


class ValidationError(CaseManagerError):
    """Malformed or out-of-range input.

    Args:
        message: Summary of the validation failure.
        errors: Per-field messages as ``{"field": ..., "message": ...}`` dicts.
    """

    status_code = 400
    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        """Build an error describing a single invalid field."""
        return cls(message, [{"field": field, "message": message}])

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "errors": self.errors}


class ConflictError(CaseManagerError):
    """A unique constraint was violated (duplicate email, case number)."""

    status_code = 409
    error_code = "CONFLICT"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "field": self.field}


class NotFoundError(CaseManagerError):
    """A referenced entity does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"


class InvalidReferenceError(CaseManagerError):
    """A foreign key points at a record that does not exist."""

    status_code = 400
    error_code = "INVALID_REFERENCE"


class BusinessRuleError(CaseManagerError):
    """A named business rule was violated.

    Args:
        message: Description of the violation.
        rule: Identifier of the violated rule, e.g. ``MAX_WORKLOAD_RULE``.
        context: Diagnostic values relevant to the violation.
    """

    status_code = 400
    error_code = "BUSINESS_RULE_VIOLATION"

    def __init__(
        self,
        message: str,
        rule: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.rule = rule
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "rule": self.rule, "context": self.context}

    @classmethod
    def cannot_deactivate_lawyer_with_cases(cls, active_cases: int) -> "BusinessRuleError":
        return cls(
            f"Cannot deactivate lawyer with {active_cases} active cases. "
            "Please reassign cases first.",
            DEACTIVATION_RULE,
            {"active_cases": active_cases},
        )

    @classmethod
    def cannot_delete_lawyer_with_cases(cls, total_cases: int) -> "BusinessRuleError":
        return cls(
            "Cannot delete lawyer with associated lawsuits. "
            "Please reassign or resolve all cases first.",
            DELETION_RULE,
            {"total_cases": total_cases},
        )

    @classmethod
    def same_party_in_lawsuit(cls, party: str) -> "BusinessRuleError":
        return cls(
            "Plaintiff and defendant cannot be the same party",
            SAME_PARTY_RULE,
            {"party": party},
        )

    @classmethod
    def inactive_lawyer(cls, lawyer_id: Any, status: str) -> "BusinessRuleError":
        return cls(
            "Cannot assign inactive lawyer",
            INACTIVE_LAWYER_RULE,
            {"lawyer_id": str(lawyer_id), "status": status},
        )

    @classmethod
    def assignment_only_field(cls, field: str) -> "BusinessRuleError":
        return cls(
            f"'{field}' can only be changed through lawyer assignment",
            ASSIGNMENT_RULE,
            {"field": field},
        )


class WorkloadExceededError(BusinessRuleError):
    """The lawyer already carries the maximum number of assigned cases."""

    def __init__(self, current_cases: int, max_cases: int) -> None:
        super().__init__(
            f"Lawyer has reached maximum workload ({current_cases}/{max_cases} active cases). "
            "Please assign to another lawyer.",
            MAX_WORKLOAD_RULE,
            {"current_cases": current_cases, "max_cases": max_cases},
        )


class InvalidCaseNumberError(BusinessRuleError, ValidationError):
    """The case number does not follow the ``ABC-YYYY-001`` format.

    Raised as a business rule violation that is also a validation error, so
    callers handling either class see it.
    """

    def __init__(self, case_number: str) -> None:
        message = "Case number must follow format: ABC-YYYY-001"
        BusinessRuleError.__init__(
            self, message, CASE_NUMBER_FORMAT_RULE, {"provided_format": case_number}
        )
        self.errors = [{"field": "case_number", "message": message}]


class ConfigurationError(CaseManagerError):
    """A dependency could not be resolved. Not user-facing."""

    status_code = 500
    error_code = "CONFIGURATION_ERROR"
    is_operational = False


class StorageError(CaseManagerError):
    """The datastore failed for a reason other than a constraint violation."""

    status_code = 500
    error_code = "STORAGE_ERROR"
    is_operational = False
