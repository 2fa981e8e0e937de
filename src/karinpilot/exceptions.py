"""
KarinPilot Errors

Every engine failure is a KarinPilotError carrying a stable ``KP_*`` code.
The API maps error families to HTTP statuses and the CLI maps them to exit
codes, so new errors should subclass the closest family rather than the
base class.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class KarinPilotError(Exception):
    """
    Base engine error.

    Attributes:
        message: What went wrong, for people
        code: Stable KP_* identifier, for machines
        details: Offending values (stage names, limits, versions)
        case_id: Case the failure concerns, when there is one
    """
    message: str
    code: str = "KP_INTERNAL_ERROR"
    details: dict[str, Any] = field(default_factory=dict)
    case_id: Optional[str] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.case_id:
            return f"[{self.code}] {self.message} (case: {self.case_id})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Error body for logs and API responses; empty fields are left out."""
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        if self.case_id:
            body["case_id"] = self.case_id
        return body


# =============================================================================
# Input Errors
# =============================================================================

@dataclass
class ValidationError(KarinPilotError):
    """Malformed input (bad stage, out-of-range value, non-positive days)."""
    code: str = "KP_VALIDATION_ERROR"


@dataclass
class UnknownStageError(ValidationError):
    """Stage value is neither a canonical stage nor a known legacy alias."""
    code: str = "KP_UNKNOWN_STAGE"


# =============================================================================
# Lifecycle Errors
# =============================================================================

@dataclass
class InvalidTransition(KarinPilotError):
    """Target stage is not a legal successor of the current stage."""
    code: str = "KP_INVALID_TRANSITION"


@dataclass
class ClosureConditionNotMet(InvalidTransition):
    """Case cannot be closed before measures/sanctions or an explicit dismissal."""
    code: str = "KP_CLOSURE_CONDITION_NOT_MET"


@dataclass
class StaleExtensionRequest(InvalidTransition):
    """Extension request belongs to a stage the case has already left."""
    code: str = "KP_STALE_EXTENSION_REQUEST"


@dataclass
class TerminalStateViolation(KarinPilotError):
    """Operation attempted on a closed case."""
    code: str = "KP_TERMINAL_STATE"


# =============================================================================
# Extension Errors
# =============================================================================

@dataclass
class ExtensionNotAllowed(KarinPilotError):
    """Current stage does not admit deadline extensions."""
    code: str = "KP_EXTENSION_NOT_ALLOWED"


@dataclass
class ExtensionLimitExceeded(KarinPilotError):
    """Requested days would exceed the stage's maximum extension."""
    code: str = "KP_EXTENSION_LIMIT_EXCEEDED"


@dataclass
class DuplicatePendingExtension(KarinPilotError):
    """A pending request already exists for this case and stage."""
    code: str = "KP_DUPLICATE_PENDING_EXTENSION"


@dataclass
class AlreadyDecided(KarinPilotError):
    """Extension request is no longer pending."""
    code: str = "KP_ALREADY_DECIDED"


@dataclass
class UnauthorizedApprover(KarinPilotError):
    """Actor lacks authority to decide extension requests for this case."""
    code: str = "KP_UNAUTHORIZED_APPROVER"


@dataclass
class ExtensionNotFound(KarinPilotError):
    """Extension request ID not present on the case."""
    code: str = "KP_EXTENSION_NOT_FOUND"


# =============================================================================
# Persistence Errors
# =============================================================================

@dataclass
class ConcurrencyConflict(KarinPilotError):
    """Case version changed between read and write."""
    code: str = "KP_CONCURRENCY_CONFLICT"


@dataclass
class CaseNotFoundError(KarinPilotError):
    """Case not present in the store."""
    code: str = "KP_CASE_NOT_FOUND"


# =============================================================================
# External Collaborator Errors
# =============================================================================

@dataclass
class ExternalUnavailable(KarinPilotError):
    """AI scorer or notification dispatcher failed or timed out."""
    code: str = "KP_EXTERNAL_UNAVAILABLE"


# =============================================================================
# Catalogue Errors
# =============================================================================

@dataclass
class CatalogueLoadError(KarinPilotError):
    """Catalogue file could not be read or parsed."""
    code: str = "KP_CATALOGUE_LOAD_ERROR"


@dataclass
class CatalogueIntegrityError(KarinPilotError):
    """Rule table or offense catalogue is missing, malformed or inconsistent."""
    code: str = "KP_CATALOGUE_INTEGRITY_ERROR"
