"""
KarinPilot Enumerations

All enumeration types used throughout the engine.

All enums inherit from (str, Enum) for JSON serialization compatibility.
Severity-ordered enums expose a ``rank`` so comparisons never depend on
string values.
"""
from __future__ import annotations

from enum import Enum
from typing import Union

from ..exceptions import UnknownStageError


# =============================================================================
# Process Stages
# =============================================================================

class ProcessStage(str, Enum):
    """
    Stages of the Ley Karin investigation process, in process order.

    Raw stage strings from storage or clients must go through `parse()`,
    which is the only place legacy aliases are accepted.
    """
    COMPLAINT_FILED = "complaint_filed"
    RECEPTION = "reception"
    SUBSANATION = "subsanation"
    DT_NOTIFICATION = "dt_notification"
    SUSESO_NOTIFICATION = "suseso_notification"
    PRECAUTIONARY_MEASURES = "precautionary_measures"
    DECISION_TO_INVESTIGATE = "decision_to_investigate"
    INVESTIGATION = "investigation"
    REPORT_CREATION = "report_creation"
    REPORT_APPROVAL = "report_approval"
    INVESTIGATION_COMPLETE = "investigation_complete"
    FINAL_REPORT = "final_report"
    DT_SUBMISSION = "dt_submission"
    DT_RESOLUTION = "dt_resolution"
    MEASURES_ADOPTION = "measures_adoption"
    SANCTIONS = "sanctions"
    THIRD_PARTY = "third_party"
    SUBCONTRACTING = "subcontracting"
    CLOSED = "closed"

    @classmethod
    def parse(cls, value: Union[str, ProcessStage]) -> ProcessStage:
        """
        Normalize a stage value, resolving legacy aliases.

        Args:
            value: Canonical stage, canonical string or legacy alias

        Returns:
            The canonical ProcessStage

        Raises:
            UnknownStageError: If the value is not a known stage or alias
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise UnknownStageError(
                message=f"Stage must be a string, got {type(value).__name__}",
            )
        key = value.strip()
        if key in LEGACY_STAGE_ALIASES:
            return LEGACY_STAGE_ALIASES[key]
        try:
            return cls(key)
        except ValueError:
            raise UnknownStageError(
                message=f"Unknown process stage: {value!r}",
                details={"value": value},
            ) from None

    @property
    def is_terminal(self) -> bool:
        return self is ProcessStage.CLOSED

    @property
    def position(self) -> int:
        """Zero-based position in process order."""
        return _STAGE_POSITIONS[self]


LEGACY_STAGE_ALIASES: dict[str, ProcessStage] = {
    "orientation": ProcessStage.COMPLAINT_FILED,
    "preliminaryReport": ProcessStage.REPORT_CREATION,
    "labor_department": ProcessStage.INVESTIGATION_COMPLETE,
}

_STAGE_POSITIONS = {stage: index for index, stage in enumerate(ProcessStage)}


# =============================================================================
# Deadline Alerts
# =============================================================================

class AlertLevel(str, Enum):
    """Urgency of a stage deadline."""
    OK = "ok"
    APPROACHING = "approaching"
    URGENT = "urgent"
    OVERDUE = "overdue"

    @property
    def rank(self) -> int:
        return _ALERT_RANK[self]

    @property
    def requires_alert(self) -> bool:
        return self is not AlertLevel.OK


_ALERT_RANK = {
    AlertLevel.OK: 0,
    AlertLevel.APPROACHING: 1,
    AlertLevel.URGENT: 2,
    AlertLevel.OVERDUE: 3,
}


# =============================================================================
# Extensions and Actors
# =============================================================================

class ExtensionStatus(str, Enum):
    """Lifecycle of an extension request."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ActorRole(str, Enum):
    """Portal roles relevant to the engine."""
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    INVESTIGATOR = "investigator"
    REPORTER = "reporter"
    VIEWER = "viewer"


# =============================================================================
# Compliance Risk
# =============================================================================

class OffenseSeverity(str, Enum):
    """Inherent risk level of an offense type in the catalogue."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _OFFENSE_RANK[self]

    @property
    def impact(self) -> int:
        """Impact score (1-5 scale) this severity contributes when matched."""
        return self.rank + 2


_OFFENSE_RANK = {
    OffenseSeverity.LOW: 0,
    OffenseSeverity.MEDIUM: 1,
    OffenseSeverity.HIGH: 2,
    OffenseSeverity.CRITICAL: 3,
}


class RiskLevel(str, Enum):
    """Risk matrix classification."""
    ACCEPTABLE = "acceptable"
    TOLERABLE = "tolerable"
    IMPORTANT = "important"
    INTOLERABLE = "intolerable"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    @classmethod
    def most_severe(cls, *levels: RiskLevel) -> RiskLevel:
        return max(levels, key=lambda level: level.rank)


_RISK_RANK = {
    RiskLevel.ACCEPTABLE: 0,
    RiskLevel.TOLERABLE: 1,
    RiskLevel.IMPORTANT: 2,
    RiskLevel.INTOLERABLE: 3,
}


class Urgency(str, Enum):
    """How quickly a risk must be acted upon."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _URGENCY_RANK[self]

    @classmethod
    def most_urgent(cls, *values: Urgency) -> Urgency:
        return max(values, key=lambda value: value.rank)


_URGENCY_RANK = {
    Urgency.LOW: 0,
    Urgency.MEDIUM: 1,
    Urgency.HIGH: 2,
    Urgency.CRITICAL: 3,
}


class ConductFrequency(str, Enum):
    """Reported frequency of the denounced conduct."""
    SINGLE = "single"
    OCCASIONAL = "occasional"
    REPEATED = "repeated"
    SYSTEMATIC = "systematic"
