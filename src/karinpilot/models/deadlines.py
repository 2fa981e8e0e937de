"""
KarinPilot Deadline Models

Statutory deadline rules, computed deadline information and the alerts
derived from it.

Key concepts:
- DeadlineRule: per-stage statutory limit, loaded from the rule table
- DeadlineInfo: the result of computing a case's current deadline
- DeadlineAlert: derived notification record, regenerable at any time
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from .enums import AlertLevel, ProcessStage


# =============================================================================
# Deadline Rule
# =============================================================================

@dataclass(frozen=True)
class DeadlineRule:
    """
    Statutory deadline for one process stage.

    Attributes:
        stage: Stage the rule governs
        days: Base number of days (always positive)
        is_calendar_days: True = calendar days, False = business days
        extendable: Whether extension requests are admitted
        max_extension_days: Cap on cumulative approved extension days
        externally_gated: Stage waits on an external authority, no clock runs
        article: Legal citation (opaque display string)
        description: What must happen during the stage
        next_action: Suggested next step for the investigator
    """
    stage: ProcessStage
    days: int
    is_calendar_days: bool = False
    extendable: bool = False
    max_extension_days: int = 0
    externally_gated: bool = False
    article: str = ""
    description: str = ""
    next_action: str = ""

    @property
    def unit(self) -> str:
        return "calendar days" if self.is_calendar_days else "business days"

    def to_dict(self) -> dict:
        return {
            "stage": self.stage.value,
            "days": self.days,
            "is_calendar_days": self.is_calendar_days,
            "extendable": self.extendable,
            "max_extension_days": self.max_extension_days,
            "externally_gated": self.externally_gated,
            "article": self.article,
            "description": self.description,
            "next_action": self.next_action,
        }


# =============================================================================
# Deadline Info
# =============================================================================

@dataclass(frozen=True)
class DeadlineInfo:
    """
    Computed deadline for a case's current stage.

    ``days_remaining`` is expressed in the rule's unit and is negative once
    the deadline has passed. Cases in a terminal or externally gated stage
    carry ``has_deadline=False`` and no date.
    """
    case_id: str
    stage: ProcessStage
    has_deadline: bool
    alert_level: AlertLevel
    as_of: datetime
    deadline: Optional[date] = None
    days_remaining: Optional[int] = None
    is_calendar_days: bool = False
    base_days: int = 0
    extension_days: int = 0
    total_days: int = 0
    article: str = ""
    next_action: str = ""
    message: str = ""

    @property
    def is_overdue(self) -> bool:
        return self.alert_level is AlertLevel.OVERDUE

    def to_dict(self) -> dict:
        return {
            "case_id": self.case_id,
            "stage": self.stage.value,
            "has_deadline": self.has_deadline,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "days_remaining": self.days_remaining,
            "alert_level": self.alert_level.value,
            "is_calendar_days": self.is_calendar_days,
            "base_days": self.base_days,
            "extension_days": self.extension_days,
            "total_days": self.total_days,
            "article": self.article,
            "next_action": self.next_action,
            "message": self.message,
            "as_of": self.as_of.isoformat(),
        }


# =============================================================================
# Deadline Alert
# =============================================================================

@dataclass(frozen=True)
class DeadlineAlert:
    """Alert raised when a stage deadline reaches a new alert level."""
    case_id: str
    stage: ProcessStage
    deadline: date
    level: AlertLevel
    days_remaining: int
    generated_at: datetime
    recipients: tuple[str, ...] = ()
    title: str = ""
    message: str = ""

    @property
    def key(self) -> tuple[str, ProcessStage]:
        return (self.case_id, self.stage)

    def to_dict(self) -> dict:
        return {
            "case_id": self.case_id,
            "stage": self.stage.value,
            "deadline": self.deadline.isoformat(),
            "level": self.level.value,
            "days_remaining": self.days_remaining,
            "generated_at": self.generated_at.isoformat(),
            "recipients": list(self.recipients),
            "title": self.title,
            "message": self.message,
        }
