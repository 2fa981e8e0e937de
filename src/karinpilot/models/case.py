"""
KarinPilot Case Models

The case snapshot the engine operates on: its stage clock, its extension
requests and the attributes the risk heuristic reads.

Snapshots are immutable. Engine operations return new values and the
lifecycle service writes them back under optimistic versioning.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional, Union
from uuid import uuid4

from ..exceptions import ValidationError
from .enums import ConductFrequency, ProcessStage
from .extension import ExtensionRequest


def ensure_aware(value: datetime, name: str = "timestamp") -> datetime:
    """Reject naive datetimes; all engine timestamps carry a timezone."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValidationError(
            message=f"{name} must be timezone-aware",
            details={name: value.isoformat()},
        )
    return value


# =============================================================================
# Stage Clock
# =============================================================================

@dataclass(frozen=True)
class StageHistoryEntry:
    """One visit to a stage. ``exited_at`` is None while the stage is open."""
    stage: ProcessStage
    entered_at: datetime
    exited_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.exited_at is None

    def to_dict(self) -> dict:
        return {
            "stage": self.stage.value,
            "entered_at": self.entered_at.isoformat(),
            "exited_at": self.exited_at.isoformat() if self.exited_at else None,
        }


@dataclass(frozen=True)
class CaseClock:
    """
    Stage clock of a single case.

    Invariants:
    - history timestamps never decrease
    - exactly one open history entry, and it is the current stage
    - approved_extension_days never exceeds the current rule's maximum
    """
    current_stage: ProcessStage
    stage_entered_at: datetime
    approved_extension_days: int = 0
    history: tuple[StageHistoryEntry, ...] = ()

    @classmethod
    def start(cls, stage: Union[ProcessStage, str], at: datetime) -> CaseClock:
        """Open a clock in ``stage`` at ``at``."""
        canonical = ProcessStage.parse(stage)
        ensure_aware(at, "stage_entered_at")
        return cls(
            current_stage=canonical,
            stage_entered_at=at,
            history=(StageHistoryEntry(stage=canonical, entered_at=at),),
        )

    @property
    def open_entry(self) -> Optional[StageHistoryEntry]:
        open_entries = [entry for entry in self.history if entry.is_open]
        return open_entries[-1] if open_entries else None

    def advanced_to(self, stage: ProcessStage, at: datetime) -> CaseClock:
        """Return a clock that closed the current stage and opened ``stage``."""
        closed = tuple(
            replace(entry, exited_at=at) if entry.is_open else entry
            for entry in self.history
        )
        return CaseClock(
            current_stage=stage,
            stage_entered_at=at,
            approved_extension_days=0,
            history=closed + (StageHistoryEntry(stage=stage, entered_at=at),),
        )

    def with_extension(self, days: int) -> CaseClock:
        return replace(self, approved_extension_days=days)

    def to_dict(self) -> dict:
        return {
            "current_stage": self.current_stage.value,
            "stage_entered_at": self.stage_entered_at.isoformat(),
            "approved_extension_days": self.approved_extension_days,
            "history": [entry.to_dict() for entry in self.history],
        }


# =============================================================================
# Case Attributes
# =============================================================================

@dataclass(frozen=True)
class CaseAttributes:
    """
    Report attributes read by the compliance evaluation.

    The narrative is the concatenated free text of the report; the other
    fields feed the probability heuristic.
    """
    narrative: str = ""
    is_karin_law: bool = True
    is_anonymous: bool = False
    evidence_count: int = 0
    accused_count: int = 1
    conduct_frequency: Optional[ConductFrequency] = None
    accused_outranks_reporter: bool = False
    is_third_party: bool = False
    is_subcontracting: bool = False

    @property
    def has_evidence(self) -> bool:
        return self.evidence_count > 0

    def to_dict(self) -> dict:
        return {
            "is_karin_law": self.is_karin_law,
            "is_anonymous": self.is_anonymous,
            "evidence_count": self.evidence_count,
            "accused_count": self.accused_count,
            "conduct_frequency": self.conduct_frequency.value if self.conduct_frequency else None,
            "accused_outranks_reporter": self.accused_outranks_reporter,
            "is_third_party": self.is_third_party,
            "is_subcontracting": self.is_subcontracting,
        }


# =============================================================================
# Case Snapshot
# =============================================================================

@dataclass(frozen=True)
class KarinCase:
    """
    Snapshot of a Ley Karin case.

    The case exclusively owns its clock and extension requests. ``version``
    is incremented by the store on every successful write.
    """
    case_id: str
    company_id: str
    clock: CaseClock
    version: int = 0
    extension_requests: tuple[ExtensionRequest, ...] = ()
    assigned_investigator_ids: frozenset[str] = field(default_factory=frozenset)
    alert_recipients: tuple[str, ...] = ()
    dismissed: bool = False
    dismissal_reason: Optional[str] = None
    attributes: CaseAttributes = field(default_factory=CaseAttributes)

    @classmethod
    def create(
        cls,
        company_id: str,
        stage: Union[ProcessStage, str] = ProcessStage.COMPLAINT_FILED,
        opened_at: Optional[datetime] = None,
        attributes: Optional[CaseAttributes] = None,
        assigned_investigator_ids: frozenset[str] = frozenset(),
        alert_recipients: tuple[str, ...] = (),
    ) -> KarinCase:
        """Factory method to open a new case with a generated ID."""
        return cls(
            case_id=f"KRN-{uuid4().hex[:12].upper()}",
            company_id=company_id,
            clock=CaseClock.start(stage, opened_at or datetime.now(timezone.utc)),
            assigned_investigator_ids=frozenset(assigned_investigator_ids),
            alert_recipients=tuple(alert_recipients),
            attributes=attributes or CaseAttributes(),
        )

    @property
    def current_stage(self) -> ProcessStage:
        return self.clock.current_stage

    @property
    def is_active(self) -> bool:
        return not self.clock.current_stage.is_terminal

    def find_request(self, request_id: str) -> Optional[ExtensionRequest]:
        for request in self.extension_requests:
            if request.id == request_id:
                return request
        return None

    def with_clock(self, clock: CaseClock) -> KarinCase:
        return replace(self, clock=clock)

    def with_request(self, request: ExtensionRequest) -> KarinCase:
        """Add a request, or replace the stored one with the same ID."""
        others = tuple(r for r in self.extension_requests if r.id != request.id)
        if len(others) == len(self.extension_requests):
            return replace(self, extension_requests=self.extension_requests + (request,))
        return replace(
            self,
            extension_requests=tuple(
                request if r.id == request.id else r for r in self.extension_requests
            ),
        )

    def to_dict(self) -> dict:
        return {
            "case_id": self.case_id,
            "company_id": self.company_id,
            "version": self.version,
            "clock": self.clock.to_dict(),
            "extension_requests": [r.to_dict() for r in self.extension_requests],
            "assigned_investigator_ids": sorted(self.assigned_investigator_ids),
            "alert_recipients": list(self.alert_recipients),
            "dismissed": self.dismissed,
            "dismissal_reason": self.dismissal_reason,
            "attributes": self.attributes.to_dict(),
        }
