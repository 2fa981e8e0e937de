"""
KarinPilot Case Lifecycle Service

Applies engine operations to stored cases under per-case optimistic
concurrency: read the case and its version, compute the new state with the
pure engine components, then write back conditioned on the version read.

A version mismatch raises ConcurrencyConflict; the service never retries.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional, Protocol, Union

from ..exceptions import CaseNotFoundError, ConcurrencyConflict, ExtensionNotFound, ValidationError
from ..models import (
    Actor,
    CaseAttributes,
    DeadlineInfo,
    ExtensionRequest,
    KarinCase,
    ProcessStage,
)
from .deadline_calculator import DeadlineCalculator
from .extensions import ExtensionWorkflow
from .transitions import StageTransitionEngine

logger = logging.getLogger(__name__)


# =============================================================================
# Case Store
# =============================================================================

class CaseStore(Protocol):
    """Persistence port for case snapshots."""

    def get(self, case_id: str) -> KarinCase:
        ...

    def add(self, case: KarinCase) -> KarinCase:
        ...

    def save(self, case: KarinCase, expected_version: int) -> KarinCase:
        ...

    def list_cases(self, active_only: bool = False) -> list[KarinCase]:
        ...


class InMemoryCaseStore:
    """
    Dict-backed store with compare-and-swap writes.

    The lock only guards the version check and the write; reads return
    immutable snapshots.
    """

    def __init__(self) -> None:
        self._cases: dict[str, KarinCase] = {}
        self._lock = threading.Lock()

    def get(self, case_id: str) -> KarinCase:
        case = self._cases.get(case_id)
        if case is None:
            raise CaseNotFoundError(message=f"Case {case_id} not found", case_id=case_id)
        return case

    def add(self, case: KarinCase) -> KarinCase:
        with self._lock:
            if case.case_id in self._cases:
                raise ConcurrencyConflict(
                    message=f"Case {case.case_id} already exists",
                    case_id=case.case_id,
                )
            stored = replace(case, version=1)
            self._cases[case.case_id] = stored
            return stored

    def save(self, case: KarinCase, expected_version: int) -> KarinCase:
        with self._lock:
            current = self._cases.get(case.case_id)
            if current is None:
                raise CaseNotFoundError(message=f"Case {case.case_id} not found", case_id=case.case_id)
            if current.version != expected_version:
                raise ConcurrencyConflict(
                    message="Case was modified concurrently; re-read and retry",
                    details={"expected_version": expected_version, "actual_version": current.version},
                    case_id=case.case_id,
                )
            stored = replace(case, version=expected_version + 1)
            self._cases[case.case_id] = stored
            return stored

    def list_cases(self, active_only: bool = False) -> list[KarinCase]:
        cases = sorted(self._cases.values(), key=lambda c: c.case_id)
        if active_only:
            return [c for c in cases if c.is_active]
        return cases


# =============================================================================
# Service
# =============================================================================

@dataclass
class CaseLifecycleService:
    """
    Read-compute-write orchestration over a CaseStore.

    Usage:
        service = CaseLifecycleService(store=InMemoryCaseStore())
        case = service.open_case("ACME", opened_at=now)
        case = service.advance(case.case_id, "reception", expected_version=case.version)
    """

    store: CaseStore = field(default_factory=InMemoryCaseStore)
    transitions: StageTransitionEngine = field(default_factory=StageTransitionEngine)
    calculator: DeadlineCalculator = field(default_factory=DeadlineCalculator)
    extensions: Optional[ExtensionWorkflow] = None

    def __post_init__(self) -> None:
        if self.extensions is None:
            self.extensions = ExtensionWorkflow(
                rule_table=self.calculator.rule_table,
                calculator=self.calculator,
            )

    def _read(self, case_id: str, expected_version: Optional[int]) -> KarinCase:
        case = self.store.get(case_id)
        if expected_version is not None and case.version != expected_version:
            raise ConcurrencyConflict(
                message="Case version does not match the version the caller read",
                details={"expected_version": expected_version, "actual_version": case.version},
                case_id=case_id,
            )
        return case

    def open_case(
        self,
        company_id: str,
        stage: Union[ProcessStage, str] = ProcessStage.COMPLAINT_FILED,
        opened_at: Optional[datetime] = None,
        attributes: Optional[CaseAttributes] = None,
        assigned_investigator_ids: frozenset[str] = frozenset(),
        alert_recipients: tuple[str, ...] = (),
    ) -> KarinCase:
        """Create and store a new case."""
        if not company_id or not company_id.strip():
            raise ValidationError(message="company_id is required")
        case = KarinCase.create(
            company_id=company_id,
            stage=stage,
            opened_at=opened_at,
            attributes=attributes,
            assigned_investigator_ids=assigned_investigator_ids,
            alert_recipients=alert_recipients,
        )
        stored = self.store.add(case)
        logger.info(
            "Opened case %s in %s", stored.case_id, stored.current_stage.value,
            extra={"case_id": stored.case_id, "stage": stored.current_stage.value},
        )
        return stored

    def get(self, case_id: str) -> KarinCase:
        return self.store.get(case_id)

    def deadline(self, case_id: str, now: Optional[datetime] = None) -> DeadlineInfo:
        return self.calculator.compute_deadline(self.store.get(case_id), now=now)

    def advance(
        self,
        case_id: str,
        target_stage: Union[ProcessStage, str],
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
        dismissal_reason: Optional[str] = None,
    ) -> KarinCase:
        """
        Transition a stored case and persist the new clock.

        Alert state of the case is dropped only once the write succeeded.
        """
        case = self._read(case_id, expected_version)
        clock = self.transitions.transition(
            case, target_stage, now=now, dismissal_reason=dismissal_reason
        )
        updated = case.with_clock(clock)
        reason = (dismissal_reason or "").strip()
        if reason and clock.current_stage is ProcessStage.CLOSED:
            updated = replace(updated, dismissed=True, dismissal_reason=reason)
        stored = self.store.save(updated, expected_version=case.version)
        self.transitions.stage_committed(stored.case_id)
        return stored

    def dismiss(
        self,
        case_id: str,
        reason: str,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> KarinCase:
        """Close a case by explicit dismissal."""
        if not reason or not reason.strip():
            raise ValidationError(message="A dismissal reason is required", case_id=case_id)
        return self.advance(
            case_id, ProcessStage.CLOSED,
            expected_version=expected_version, now=now, dismissal_reason=reason,
        )

    def request_extension(
        self,
        case_id: str,
        days: int,
        justification: str,
        requester: Actor,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> tuple[KarinCase, ExtensionRequest]:
        """Create a pending extension request and store it on the case."""
        case = self._read(case_id, expected_version)
        request = self.extensions.request(case, days, justification, requester, now=now)
        stored = self.store.save(case.with_request(request), expected_version=case.version)
        return stored, request

    def decide_extension(
        self,
        case_id: str,
        request_id: str,
        approver: Actor,
        approve: bool,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
        comments: Optional[str] = None,
    ) -> tuple[KarinCase, ExtensionRequest]:
        """Decide a stored request and persist the clock and decided request."""
        case = self._read(case_id, expected_version)
        request = case.find_request(request_id)
        if request is None:
            raise ExtensionNotFound(
                message=f"Extension request {request_id} not found on case",
                details={"request_id": request_id},
                case_id=case_id,
            )
        decision = self.extensions.decide(
            case, request, approver, approve, now=now, comments=comments
        )
        updated = case.with_clock(decision.clock).with_request(decision.request)
        stored = self.store.save(updated, expected_version=case.version)
        return stored, decision.request
