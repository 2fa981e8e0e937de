"""
KarinPilot Stage Transition Engine

Validates and applies moves between process stages.

The stage graph is forward-only with two branch tracks (third-party and
subcontracting investigations) that re-enter the main line at report
creation. Closing a case requires either a completed measures/sanctions
stage or an explicit dismissal.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Optional, Protocol, Union

from ..exceptions import (
    ClosureConditionNotMet,
    InvalidTransition,
    TerminalStateViolation,
    ValidationError,
)
from ..models import CaseClock, KarinCase, ProcessStage, ensure_aware

logger = logging.getLogger(__name__)

S = ProcessStage


# =============================================================================
# Stage Graph
# =============================================================================

TRANSITIONS = MappingProxyType({
    S.COMPLAINT_FILED: frozenset({S.RECEPTION}),
    S.RECEPTION: frozenset({S.SUBSANATION, S.PRECAUTIONARY_MEASURES}),
    S.SUBSANATION: frozenset({S.PRECAUTIONARY_MEASURES}),
    S.PRECAUTIONARY_MEASURES: frozenset({S.DT_NOTIFICATION}),
    S.DT_NOTIFICATION: frozenset({S.SUSESO_NOTIFICATION}),
    S.SUSESO_NOTIFICATION: frozenset({S.DECISION_TO_INVESTIGATE}),
    S.DECISION_TO_INVESTIGATE: frozenset({S.INVESTIGATION, S.THIRD_PARTY, S.SUBCONTRACTING}),
    S.INVESTIGATION: frozenset({S.REPORT_CREATION}),
    S.THIRD_PARTY: frozenset({S.REPORT_CREATION}),
    S.SUBCONTRACTING: frozenset({S.REPORT_CREATION}),
    S.REPORT_CREATION: frozenset({S.REPORT_APPROVAL}),
    S.REPORT_APPROVAL: frozenset({S.INVESTIGATION_COMPLETE}),
    S.INVESTIGATION_COMPLETE: frozenset({S.FINAL_REPORT}),
    S.FINAL_REPORT: frozenset({S.DT_SUBMISSION}),
    S.DT_SUBMISSION: frozenset({S.DT_RESOLUTION}),
    S.DT_RESOLUTION: frozenset({S.MEASURES_ADOPTION}),
    S.MEASURES_ADOPTION: frozenset({S.SANCTIONS, S.CLOSED}),
    S.SANCTIONS: frozenset({S.CLOSED}),
    S.CLOSED: frozenset(),
})

# Stages after which closing needs no dismissal
COMPLETION_STAGES = frozenset({S.MEASURES_ADOPTION, S.SANCTIONS})

# Main line used for progress reporting; branch tracks count as investigation
MAIN_LINE = (
    S.COMPLAINT_FILED,
    S.RECEPTION,
    S.SUBSANATION,
    S.PRECAUTIONARY_MEASURES,
    S.DT_NOTIFICATION,
    S.SUSESO_NOTIFICATION,
    S.DECISION_TO_INVESTIGATE,
    S.INVESTIGATION,
    S.REPORT_CREATION,
    S.REPORT_APPROVAL,
    S.INVESTIGATION_COMPLETE,
    S.FINAL_REPORT,
    S.DT_SUBMISSION,
    S.DT_RESOLUTION,
    S.MEASURES_ADOPTION,
    S.SANCTIONS,
    S.CLOSED,
)


def process_progress(stage: Union[ProcessStage, str]) -> int:
    """Percent of the main line completed when ``stage`` is current."""
    stage = ProcessStage.parse(stage)
    if stage in (S.THIRD_PARTY, S.SUBCONTRACTING):
        stage = S.INVESTIGATION
    return round(MAIN_LINE.index(stage) * 100 / (len(MAIN_LINE) - 1))


class AlertStateCache(Protocol):
    """Anything holding per-case alert state that a stage change makes stale."""

    def invalidate(self, case_id: str) -> None:
        ...


# =============================================================================
# Transition Engine
# =============================================================================

@dataclass
class StageTransitionEngine:
    """
    Applies stage transitions to case snapshots.

    Transitions never mutate the case and have no side effects: they return
    the new CaseClock, which the caller persists under optimistic versioning
    before calling ``stage_committed``.

    Usage:
        engine = StageTransitionEngine()
        clock = engine.transition(case, "investigation", now=now)
    """

    alert_cache: Optional[AlertStateCache] = None

    def allowed_targets(self, case: KarinCase) -> list[ProcessStage]:
        """Legal next stages for a case, in process order."""
        current = case.current_stage
        targets = set(TRANSITIONS[current])
        if case.dismissed and not current.is_terminal:
            targets.add(S.CLOSED)
        return sorted(targets, key=lambda stage: stage.position)

    def can_transition(
        self,
        case: KarinCase,
        target_stage: Union[ProcessStage, str],
        dismissal_reason: Optional[str] = None,
    ) -> bool:
        try:
            self._validate(case, ProcessStage.parse(target_stage), dismissal_reason)
        except (InvalidTransition, TerminalStateViolation):
            return False
        return True

    def stage_committed(self, case_id: str) -> None:
        """
        Drop the alert state of a case whose stage change has been persisted.

        Called by whoever stores the new clock, and only after the write
        succeeded, so a rejected write keeps the case's alert history.
        """
        if self.alert_cache is not None:
            self.alert_cache.invalidate(case_id)

    def transition(
        self,
        case: KarinCase,
        target_stage: Union[ProcessStage, str],
        now: Optional[datetime] = None,
        dismissal_reason: Optional[str] = None,
    ) -> CaseClock:
        """
        Move a case to ``target_stage``.

        Args:
            case: Case snapshot
            target_stage: Target stage (raw values are normalized once here)
            now: Transition time (defaults to current UTC time)
            dismissal_reason: Non-empty reason allows closing from any stage;
                rejected for any other target

        Returns:
            The new CaseClock; the current history entry is closed, a new one
            is opened and approved extension days reset to zero

        Raises:
            UnknownStageError: Target is not a stage or known alias
            TerminalStateViolation: Case is already closed
            ClosureConditionNotMet: Closing without completion or dismissal
            InvalidTransition: Target is not a successor of the current stage
            ValidationError: ``now`` is earlier than the current stage entry,
                or a dismissal reason is given for a target other than closed
        """
        target = ProcessStage.parse(target_stage)
        now = ensure_aware(now or datetime.now(timezone.utc), "now")
        if dismissal_reason and dismissal_reason.strip() and target is not S.CLOSED:
            raise ValidationError(
                message="A dismissal reason is only accepted when closing the case",
                details={"target_stage": target.value},
                case_id=case.case_id,
            )
        self._validate(case, target, dismissal_reason)

        if now < case.clock.stage_entered_at:
            raise ValidationError(
                message="Transition time precedes the current stage entry",
                details={
                    "now": now.isoformat(),
                    "stage_entered_at": case.clock.stage_entered_at.isoformat(),
                },
                case_id=case.case_id,
            )

        clock = case.clock.advanced_to(target, now)

        logger.info(
            "Case %s moved %s -> %s",
            case.case_id, case.current_stage.value, target.value,
            extra={"case_id": case.case_id, "stage": target.value},
        )
        return clock

    def _validate(
        self,
        case: KarinCase,
        target: ProcessStage,
        dismissal_reason: Optional[str],
    ) -> None:
        current = case.current_stage
        if current.is_terminal:
            raise TerminalStateViolation(
                message="Case is closed; no further transitions are allowed",
                case_id=case.case_id,
            )

        if target is S.CLOSED:
            dismissed = case.dismissed or bool(dismissal_reason and dismissal_reason.strip())
            if current not in COMPLETION_STAGES and not dismissed:
                raise ClosureConditionNotMet(
                    message=(
                        f"Cannot close case from '{current.value}': measures adoption "
                        "or sanctions must be reached, or the case dismissed"
                    ),
                    details={"current_stage": current.value},
                    case_id=case.case_id,
                )
            return

        if target not in TRANSITIONS[current]:
            raise InvalidTransition(
                message=f"Transition '{current.value}' -> '{target.value}' is not allowed",
                details={
                    "current_stage": current.value,
                    "target_stage": target.value,
                    "allowed": [s.value for s in self.allowed_targets(case)],
                },
                case_id=case.case_id,
            )


_DEFAULT_ENGINE = StageTransitionEngine()


def transition(
    case: KarinCase,
    target_stage: Union[ProcessStage, str],
    now: Optional[datetime] = None,
    dismissal_reason: Optional[str] = None,
) -> CaseClock:
    """Convenience wrapper around a StageTransitionEngine with no alert cache."""
    return _DEFAULT_ENGINE.transition(case, target_stage, now=now, dismissal_reason=dismissal_reason)
