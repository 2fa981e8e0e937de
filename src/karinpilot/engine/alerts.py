"""
KarinPilot Alert Generator

Scans active cases, computes their deadlines in parallel and emits an alert
whenever a case reaches a new alert level for its current stage.

Each case is computed and dispatched in isolation: a failing calculation or
notification is recorded in that case's outcome and the scan continues.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol, Sequence

from ..exceptions import KarinPilotError
from ..models import AlertLevel, DeadlineAlert, DeadlineInfo, KarinCase, ProcessStage, ensure_aware
from .deadline_calculator import DeadlineCalculator

logger = logging.getLogger(__name__)


ALERT_TEMPLATES: dict[AlertLevel, tuple[str, str]] = {
    AlertLevel.APPROACHING: (
        "Plazo próximo a vencer",
        "La etapa {stage} vence el {deadline} (quedan {days} {unit}).",
    ),
    AlertLevel.URGENT: (
        "Plazo urgente",
        "La etapa {stage} vence el {deadline}; quedan solo {days} {unit}.",
    ),
    AlertLevel.OVERDUE: (
        "Plazo vencido",
        "La etapa {stage} venció el {deadline} hace {days} {unit}.",
    ),
}

_UNITS = {True: "días corridos", False: "días hábiles"}


# =============================================================================
# Dispatch Interface
# =============================================================================

@dataclass(frozen=True)
class DispatchResult:
    """Per-recipient delivery outcome reported by a dispatcher."""
    delivered: tuple[str, ...] = ()
    failed: tuple[tuple[str, str], ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "delivered": list(self.delivered),
            "failed": [{"recipient": r, "reason": reason} for r, reason in self.failed],
        }


class NotificationDispatcher(Protocol):
    """Delivers alerts; delivery mechanics live outside the engine."""

    def send(self, recipients: Sequence[str], alert: DeadlineAlert) -> DispatchResult:
        ...


# =============================================================================
# Alert Ledger
# =============================================================================

class AlertLedger:
    """
    Last alert level observed per (case, stage).

    Shared across scans; only the scanning thread writes to it after the
    parallel phase.
    """

    def __init__(self) -> None:
        self._levels: dict[tuple[str, ProcessStage], AlertLevel] = {}
        self._lock = threading.Lock()

    def last_level(self, case_id: str, stage: ProcessStage) -> Optional[AlertLevel]:
        with self._lock:
            return self._levels.get((case_id, stage))

    def record(self, case_id: str, stage: ProcessStage, level: AlertLevel) -> None:
        with self._lock:
            self._levels[(case_id, stage)] = level

    def invalidate(self, case_id: str) -> None:
        """Forget all alert state of a case."""
        with self._lock:
            for key in [k for k in self._levels if k[0] == case_id]:
                del self._levels[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._levels)


# =============================================================================
# Scan Results
# =============================================================================

@dataclass(frozen=True)
class CaseScanOutcome:
    """What happened to one case during a scan."""
    case_id: str
    stage: Optional[ProcessStage] = None
    level: Optional[AlertLevel] = None
    alert: Optional[DeadlineAlert] = None
    suppressed: bool = False
    dispatch: Optional[DispatchResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and (self.dispatch is None or self.dispatch.ok)

    def to_dict(self) -> dict:
        return {
            "case_id": self.case_id,
            "stage": self.stage.value if self.stage else None,
            "level": self.level.value if self.level else None,
            "alert": self.alert.to_dict() if self.alert else None,
            "suppressed": self.suppressed,
            "dispatch": self.dispatch.to_dict() if self.dispatch else None,
            "error": self.error,
            "ok": self.ok,
        }


@dataclass(frozen=True)
class AlertScanReport:
    """Alerts emitted by a scan plus the per-case outcomes."""
    alerts: tuple[DeadlineAlert, ...]
    outcomes: tuple[CaseScanOutcome, ...]
    scanned_at: datetime

    @property
    def failures(self) -> list[CaseScanOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    def to_dict(self) -> dict:
        return {
            "scanned_at": self.scanned_at.isoformat(),
            "alert_count": len(self.alerts),
            "failure_count": len(self.failures),
            "alerts": [alert.to_dict() for alert in self.alerts],
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


def build_alert(case: KarinCase, info: DeadlineInfo, generated_at: datetime) -> DeadlineAlert:
    """Alert for a deadline at a non-ok level."""
    title, template = ALERT_TEMPLATES[info.alert_level]
    message = template.format(
        stage=info.stage.value,
        deadline=info.deadline.isoformat(),
        days=abs(info.days_remaining),
        unit=_UNITS[info.is_calendar_days],
    )
    return DeadlineAlert(
        case_id=case.case_id,
        stage=info.stage,
        deadline=info.deadline,
        level=info.alert_level,
        days_remaining=info.days_remaining,
        generated_at=generated_at,
        recipients=case.alert_recipients,
        title=title,
        message=message,
    )


# =============================================================================
# Alert Generator
# =============================================================================

@dataclass
class AlertGenerator:
    """
    Deadline alert scanner.

    Usage:
        generator = AlertGenerator(calculator, dispatcher=email_dispatcher)
        report = generator.scan(store.list_active())
        for failure in report.failures:
            ...
    """

    calculator: DeadlineCalculator = field(default_factory=DeadlineCalculator)
    ledger: AlertLedger = field(default_factory=AlertLedger)
    dispatcher: Optional[NotificationDispatcher] = None
    max_workers: int = 4

    def scan(self, cases: Iterable[KarinCase], now: Optional[datetime] = None) -> AlertScanReport:
        """
        Scan cases and emit alerts for new alert levels.

        Args:
            cases: Case snapshots; closed cases are skipped
            now: Reference time shared by the whole scan

        Returns:
            AlertScanReport with emitted alerts and one outcome per active case
        """
        now = ensure_aware(now or datetime.now(timezone.utc), "now")
        active = [case for case in cases if case.is_active]

        if active:
            workers = min(self.max_workers, len(active))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="alert-scan") as pool:
                outcomes = list(pool.map(lambda case: self._scan_case(case, now), active))
        else:
            outcomes = []

        # Ledger writes happen here, after every worker has finished
        for outcome in outcomes:
            if outcome.error is not None or outcome.level is None or outcome.suppressed:
                continue
            if outcome.dispatch is not None and not outcome.dispatch.ok:
                continue
            self.ledger.record(outcome.case_id, outcome.stage, outcome.level)

        alerts = tuple(outcome.alert for outcome in outcomes if outcome.alert is not None)
        report = AlertScanReport(alerts=alerts, outcomes=tuple(outcomes), scanned_at=now)
        logger.info(
            "Alert scan: %d cases, %d alerts, %d failures",
            len(active), len(alerts), len(report.failures),
        )
        return report

    def _scan_case(self, case: KarinCase, now: datetime) -> CaseScanOutcome:
        try:
            info = self.calculator.compute_deadline(case, now=now)
        except KarinPilotError as e:
            logger.warning(
                "Deadline computation failed for case %s: %s", case.case_id, e,
                extra={"case_id": case.case_id, "error_code": e.code},
            )
            return CaseScanOutcome(case_id=case.case_id, stage=case.current_stage, error=str(e))
        except Exception as e:
            logger.warning(
                "Deadline computation crashed for case %s: %s", case.case_id, e,
                exc_info=True, extra={"case_id": case.case_id},
            )
            return CaseScanOutcome(
                case_id=case.case_id, stage=case.current_stage, error=f"unexpected error: {e}"
            )

        if not info.has_deadline:
            return CaseScanOutcome(case_id=case.case_id, stage=info.stage)

        level = info.alert_level
        if not level.requires_alert:
            return CaseScanOutcome(case_id=case.case_id, stage=info.stage, level=level)

        if self.ledger.last_level(case.case_id, info.stage) is level:
            return CaseScanOutcome(
                case_id=case.case_id, stage=info.stage, level=level, suppressed=True
            )

        alert = build_alert(case, info, now)
        if self.dispatcher is None:
            return CaseScanOutcome(case_id=case.case_id, stage=info.stage, level=level, alert=alert)

        try:
            result = self.dispatcher.send(case.alert_recipients, alert)
        except Exception as e:
            logger.warning(
                "Alert dispatch failed for case %s: %s", case.case_id, e,
                extra={"case_id": case.case_id, "alert_level": level.value},
            )
            return CaseScanOutcome(
                case_id=case.case_id,
                stage=info.stage,
                level=level,
                alert=alert,
                error=f"dispatch failed: {e}",
            )

        if not result.ok:
            logger.warning(
                "Alert for case %s not delivered to %d recipients",
                case.case_id, len(result.failed),
                extra={"case_id": case.case_id, "alert_level": level.value},
            )
        return CaseScanOutcome(
            case_id=case.case_id,
            stage=info.stage,
            level=level,
            alert=alert,
            dispatch=result,
        )
