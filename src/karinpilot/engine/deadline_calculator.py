"""
KarinPilot Deadline Calculator

Computes the statutory deadline of a case's current stage and classifies how
close it is.

Key features:
- Calendar-day and business-day rules
- Pluggable business-day calendar (weekends only by default)
- Approved extensions added to the base days
- Pure and idempotent: same case and same `now` give the same result
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from ..calendars import HolidayCalendar, WeekendCalendar
from ..catalogs import DeadlineRuleTable, default_rule_table
from ..models import AlertLevel, DeadlineInfo, DeadlineRule, KarinCase, ensure_aware


# =============================================================================
# Alert Thresholds
# =============================================================================

APPROACHING_DAYS = 5
URGENT_MIN_DAYS = 2
# Urgent also covers the last fifth of the total period
URGENT_FRACTION_DIVISOR = 5


def alert_level_for(days_remaining: int, total_days: int) -> AlertLevel:
    """
    Classify days remaining against the total stage period.

    - overdue: deadline passed (negative remaining)
    - urgent: at most max(2, total_days // 5) remaining
    - approaching: at most 5 remaining
    - ok: otherwise
    """
    if days_remaining < 0:
        return AlertLevel.OVERDUE
    if days_remaining <= max(URGENT_MIN_DAYS, total_days // URGENT_FRACTION_DIVISOR):
        return AlertLevel.URGENT
    if days_remaining <= APPROACHING_DAYS:
        return AlertLevel.APPROACHING
    return AlertLevel.OK


# =============================================================================
# Deadline Calculator
# =============================================================================

@dataclass
class DeadlineCalculator:
    """
    Calculates stage deadlines from the rule table and a business calendar.

    Usage:
        calculator = DeadlineCalculator()
        info = calculator.compute_deadline(case, now=now)
        print(info.deadline, info.days_remaining, info.alert_level)
    """

    rule_table: DeadlineRuleTable = field(default_factory=default_rule_table)
    calendar: HolidayCalendar = field(default_factory=WeekendCalendar)

    def deadline_for(
        self,
        rule: DeadlineRule,
        entered_at: datetime,
        extension_days: int = 0,
    ) -> date:
        """Deadline date for a stage entered at ``entered_at``."""
        start = entered_at.date()
        total = rule.days + extension_days
        if rule.is_calendar_days:
            return start + timedelta(days=total)
        return self.calendar.add_business_days(start, total)

    def days_remaining(self, rule: DeadlineRule, deadline: date, today: date) -> int:
        """
        Days left until ``deadline`` in the rule's unit.

        Business-day rules count business days in (today, deadline]. Once
        today is past the deadline the result is negative, and at least -1
        even if only non-business days have elapsed.
        """
        if rule.is_calendar_days:
            return (deadline - today).days
        if today <= deadline:
            return self.calendar.business_days_between(today, deadline)
        return -max(1, self.calendar.business_days_between(deadline, today))

    def compute_deadline(self, case: KarinCase, now: Optional[datetime] = None) -> DeadlineInfo:
        """
        Compute the deadline of the case's current stage.

        Args:
            case: Case snapshot
            now: Reference time (defaults to current UTC time)

        Returns:
            DeadlineInfo; ``has_deadline`` is False for terminal and
            externally gated stages
        """
        now = ensure_aware(now or datetime.now(timezone.utc), "now")
        clock = case.clock
        rule = self.rule_table[clock.current_stage]

        if clock.current_stage.is_terminal or rule.externally_gated:
            message = (
                "Case closed; no deadlines running"
                if clock.current_stage.is_terminal
                else "Waiting on an external authority; no internal deadline"
            )
            return DeadlineInfo(
                case_id=case.case_id,
                stage=clock.current_stage,
                has_deadline=False,
                alert_level=AlertLevel.OK,
                as_of=now,
                is_calendar_days=rule.is_calendar_days,
                base_days=rule.days,
                article=rule.article,
                next_action=rule.next_action,
                message=message,
            )

        extension = clock.approved_extension_days
        total_days = rule.days + extension
        deadline = self.deadline_for(rule, clock.stage_entered_at, extension)
        today = now.astimezone(clock.stage_entered_at.tzinfo).date()
        remaining = self.days_remaining(rule, deadline, today)
        level = alert_level_for(remaining, total_days)

        return DeadlineInfo(
            case_id=case.case_id,
            stage=clock.current_stage,
            has_deadline=True,
            alert_level=level,
            as_of=now,
            deadline=deadline,
            days_remaining=remaining,
            is_calendar_days=rule.is_calendar_days,
            base_days=rule.days,
            extension_days=extension,
            total_days=total_days,
            article=rule.article,
            next_action=rule.next_action,
            message=_describe(level, remaining, rule),
        )


def _describe(level: AlertLevel, remaining: int, rule: DeadlineRule) -> str:
    if level is AlertLevel.OVERDUE:
        return f"Deadline passed {abs(remaining)} {rule.unit} ago"
    if remaining == 0:
        return "Deadline is today"
    return f"{remaining} {rule.unit} remaining"
