"""
Factory helpers for engine tests.

All timestamps are timezone-aware and anchored on Monday 2025-03-03, 09:00
Chilean summer time (UTC-3), so business-day arithmetic is easy to follow.
"""
from dataclasses import replace
from datetime import datetime, time, timedelta, timezone
from typing import Optional

from karinpilot.calendars import WeekendCalendar
from karinpilot.catalogs import DeadlineRuleTable, default_rule_table
from karinpilot.engine import RiskMatrixEvaluator
from karinpilot.models import (
    Actor,
    ActorRole,
    CaseAttributes,
    CaseClock,
    ComplianceEvaluation,
    ExtensionRequest,
    KarinCase,
    OffenseCatalogEntry,
    OffenseSeverity,
)

CLT = timezone(timedelta(hours=-3))
MONDAY = datetime(2025, 3, 3, 9, 0, tzinfo=CLT)


def business_day(n: int, start: datetime = MONDAY, hour: int = 10) -> datetime:
    """Timestamp ``n`` weekday-only business days after ``start``."""
    day = WeekendCalendar().add_business_days(start.date(), n)
    return datetime.combine(day, time(hour, 0), tzinfo=start.tzinfo)


def make_clock(
    stage: str = "investigation",
    entered_at: datetime = MONDAY,
    extension_days: int = 0,
) -> CaseClock:
    """Create a clock that entered ``stage`` at ``entered_at``."""
    clock = CaseClock.start(stage, entered_at)
    if extension_days:
        clock = clock.with_extension(extension_days)
    return clock


def make_case(
    stage: str = "investigation",
    entered_at: datetime = MONDAY,
    case_id: str = "KRN-TEST0001",
    version: int = 1,
    extension_days: int = 0,
    dismissed: bool = False,
    investigators: frozenset = frozenset({"u-inv-1"}),
    recipients: tuple = ("compliance@acme.cl",),
    attributes: Optional[CaseAttributes] = None,
    requests: tuple[ExtensionRequest, ...] = (),
) -> KarinCase:
    """Create a case snapshot with required fields."""
    return KarinCase(
        case_id=case_id,
        company_id="ACME-CL",
        clock=make_clock(stage, entered_at, extension_days),
        version=version,
        extension_requests=requests,
        assigned_investigator_ids=frozenset(investigators),
        alert_recipients=tuple(recipients),
        dismissed=dismissed,
        attributes=attributes or CaseAttributes(),
    )


def make_actor(role: str = "admin", user_id: Optional[str] = None, name: str = "") -> Actor:
    """Create an actor; the user ID defaults to one derived from the role."""
    return Actor(user_id=user_id or f"u-{role}-1", role=ActorRole(role), name=name)


def make_attributes(narrative: str = "", **overrides) -> CaseAttributes:
    """Create case attributes with neutral defaults for the heuristic."""
    return replace(CaseAttributes(narrative=narrative), **overrides)


def make_offense(
    id: str = "test_offense",
    keywords: tuple = ("uno", "dos"),
    severity: str = "high",
    category: str = "Test",
) -> OffenseCatalogEntry:
    """Create an offense catalogue entry."""
    return OffenseCatalogEntry(
        id=id,
        category=category,
        statute="Ley de prueba",
        article="Art. 1",
        description=f"Offense {id}",
        base_risk_level=OffenseSeverity(severity),
        keywords=frozenset(keywords),
    )


def make_evaluation(probability: int, impact: int) -> ComplianceEvaluation:
    """Compliance evaluation with supplied probability and impact and no matches."""
    return RiskMatrixEvaluator().evaluate(
        [],
        probability=probability,
        impact=impact,
        now=MONDAY,
    )


def make_rule_table(**day_overrides: int) -> DeadlineRuleTable:
    """Default rule table with some stages' base days replaced."""
    table = default_rule_table()
    rules = []
    for stage, rule in table.items():
        if stage.value in day_overrides:
            rule = replace(rule, days=day_overrides[stage.value])
        rules.append(rule)
    return DeadlineRuleTable(rules, jurisdiction=table.jurisdiction)