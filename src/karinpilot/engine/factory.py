"""
Wiring of engine components from Settings.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..calendars import calendar_for_policy
from ..catalogs import DeadlineRuleTable, OffenseCatalogue, default_offense_catalogue, default_rule_table
from ..config import Settings
from .alerts import AlertGenerator, AlertLedger, NotificationDispatcher
from .compliance_matcher import ComplianceMatcher
from .deadline_calculator import DeadlineCalculator
from .extensions import ExtensionWorkflow
from .lifecycle import CaseLifecycleService, CaseStore, InMemoryCaseStore
from .risk_matrix import RiskMatrixEvaluator
from .transitions import StageTransitionEngine
from .unified_risk import RiskSignalSource, UnifiedRiskScorer


@dataclass
class EngineComponents:
    """Every engine component, sharing one rule table, catalogue and ledger."""
    settings: Settings
    rule_table: DeadlineRuleTable
    catalogue: OffenseCatalogue
    calculator: DeadlineCalculator
    transitions: StageTransitionEngine
    extensions: ExtensionWorkflow
    alerts: AlertGenerator
    matcher: ComplianceMatcher
    evaluator: RiskMatrixEvaluator
    scorer: UnifiedRiskScorer
    lifecycle: CaseLifecycleService
    signal_source: Optional[RiskSignalSource] = None


def build_components(
    settings: Settings,
    store: Optional[CaseStore] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    signal_source: Optional[RiskSignalSource] = None,
) -> EngineComponents:
    """
    Build the engine from settings.

    The signal source is only kept when risk analysis is enabled; otherwise
    the scorer always runs compliance-only.
    """
    rule_table = default_rule_table(settings.catalog_dir)
    catalogue = default_offense_catalogue(settings.catalog_dir)
    calendar = calendar_for_policy(settings.calendar, settings.region)

    ledger = AlertLedger()
    calculator = DeadlineCalculator(rule_table=rule_table, calendar=calendar)
    transitions = StageTransitionEngine(alert_cache=ledger)
    extensions = ExtensionWorkflow(rule_table=rule_table, calculator=calculator)
    alerts = AlertGenerator(
        calculator=calculator,
        ledger=ledger,
        dispatcher=dispatcher,
        max_workers=settings.alert_workers,
    )
    matcher = ComplianceMatcher(catalogue=catalogue, min_relevance=settings.min_relevance)
    evaluator = RiskMatrixEvaluator(catalogue=catalogue)
    scorer = UnifiedRiskScorer(
        compliance_weight=settings.compliance_weight,
        ai_weight=settings.ai_weight,
        matcher=matcher,
        evaluator=evaluator,
        signal_timeout=settings.ai_timeout_seconds,
    )
    lifecycle = CaseLifecycleService(
        store=store if store is not None else InMemoryCaseStore(),
        transitions=transitions,
        calculator=calculator,
        extensions=extensions,
    )
    return EngineComponents(
        settings=settings,
        rule_table=rule_table,
        catalogue=catalogue,
        calculator=calculator,
        transitions=transitions,
        extensions=extensions,
        alerts=alerts,
        matcher=matcher,
        evaluator=evaluator,
        scorer=scorer,
        lifecycle=lifecycle,
        signal_source=signal_source if settings.risk_analysis_enabled else None,
    )
