"""
Pytest configuration and fixtures for KarinPilot tests.

Factories live in tests.helpers; this module exposes the shared engine
components as fixtures.
"""
import pytest

from karinpilot.calendars import WeekendCalendar
from karinpilot.catalogs import default_offense_catalogue, default_rule_table
from karinpilot.engine import (
    AlertGenerator,
    AlertLedger,
    ComplianceMatcher,
    DeadlineCalculator,
    ExtensionWorkflow,
    RiskMatrixEvaluator,
    StageTransitionEngine,
    UnifiedRiskScorer,
)

from tests.helpers import MONDAY


@pytest.fixture
def now():
    """Reference time shared by a test."""
    return MONDAY


@pytest.fixture
def rule_table():
    return default_rule_table()


@pytest.fixture
def catalogue():
    return default_offense_catalogue()


@pytest.fixture
def calculator(rule_table):
    return DeadlineCalculator(rule_table=rule_table, calendar=WeekendCalendar())


@pytest.fixture
def ledger():
    return AlertLedger()


@pytest.fixture
def transitions(ledger):
    return StageTransitionEngine(alert_cache=ledger)


@pytest.fixture
def workflow(rule_table, calculator):
    return ExtensionWorkflow(rule_table=rule_table, calculator=calculator)


@pytest.fixture
def generator(calculator, ledger):
    return AlertGenerator(calculator=calculator, ledger=ledger, max_workers=4)


@pytest.fixture
def matcher(catalogue):
    return ComplianceMatcher(catalogue=catalogue)


@pytest.fixture
def evaluator(catalogue):
    return RiskMatrixEvaluator(catalogue=catalogue)


@pytest.fixture
def scorer(matcher, evaluator):
    return UnifiedRiskScorer(matcher=matcher, evaluator=evaluator, signal_timeout=1.0)
