"""
KarinPilot - Ley Karin Case Lifecycle & Compliance Risk Engine

KarinPilot drives workplace harassment and violence investigations under
Chilean Law 21.643 through their statutory stages, and evaluates the legal
risk of reported cases. It produces deadlines, alerts and RECOMMENDATIONS;
investigators and compliance officers decide.

Key Features:
- Closed stage enum with legacy alias normalization
- Statutory deadlines in calendar or business days, with extensions
- Escalating deadline alerts (ok, approaching, urgent, overdue)
- Offense catalogue matching and a 5×5 probability × impact matrix
- Unified score blending an external AI severity signal

Quick Start:
    from karinpilot import CaseLifecycleService, UnifiedRiskScorer, CaseAttributes

    service = CaseLifecycleService()
    case = service.open_case("ACME-CL")
    case = service.advance(case.case_id, "reception", expected_version=case.version)
    info = service.deadline(case.case_id)

    result = UnifiedRiskScorer().analyze(CaseAttributes(narrative="soborno a un funcionario"))

Version: 0.1.0
"""
from __future__ import annotations

__version__ = "0.1.0"

# =============================================================================
# Core Models (Re-exported for convenience)
# =============================================================================
from .models import (
    Actor,
    ActorRole,
    AISignal,
    AlertLevel,
    CaseAttributes,
    CaseClock,
    ComplianceEvaluation,
    DeadlineAlert,
    DeadlineInfo,
    DeadlineRule,
    ExtensionRequest,
    ExtensionStatus,
    KarinCase,
    OffenseMatch,
    ProcessStage,
    RiskLevel,
    UnifiedRiskResult,
    Urgency,
)

# =============================================================================
# Engine Components
# =============================================================================
from .catalogs import DeadlineRuleTable, OffenseCatalogue
from .engine import (
    AlertGenerator,
    CaseLifecycleService,
    ComplianceMatcher,
    DeadlineCalculator,
    ExtensionWorkflow,
    InMemoryCaseStore,
    RiskMatrixEvaluator,
    StageTransitionEngine,
    UnifiedRiskScorer,
    build_components,
)
from .config import Settings, load_settings
from .exceptions import KarinPilotError

__all__ = [
    "__version__",
    # Models
    "Actor",
    "ActorRole",
    "AISignal",
    "AlertLevel",
    "CaseAttributes",
    "CaseClock",
    "ComplianceEvaluation",
    "DeadlineAlert",
    "DeadlineInfo",
    "DeadlineRule",
    "ExtensionRequest",
    "ExtensionStatus",
    "KarinCase",
    "OffenseMatch",
    "ProcessStage",
    "RiskLevel",
    "UnifiedRiskResult",
    "Urgency",
    # Engine
    "DeadlineRuleTable",
    "OffenseCatalogue",
    "StageTransitionEngine",
    "DeadlineCalculator",
    "ExtensionWorkflow",
    "AlertGenerator",
    "ComplianceMatcher",
    "RiskMatrixEvaluator",
    "UnifiedRiskScorer",
    "CaseLifecycleService",
    "InMemoryCaseStore",
    "build_components",
    # Config / errors
    "Settings",
    "load_settings",
    "KarinPilotError",
]
