"""
KarinPilot Engine

Core components:
- StageTransitionEngine: validates and applies stage moves
- DeadlineCalculator: statutory deadline and alert level of a case
- ExtensionWorkflow: request/decide deadline extensions
- AlertGenerator: parallel deadline scans with per-case isolation
- ComplianceMatcher: offense keyword matching
- RiskMatrixEvaluator: probability × impact classification
- UnifiedRiskScorer: compliance + AI signal merge
- CaseLifecycleService: optimistic-concurrency orchestration over a store
"""
from __future__ import annotations

from .alerts import (
    ALERT_TEMPLATES,
    AlertGenerator,
    AlertLedger,
    AlertScanReport,
    CaseScanOutcome,
    DispatchResult,
    NotificationDispatcher,
    build_alert,
)
from .compliance_matcher import REPORT_TEXT_FIELDS, ComplianceMatcher, build_narrative
from .deadline_calculator import DeadlineCalculator, alert_level_for
from .extensions import (
    ApprovalAuthority,
    ExtensionDecision,
    ExtensionWorkflow,
    RoleBasedApprovalAuthority,
)
from .factory import EngineComponents, build_components
from .lifecycle import CaseLifecycleService, CaseStore, InMemoryCaseStore
from .risk_matrix import (
    LEVEL_ACTIONS,
    LEVEL_CONTROLS,
    RISK_MATRIX,
    CaseAttributeHeuristic,
    ProbabilityImpactStrategy,
    RiskMatrixEvaluator,
    build_summary,
    check_matrix_monotonic,
    classify,
    urgency_for,
)
from .transitions import (
    COMPLETION_STAGES,
    MAIN_LINE,
    TRANSITIONS,
    StageTransitionEngine,
    process_progress,
    transition,
)
from .unified_risk import (
    RiskSignalSource,
    UnifiedRiskScorer,
    ai_level_for,
    recommendations,
)

__all__ = [
    # Lifecycle
    "StageTransitionEngine",
    "TRANSITIONS",
    "COMPLETION_STAGES",
    "MAIN_LINE",
    "transition",
    "process_progress",
    "DeadlineCalculator",
    "alert_level_for",
    "ExtensionWorkflow",
    "ExtensionDecision",
    "ApprovalAuthority",
    "RoleBasedApprovalAuthority",
    "AlertGenerator",
    "AlertLedger",
    "AlertScanReport",
    "CaseScanOutcome",
    "DispatchResult",
    "NotificationDispatcher",
    "ALERT_TEMPLATES",
    "build_alert",
    "CaseLifecycleService",
    "CaseStore",
    "InMemoryCaseStore",
    # Compliance risk
    "ComplianceMatcher",
    "REPORT_TEXT_FIELDS",
    "build_narrative",
    "RiskMatrixEvaluator",
    "RISK_MATRIX",
    "LEVEL_CONTROLS",
    "LEVEL_ACTIONS",
    "ProbabilityImpactStrategy",
    "CaseAttributeHeuristic",
    "classify",
    "urgency_for",
    "check_matrix_monotonic",
    "build_summary",
    "UnifiedRiskScorer",
    "RiskSignalSource",
    "ai_level_for",
    "recommendations",
    # Wiring
    "EngineComponents",
    "build_components",
]
