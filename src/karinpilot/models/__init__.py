"""
KarinPilot Models

Domain models for the case lifecycle and compliance risk engine.
"""
from __future__ import annotations

from .actor import Actor
from .case import (
    CaseAttributes,
    CaseClock,
    KarinCase,
    StageHistoryEntry,
    ensure_aware,
)
from .compliance import (
    ComplianceEvaluation,
    OffenseCatalogEntry,
    OffenseMatch,
)
from .deadlines import (
    DeadlineAlert,
    DeadlineInfo,
    DeadlineRule,
)
from .enums import (
    LEGACY_STAGE_ALIASES,
    ActorRole,
    AlertLevel,
    ConductFrequency,
    ExtensionStatus,
    OffenseSeverity,
    ProcessStage,
    RiskLevel,
    Urgency,
)
from .extension import ExtensionRequest
from .risk import AISignal, UnifiedRiskResult

__all__ = [
    # Enums
    "ProcessStage",
    "LEGACY_STAGE_ALIASES",
    "AlertLevel",
    "ExtensionStatus",
    "ActorRole",
    "OffenseSeverity",
    "RiskLevel",
    "Urgency",
    "ConductFrequency",
    # Case
    "Actor",
    "CaseAttributes",
    "CaseClock",
    "KarinCase",
    "StageHistoryEntry",
    "ensure_aware",
    "ExtensionRequest",
    # Deadlines
    "DeadlineRule",
    "DeadlineInfo",
    "DeadlineAlert",
    # Compliance and risk
    "OffenseCatalogEntry",
    "OffenseMatch",
    "ComplianceEvaluation",
    "AISignal",
    "UnifiedRiskResult",
]
