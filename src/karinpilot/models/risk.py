"""
KarinPilot Unified Risk Models

The external AI signal and the unified result that blends it with the
compliance evaluation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..exceptions import ValidationError
from .compliance import ComplianceEvaluation
from .enums import RiskLevel, Urgency


@dataclass(frozen=True)
class AISignal:
    """
    Opaque risk signal from an external scorer.

    Attributes:
        severity: Severity score, 0-100
        confidence: Scorer confidence, 0-100
        indicators: Risk indicators reported by the scorer
        source: Name of the scorer, for audit
    """
    severity: float
    confidence: float
    indicators: tuple[str, ...] = ()
    source: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("severity", "confidence"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValidationError(
                    message=f"AI signal {name} must be within [0, 100]",
                    details={name: value},
                )

    def to_dict(self) -> dict:
        return {
            "severity": self.severity,
            "confidence": self.confidence,
            "indicators": list(self.indicators),
            "source": self.source,
        }


@dataclass(frozen=True)
class UnifiedRiskResult:
    """
    Compliance evaluation merged with the AI signal.

    ``ai_signal`` is None when no signal was available; the result then
    reflects the compliance evaluation alone.
    """
    compliance_evaluation: ComplianceEvaluation
    ai_signal: Optional[AISignal]
    compliance_score: float
    unified_score: int
    unified_level: RiskLevel
    urgency: Urgency
    confidence: float
    processing_time_ms: float
    created_at: datetime
    ai_level: Optional[RiskLevel] = None
    explanation: tuple[str, ...] = ()
    content_hash: str = field(default="", compare=False)

    @property
    def degraded(self) -> bool:
        """True when the AI signal was unavailable."""
        return self.ai_signal is None

    def decision_payload(self) -> dict:
        """Inputs and outputs covered by ``content_hash``."""
        evaluation = self.compliance_evaluation
        return {
            "matched_offenses": sorted(m.entry.id for m in evaluation.matched_offenses),
            "probability": evaluation.probability,
            "impact": evaluation.impact,
            "risk_level": evaluation.risk_level.value,
            "ai_signal": self.ai_signal.to_dict() if self.ai_signal else None,
            "unified_score": self.unified_score,
            "unified_level": self.unified_level.value,
            "urgency": self.urgency.value,
        }

    def to_dict(self) -> dict:
        return {
            "compliance_evaluation": self.compliance_evaluation.to_dict(),
            "ai_signal": self.ai_signal.to_dict() if self.ai_signal else None,
            "compliance_score": round(self.compliance_score, 2),
            "unified_score": self.unified_score,
            "unified_level": self.unified_level.value,
            "ai_level": self.ai_level.value if self.ai_level else None,
            "urgency": self.urgency.value,
            "confidence": round(self.confidence, 2),
            "degraded": self.degraded,
            "explanation": list(self.explanation),
            "processing_time_ms": round(self.processing_time_ms, 3),
            "created_at": self.created_at.isoformat(),
            "content_hash": self.content_hash,
        }
