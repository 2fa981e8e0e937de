"""
KarinPilot Unified Risk Scorer

Blends the compliance evaluation with an external AI severity signal into
one explainable result.

    compliance_score = risk_value / 25 × 100
    unified_score    = round(w_c × compliance_score + w_ai × severity)

The unified level is the more severe of the compliance level and the level
implied by the AI severity, so the AI signal can raise but never lower the
compliance classification. Without a signal the result is the compliance
evaluation alone.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Protocol

from ..canon import content_hash, text_hash
from ..exceptions import ExternalUnavailable, ValidationError
from ..models import (
    AISignal,
    CaseAttributes,
    ComplianceEvaluation,
    RiskLevel,
    UnifiedRiskResult,
    Urgency,
)
from .compliance_matcher import ComplianceMatcher
from .risk_matrix import RiskMatrixEvaluator

logger = logging.getLogger(__name__)

MAX_RISK_VALUE = 25
COMPLIANCE_CONFIDENCE = 85.0

# Lower bounds of AI severity per level, aligned with the matrix value scale
AI_LEVEL_THRESHOLDS = (
    (68.0, RiskLevel.INTOLERABLE),
    (40.0, RiskLevel.IMPORTANT),
    (20.0, RiskLevel.TOLERABLE),
)

LEVEL_URGENCY = {
    RiskLevel.INTOLERABLE: Urgency.CRITICAL,
    RiskLevel.IMPORTANT: Urgency.HIGH,
    RiskLevel.TOLERABLE: Urgency.MEDIUM,
    RiskLevel.ACCEPTABLE: Urgency.LOW,
}


def ai_level_for(severity: float) -> RiskLevel:
    """Risk level implied by an AI severity score."""
    for threshold, level in AI_LEVEL_THRESHOLDS:
        if severity >= threshold:
            return level
    return RiskLevel.ACCEPTABLE


class RiskSignalSource(Protocol):
    """
    External AI scorer.

    Implementations raise ExternalUnavailable when they cannot produce a
    signal.
    """

    def score(self, narrative: str, metadata: Mapping[str, Any]) -> AISignal:
        ...


@dataclass
class UnifiedRiskScorer:
    """
    Merges compliance evaluations with AI signals.

    Usage:
        scorer = UnifiedRiskScorer()
        result = scorer.merge(evaluation, signal)

        # Full pipeline with an optional external scorer
        result = scorer.analyze(attributes, signal_source=nlp_client, timeout=3.0)
    """

    compliance_weight: float = 0.6
    ai_weight: float = 0.4
    matcher: Optional[ComplianceMatcher] = None
    evaluator: Optional[RiskMatrixEvaluator] = None
    signal_timeout: float = 5.0

    def __post_init__(self) -> None:
        if abs(self.compliance_weight + self.ai_weight - 1.0) > 1e-9:
            raise ValidationError(
                message="Score weights must sum to 1.0",
                details={"compliance_weight": self.compliance_weight, "ai_weight": self.ai_weight},
            )

    def merge(
        self,
        evaluation: ComplianceEvaluation,
        ai_signal: Optional[AISignal],
        now: Optional[datetime] = None,
    ) -> UnifiedRiskResult:
        """
        Combine an evaluation with an optional AI signal.

        Args:
            evaluation: Compliance evaluation
            ai_signal: External signal, or None when unavailable

        Returns:
            UnifiedRiskResult with explanation and content hash
        """
        started = time.perf_counter()
        compliance_score = evaluation.risk_value / MAX_RISK_VALUE * 100
        explanation = [
            (
                f"Compliance risk {evaluation.probability}x{evaluation.impact}="
                f"{evaluation.risk_value}/{MAX_RISK_VALUE} ({evaluation.risk_level.value}), "
                f"score {compliance_score:.0f}"
            ),
        ]

        if ai_signal is None:
            unified_score = round(compliance_score)
            unified_level = evaluation.risk_level
            ai_level = None
            urgency = evaluation.urgency
            confidence = COMPLIANCE_CONFIDENCE
            explanation.append("AI signal unavailable; result reflects compliance evaluation only")
        else:
            unified_score = round(
                self.compliance_weight * compliance_score + self.ai_weight * ai_signal.severity
            )
            ai_level = ai_level_for(ai_signal.severity)
            unified_level = RiskLevel.most_severe(evaluation.risk_level, ai_level)
            urgency = Urgency.most_urgent(evaluation.urgency, LEVEL_URGENCY[unified_level])
            confidence = (ai_signal.confidence + COMPLIANCE_CONFIDENCE) / 2
            explanation.append(
                f"AI severity {ai_signal.severity:.0f} ({ai_level.value}), "
                f"confidence {ai_signal.confidence:.0f}"
            )
            explanation.append(
                f"Weighted score {self.compliance_weight:g}*{compliance_score:.0f} + "
                f"{self.ai_weight:g}*{ai_signal.severity:.0f} = {unified_score}"
            )
            source = "AI signal" if ai_level.rank > evaluation.risk_level.rank else "compliance evaluation"
            explanation.append(f"Unified level {unified_level.value} taken from the {source}")

        result = UnifiedRiskResult(
            compliance_evaluation=evaluation,
            ai_signal=ai_signal,
            compliance_score=compliance_score,
            unified_score=max(0, min(100, unified_score)),
            unified_level=unified_level,
            urgency=urgency,
            confidence=confidence,
            processing_time_ms=(time.perf_counter() - started) * 1000,
            created_at=now or datetime.now(timezone.utc),
            ai_level=ai_level,
            explanation=tuple(explanation),
        )
        return replace(result, content_hash=content_hash(result.decision_payload()))

    def fetch_signal(
        self,
        source: RiskSignalSource,
        narrative: str,
        metadata: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[AISignal]:
        """
        Ask an external scorer for a signal within ``timeout`` seconds.

        Returns None when the scorer is unavailable, times out, returns an
        out-of-range signal or fails in any other way.
        """
        timeout = self.signal_timeout if timeout is None else timeout
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="risk-signal")
        try:
            future = pool.submit(source.score, narrative, dict(metadata or {}))
            return future.result(timeout=timeout)
        except FutureTimeout:
            logger.warning("AI risk signal timed out after %.1fs; using compliance only", timeout)
            return None
        except (ExternalUnavailable, ValidationError) as e:
            logger.warning(
                "AI risk signal unavailable: %s; using compliance only", e,
                extra={"error_code": e.code},
            )
            return None
        except Exception as e:
            logger.warning(
                "AI risk signal failed: %s; using compliance only", e,
                exc_info=True,
            )
            return None
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    def analyze(
        self,
        attributes: CaseAttributes,
        signal_source: Optional[RiskSignalSource] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
        probability: Optional[int] = None,
        impact: Optional[int] = None,
    ) -> UnifiedRiskResult:
        """
        Run match -> evaluate -> signal -> merge for a case narrative.

        Args:
            attributes: Case attributes including the narrative
            signal_source: External scorer capability, or None when not wired
            metadata: Extra context passed to the scorer
            timeout: Scorer timeout in seconds
            probability: Optional supplied probability
            impact: Optional supplied impact
        """
        started = time.perf_counter()
        matcher = self.matcher or ComplianceMatcher()
        evaluator = self.evaluator or RiskMatrixEvaluator(catalogue=matcher.catalogue)

        narrative = attributes.narrative
        matches = matcher.match(narrative)
        evaluation = evaluator.evaluate(
            matches,
            probability=probability,
            impact=impact,
            attributes=attributes,
            narrative_hash=text_hash(narrative),
        )

        signal = None
        if signal_source is not None:
            signal = self.fetch_signal(signal_source, narrative, metadata, timeout)

        result = self.merge(evaluation, signal)
        elapsed = (time.perf_counter() - started) * 1000
        logger.info(
            "Unified risk %s (score %d, %d offenses)",
            result.unified_level.value, result.unified_score, len(matches),
            extra={"risk_level": result.unified_level.value, "duration_ms": round(elapsed, 3)},
        )
        return replace(result, processing_time_ms=elapsed)


def recommendations(result: UnifiedRiskResult) -> dict[str, list[str]]:
    """
    Group the result's actions and controls for presentation.

    Immediate actions are the first three recommended actions; strategy
    holds the rest; mitigation lists the suggested controls; legal lists the
    statutes of matched offenses.
    """
    evaluation = result.compliance_evaluation
    legal = []
    for match in evaluation.matched_offenses:
        reference = f"{match.entry.statute}, {match.entry.article}"
        if reference not in legal:
            legal.append(reference)
    return {
        "immediate": list(evaluation.recommended_actions[:3]),
        "strategy": list(evaluation.recommended_actions[3:]),
        "mitigation": list(evaluation.suggested_controls),
        "legal": legal,
    }
