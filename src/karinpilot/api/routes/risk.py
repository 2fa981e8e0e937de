"""Compliance and unified risk evaluation endpoints."""
from __future__ import annotations

from dataclasses import replace

from fastapi import APIRouter, Depends

from ...canon import text_hash
from ...engine import EngineComponents, build_narrative, build_summary, recommendations
from ...models import AISignal, CaseAttributes
from ..deps import get_components
from ..schemas.requests import ComplianceRequest, UnifiedRiskRequest
from ..schemas.responses import ComplianceResponse, UnifiedRiskResponse

router = APIRouter(prefix="/risk", tags=["Risk"])


def _attributes(request: ComplianceRequest) -> CaseAttributes:
    """Attributes with the narrative resolved from the request."""
    attributes = request.attributes.to_attributes() if request.attributes else CaseAttributes()
    if request.narrative is not None:
        narrative = request.narrative
    elif request.report is not None:
        narrative = build_narrative(**request.report.model_dump())
    else:
        narrative = attributes.narrative
    return replace(attributes, narrative=narrative)


@router.post("/compliance", response_model=ComplianceResponse)
async def evaluate_compliance(
    request: ComplianceRequest,
    components: EngineComponents = Depends(get_components),
):
    """
    Match the narrative against the offense catalogue and classify the risk.

    Probability and impact are estimated from the case attributes unless
    supplied.
    """
    attributes = _attributes(request)
    matches = components.matcher.match(attributes.narrative)
    evaluation = components.evaluator.evaluate(
        matches,
        probability=request.probability,
        impact=request.impact,
        attributes=attributes,
        narrative_hash=text_hash(attributes.narrative),
    )
    return {"evaluation": evaluation.to_dict(), "summary": build_summary(evaluation)}


@router.post("/unified", response_model=UnifiedRiskResponse)
async def evaluate_unified(
    request: UnifiedRiskRequest,
    components: EngineComponents = Depends(get_components),
):
    """
    Blend the compliance evaluation with an AI severity signal.

    A signal in the request is merged as given. Otherwise the configured
    scorer is asked; when it is absent, unavailable or slow the result is
    the compliance evaluation alone and ``degraded`` is true.
    """
    attributes = _attributes(request)
    scorer = components.scorer
    if request.ai_signal is not None:
        signal = AISignal(
            severity=request.ai_signal.severity,
            confidence=request.ai_signal.confidence,
            indicators=tuple(request.ai_signal.indicators),
            source=request.ai_signal.source,
        )
        matches = components.matcher.match(attributes.narrative)
        evaluation = components.evaluator.evaluate(
            matches,
            probability=request.probability,
            impact=request.impact,
            attributes=attributes,
            narrative_hash=text_hash(attributes.narrative),
        )
        result = scorer.merge(evaluation, signal)
    else:
        result = scorer.analyze(
            attributes,
            signal_source=components.signal_source,
            metadata=request.metadata,
            timeout=request.timeout_seconds,
            probability=request.probability,
            impact=request.impact,
        )
    return {**result.to_dict(), "recommendations": recommendations(result)}
