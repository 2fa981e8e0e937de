"""Case lifecycle endpoints: stages, deadlines and extensions."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from ...engine import EngineComponents, process_progress
from ...models import KarinCase
from ..deps import get_components
from ..schemas.requests import (
    DismissRequest,
    ExtensionDecisionInput,
    ExtensionRequestInput,
    OpenCaseRequest,
    TransitionRequest,
)
from ..schemas.responses import (
    CaseResponse,
    DeadlineResponse,
    ExtensionResultResponse,
)

router = APIRouter(prefix="/cases", tags=["Cases"])


def case_response(components: EngineComponents, case: KarinCase) -> CaseResponse:
    """Case snapshot plus the stages it may move to."""
    return CaseResponse(
        **case.to_dict(),
        allowed_transitions=[s.value for s in components.transitions.allowed_targets(case)],
        progress=process_progress(case.current_stage),
    )


@router.post("", response_model=CaseResponse, status_code=201)
async def open_case(
    request: OpenCaseRequest,
    components: EngineComponents = Depends(get_components),
):
    """Open a case in its initial stage."""
    case = components.lifecycle.open_case(
        company_id=request.company_id,
        stage=request.stage,
        opened_at=request.opened_at,
        attributes=request.attributes.to_attributes() if request.attributes else None,
        assigned_investigator_ids=frozenset(request.assigned_investigator_ids),
        alert_recipients=tuple(request.alert_recipients),
    )
    return case_response(components, case)


@router.get("", response_model=list[CaseResponse])
async def list_cases(
    active_only: bool = False,
    components: EngineComponents = Depends(get_components),
):
    """List stored cases."""
    cases = components.lifecycle.store.list_cases(active_only=active_only)
    return [case_response(components, case) for case in cases]


@router.get("/{case_id}", response_model=CaseResponse)
async def get_case(case_id: str, components: EngineComponents = Depends(get_components)):
    """Get a case snapshot."""
    return case_response(components, components.lifecycle.get(case_id))


@router.get("/{case_id}/deadline", response_model=DeadlineResponse)
async def get_deadline(
    case_id: str,
    now: Optional[datetime] = None,
    components: EngineComponents = Depends(get_components),
):
    """
    Compute the deadline of the case's current stage.

    ``now`` pins the reference time; the result is deterministic for a
    given case version and ``now``.
    """
    return components.lifecycle.deadline(case_id, now=now).to_dict()


@router.post("/{case_id}/transitions", response_model=CaseResponse)
async def transition_case(
    case_id: str,
    request: TransitionRequest,
    components: EngineComponents = Depends(get_components),
):
    """Move the case to another stage."""
    case = components.lifecycle.advance(
        case_id,
        request.target_stage,
        expected_version=request.expected_version,
        now=request.now,
        dismissal_reason=request.dismissal_reason,
    )
    return case_response(components, case)


@router.post("/{case_id}/dismiss", response_model=CaseResponse)
async def dismiss_case(
    case_id: str,
    request: DismissRequest,
    components: EngineComponents = Depends(get_components),
):
    """Close the case by explicit dismissal."""
    case = components.lifecycle.dismiss(
        case_id, request.reason, expected_version=request.expected_version, now=request.now
    )
    return case_response(components, case)


@router.post("/{case_id}/extensions", response_model=ExtensionResultResponse, status_code=201)
async def request_extension(
    case_id: str,
    request: ExtensionRequestInput,
    components: EngineComponents = Depends(get_components),
):
    """Request extra days for the current stage."""
    case, extension = components.lifecycle.request_extension(
        case_id,
        days=request.days,
        justification=request.justification,
        requester=request.requester.to_actor(),
        expected_version=request.expected_version,
        now=request.now,
    )
    return ExtensionResultResponse(
        case=case_response(components, case), request=extension.to_dict()
    )


@router.post("/{case_id}/extensions/{request_id}/decision", response_model=ExtensionResultResponse)
async def decide_extension(
    case_id: str,
    request_id: str,
    request: ExtensionDecisionInput,
    components: EngineComponents = Depends(get_components),
):
    """Approve or reject a pending extension request."""
    case, extension = components.lifecycle.decide_extension(
        case_id,
        request_id,
        approver=request.approver.to_actor(),
        approve=request.approve,
        expected_version=request.expected_version,
        now=request.now,
        comments=request.comments,
    )
    return ExtensionResultResponse(
        case=case_response(components, case), request=extension.to_dict()
    )
