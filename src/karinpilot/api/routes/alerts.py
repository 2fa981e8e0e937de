"""Deadline alert scans."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ...engine import EngineComponents
from ..deps import get_components
from ..schemas.requests import AlertScanRequest
from ..schemas.responses import AlertScanResponse

router = APIRouter(prefix="/alerts", tags=["Alerts"])


@router.post("/scan", response_model=AlertScanResponse)
async def scan_alerts(
    request: AlertScanRequest,
    components: EngineComponents = Depends(get_components),
):
    """
    Scan active cases and emit alerts for newly reached alert levels.

    A case already alerted at its current level is reported as suppressed.
    Per-case failures are listed in the outcomes; the scan never aborts.
    """
    cases = components.lifecycle.store.list_cases(active_only=True)
    if request.case_ids is not None:
        wanted = set(request.case_ids)
        cases = [case for case in cases if case.case_id in wanted]
    report = components.alerts.scan(cases, now=request.now)
    return report.to_dict()
