"""Response schemas for the API."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Structured error response."""
    code: str
    message: str
    details: Optional[dict[str, Any]] = None
    case_id: Optional[str] = None
    request_id: Optional[str] = None


class HealthResponse(BaseModel):
    """Liveness probe response."""
    status: str
    timestamp: str
    version: str
    calendar: str
    risk_analysis_enabled: bool
    rule_table_hash: str
    offenses_loaded: int


class StageHistoryResponse(BaseModel):
    stage: str
    entered_at: str
    exited_at: Optional[str] = None


class ClockResponse(BaseModel):
    current_stage: str
    stage_entered_at: str
    approved_extension_days: int
    history: list[StageHistoryResponse]


class ActorResponse(BaseModel):
    user_id: str
    role: str
    name: str = ""


class ExtensionResponse(BaseModel):
    """Extension request as stored on the case."""
    id: str
    case_id: str
    stage: str
    requested_days: int
    justification: str
    requested_by: ActorResponse
    created_at: str
    status: str  # pending|approved|rejected
    decided_by: Optional[ActorResponse] = None
    decided_at: Optional[str] = None
    new_deadline: Optional[str] = None
    comments: Optional[str] = None


class CaseResponse(BaseModel):
    """Case snapshot."""
    case_id: str
    company_id: str
    version: int
    clock: ClockResponse
    extension_requests: list[ExtensionResponse]
    assigned_investigator_ids: list[str]
    alert_recipients: list[str]
    dismissed: bool
    dismissal_reason: Optional[str] = None
    attributes: dict[str, Any]
    allowed_transitions: list[str] = []
    progress: int = 0


class ExtensionResultResponse(BaseModel):
    """Case after an extension request or decision, plus the request."""
    case: CaseResponse
    request: ExtensionResponse


class DeadlineResponse(BaseModel):
    """Computed deadline of the current stage."""
    case_id: str
    stage: str
    has_deadline: bool
    deadline: Optional[str] = None
    days_remaining: Optional[int] = None
    alert_level: str  # ok|approaching|urgent|overdue
    is_calendar_days: bool
    base_days: int
    extension_days: int
    total_days: int
    article: str
    next_action: str
    message: str
    as_of: str


class AlertResponse(BaseModel):
    case_id: str
    stage: str
    deadline: str
    level: str
    days_remaining: int
    generated_at: str
    recipients: list[str]
    title: str
    message: str


class ScanOutcomeResponse(BaseModel):
    case_id: str
    stage: Optional[str] = None
    level: Optional[str] = None
    alert: Optional[AlertResponse] = None
    suppressed: bool
    dispatch: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    ok: bool


class AlertScanResponse(BaseModel):
    """Alerts emitted by a scan and per-case outcomes."""
    scanned_at: str
    alert_count: int
    failure_count: int
    alerts: list[AlertResponse]
    outcomes: list[ScanOutcomeResponse]


class OffenseMatchResponse(BaseModel):
    offense_id: str
    category: str
    statute: str
    article: str
    description: str
    base_risk_level: str
    matched_keywords: list[str]
    relevance: float


class ComplianceEvaluationResponse(BaseModel):
    """Deterministic compliance evaluation."""
    matched_offenses: list[OffenseMatchResponse]
    probability: int
    impact: int
    risk_value: int
    risk_level: str  # acceptable|tolerable|important|intolerable
    urgency: str
    suggested_controls: list[str]
    recommended_actions: list[str]
    probability_source: str
    evaluated_at: str
    narrative_hash: Optional[str] = None


class ComplianceResponse(BaseModel):
    evaluation: ComplianceEvaluationResponse
    summary: dict[str, Any]


class UnifiedRiskResponse(BaseModel):
    """Compliance evaluation blended with the AI signal."""
    compliance_evaluation: ComplianceEvaluationResponse
    ai_signal: Optional[dict[str, Any]] = None
    compliance_score: float
    unified_score: int
    unified_level: str
    ai_level: Optional[str] = None
    urgency: str
    confidence: float
    degraded: bool
    explanation: list[str]
    processing_time_ms: float
    created_at: str
    content_hash: str
    recommendations: dict[str, list[str]]
