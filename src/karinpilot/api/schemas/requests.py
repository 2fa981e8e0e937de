"""Request schemas for the API."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from ...models import Actor, ActorRole, CaseAttributes, ConductFrequency


class ActorInput(BaseModel):
    """Portal user acting on a case."""
    user_id: str = Field(..., min_length=1, description="Portal user ID")
    role: Literal["super_admin", "admin", "investigator", "reporter", "viewer"]
    name: str = Field(default="", description="Display name")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"user_id": "u-admin-1", "role": "admin", "name": "Carolina Rojas"},
            ]
        }
    }

    def to_actor(self) -> Actor:
        return Actor(user_id=self.user_id, role=ActorRole(self.role), name=self.name)


class CaseAttributesInput(BaseModel):
    """Report attributes used by the compliance evaluation."""
    narrative: str = Field(default="", description="Concatenated free text of the report")
    is_karin_law: bool = True
    is_anonymous: bool = False
    evidence_count: int = Field(default=0, ge=0)
    accused_count: int = Field(default=1, ge=0)
    conduct_frequency: Optional[Literal["single", "occasional", "repeated", "systematic"]] = None
    accused_outranks_reporter: bool = False
    is_third_party: bool = False
    is_subcontracting: bool = False

    def to_attributes(self) -> CaseAttributes:
        return CaseAttributes(
            narrative=self.narrative,
            is_karin_law=self.is_karin_law,
            is_anonymous=self.is_anonymous,
            evidence_count=self.evidence_count,
            accused_count=self.accused_count,
            conduct_frequency=(
                ConductFrequency(self.conduct_frequency) if self.conduct_frequency else None
            ),
            accused_outranks_reporter=self.accused_outranks_reporter,
            is_third_party=self.is_third_party,
            is_subcontracting=self.is_subcontracting,
        )


class OpenCaseRequest(BaseModel):
    """Request to open a case."""
    company_id: str = Field(..., min_length=1, description="Tenant company ID")
    stage: str = Field(default="complaint_filed", description="Initial stage (legacy aliases accepted)")
    opened_at: Optional[datetime] = Field(default=None, description="Timezone-aware opening time")
    assigned_investigator_ids: list[str] = Field(default=[])
    alert_recipients: list[str] = Field(default=[], description="Addresses that receive deadline alerts")
    attributes: Optional[CaseAttributesInput] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "company_id": "ACME-CL",
                    "stage": "complaint_filed",
                    "opened_at": "2025-03-03T09:00:00-03:00",
                    "assigned_investigator_ids": ["u-inv-7"],
                    "alert_recipients": ["compliance@acme.cl"],
                    "attributes": {
                        "narrative": "Mi jefe me grita y humilla frente al equipo",
                        "evidence_count": 2,
                        "conduct_frequency": "repeated",
                    },
                }
            ]
        }
    }


class TransitionRequest(BaseModel):
    """Request to move a case to another stage."""
    target_stage: str = Field(..., description="Target stage (legacy aliases accepted)")
    expected_version: Optional[int] = Field(default=None, description="Version the caller read")
    now: Optional[datetime] = None
    dismissal_reason: Optional[str] = Field(default=None, description="Closes the case from any stage")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"target_stage": "investigation", "expected_version": 4},
                {"target_stage": "closed", "dismissal_reason": "Denuncia retirada"},
            ]
        }
    }


class DismissRequest(BaseModel):
    """Request to close a case by dismissal."""
    reason: str = Field(..., min_length=1)
    expected_version: Optional[int] = None
    now: Optional[datetime] = None


class ExtensionRequestInput(BaseModel):
    """Request for additional days on the current stage."""
    days: int = Field(..., gt=0, description="Requested days")
    justification: str = Field(..., min_length=1)
    requester: ActorInput
    expected_version: Optional[int] = None
    now: Optional[datetime] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "days": 15,
                    "justification": "Testigos adicionales por entrevistar",
                    "requester": {"user_id": "u-inv-7", "role": "investigator"},
                }
            ]
        }
    }


class ExtensionDecisionInput(BaseModel):
    """Approval or rejection of a pending extension request."""
    approve: bool
    approver: ActorInput
    comments: Optional[str] = None
    expected_version: Optional[int] = None
    now: Optional[datetime] = None


class AlertScanRequest(BaseModel):
    """Request to scan active cases for deadline alerts."""
    now: Optional[datetime] = Field(default=None, description="Reference time shared by the scan")
    case_ids: Optional[list[str]] = Field(default=None, description="Restrict the scan to these cases")


class ReportTextInput(BaseModel):
    """Free-text fields of a report, concatenated into the narrative."""
    description: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    location: Optional[str] = None
    previous_actions: Optional[str] = None
    expectation: Optional[str] = None


class ComplianceRequest(BaseModel):
    """Request to evaluate the compliance risk of a report."""
    narrative: Optional[str] = Field(default=None, description="Narrative text; overrides report fields")
    report: Optional[ReportTextInput] = None
    attributes: Optional[CaseAttributesInput] = None
    probability: Optional[int] = Field(default=None, ge=1, le=5)
    impact: Optional[int] = Field(default=None, ge=1, le=5)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "narrative": "El gerente pidió soborno y coima a un proveedor",
                    "attributes": {"evidence_count": 1, "is_karin_law": False},
                }
            ]
        }
    }


class AISignalInput(BaseModel):
    """Externally computed AI risk signal."""
    severity: float = Field(..., ge=0, le=100)
    confidence: float = Field(..., ge=0, le=100)
    indicators: list[str] = Field(default=[])
    source: Optional[str] = None


class UnifiedRiskRequest(ComplianceRequest):
    """Compliance request plus an optional AI signal."""
    ai_signal: Optional[AISignalInput] = Field(
        default=None,
        description="Supplied signal; when absent the configured scorer is asked",
    )
    metadata: dict[str, Any] = Field(default={})
    timeout_seconds: Optional[float] = Field(default=None, gt=0)
