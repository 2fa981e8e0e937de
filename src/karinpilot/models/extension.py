"""
KarinPilot Extension Request Model

A request to extend the deadline of an extendable stage. Requests are
immutable values: deciding a request produces a new instance.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional
from uuid import uuid4

from .actor import Actor
from .enums import ExtensionStatus, ProcessStage


@dataclass(frozen=True)
class ExtensionRequest:
    """
    Extension request for a case's current stage.

    Attributes:
        id: Unique request ID
        case_id: Owning case
        stage: Stage whose deadline would be extended
        requested_days: Days requested (positive)
        justification: Free-text reason given by the requester
        requested_by: Requesting actor
        created_at: Creation timestamp
        status: pending until decided
        decided_by: Approver or rejecter
        decided_at: Decision timestamp
        new_deadline: Deadline after approval
        comments: Approver comments
    """
    id: str
    case_id: str
    stage: ProcessStage
    requested_days: int
    justification: str
    requested_by: Actor
    created_at: datetime
    status: ExtensionStatus = ExtensionStatus.PENDING
    decided_by: Optional[Actor] = None
    decided_at: Optional[datetime] = None
    new_deadline: Optional[date] = None
    comments: Optional[str] = None

    @classmethod
    def create(
        cls,
        case_id: str,
        stage: ProcessStage,
        requested_days: int,
        justification: str,
        requested_by: Actor,
        created_at: datetime,
    ) -> ExtensionRequest:
        """Factory method to create a pending request with a generated ID."""
        return cls(
            id=str(uuid4()),
            case_id=case_id,
            stage=stage,
            requested_days=requested_days,
            justification=justification,
            requested_by=requested_by,
            created_at=created_at,
        )

    @property
    def is_pending(self) -> bool:
        return self.status is ExtensionStatus.PENDING

    def decided(
        self,
        approved: bool,
        decided_by: Actor,
        decided_at: datetime,
        new_deadline: Optional[date] = None,
        comments: Optional[str] = None,
    ) -> ExtensionRequest:
        """Return the decided copy of this request."""
        return replace(
            self,
            status=ExtensionStatus.APPROVED if approved else ExtensionStatus.REJECTED,
            decided_by=decided_by,
            decided_at=decided_at,
            new_deadline=new_deadline if approved else None,
            comments=comments,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "case_id": self.case_id,
            "stage": self.stage.value,
            "requested_days": self.requested_days,
            "justification": self.justification,
            "requested_by": self.requested_by.to_dict(),
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
            "decided_by": self.decided_by.to_dict() if self.decided_by else None,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
            "new_deadline": self.new_deadline.isoformat() if self.new_deadline else None,
            "comments": self.comments,
        }
