"""
KarinPilot Extension Workflow

Request and decide deadline extensions for extendable stages.

Rules:
- Only one pending request per case and stage
- Cumulative approved days never exceed the stage maximum
- A request is decided exactly once, by an authorized approver
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from ..catalogs import DeadlineRuleTable, default_rule_table
from ..exceptions import (
    AlreadyDecided,
    DuplicatePendingExtension,
    ExtensionLimitExceeded,
    ExtensionNotAllowed,
    ExtensionNotFound,
    StaleExtensionRequest,
    TerminalStateViolation,
    UnauthorizedApprover,
    ValidationError,
)
from ..models import (
    Actor,
    ActorRole,
    CaseClock,
    ExtensionRequest,
    KarinCase,
    ensure_aware,
)
from .deadline_calculator import DeadlineCalculator

logger = logging.getLogger(__name__)


# =============================================================================
# Approval Authority
# =============================================================================

class ApprovalAuthority(Protocol):
    """Identity/role provider deciding who may approve extensions."""

    def can_decide_extension(self, actor: Actor, case: KarinCase) -> bool:
        ...


@dataclass
class RoleBasedApprovalAuthority:
    """
    Default authority: company admins, super admins, and investigators
    assigned to the case.
    """

    approver_roles: frozenset[ActorRole] = field(
        default_factory=lambda: frozenset({ActorRole.ADMIN, ActorRole.SUPER_ADMIN})
    )
    allow_assigned_investigators: bool = True

    def can_decide_extension(self, actor: Actor, case: KarinCase) -> bool:
        if actor.role in self.approver_roles:
            return True
        return (
            self.allow_assigned_investigators
            and actor.role is ActorRole.INVESTIGATOR
            and actor.user_id in case.assigned_investigator_ids
        )


@dataclass(frozen=True)
class ExtensionDecision:
    """Outcome of deciding a request: the clock to persist and the decided request."""
    clock: CaseClock
    request: ExtensionRequest

    @property
    def approved(self) -> bool:
        return self.request.new_deadline is not None


# =============================================================================
# Workflow
# =============================================================================

@dataclass
class ExtensionWorkflow:
    """
    Creates and decides extension requests.

    Both operations are pure over the case snapshot; the caller stores the
    returned values.
    """

    rule_table: DeadlineRuleTable = field(default_factory=default_rule_table)
    calculator: Optional[DeadlineCalculator] = None
    authority: ApprovalAuthority = field(default_factory=RoleBasedApprovalAuthority)

    def __post_init__(self) -> None:
        if self.calculator is None:
            self.calculator = DeadlineCalculator(rule_table=self.rule_table)

    def pending_request(self, case: KarinCase) -> Optional[ExtensionRequest]:
        """The open request for the case's current stage, if any."""
        for request in case.extension_requests:
            if request.is_pending and request.stage is case.current_stage:
                return request
        return None

    def remaining_extension_days(self, case: KarinCase) -> int:
        rule = self.rule_table[case.current_stage]
        if not rule.extendable:
            return 0
        return rule.max_extension_days - case.clock.approved_extension_days

    def request(
        self,
        case: KarinCase,
        days: int,
        justification: str,
        requester: Actor,
        now: Optional[datetime] = None,
    ) -> ExtensionRequest:
        """
        Create a pending extension request for the current stage.

        Raises:
            ValidationError: days not positive or justification blank
            TerminalStateViolation: case is closed
            ExtensionNotAllowed: stage is not extendable
            ExtensionLimitExceeded: request would exceed the stage maximum
            DuplicatePendingExtension: a request is already pending
        """
        now = ensure_aware(now or datetime.now(timezone.utc), "now")
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            raise ValidationError(
                message="Extension days must be a positive integer",
                details={"days": days},
                case_id=case.case_id,
            )
        if not justification or not justification.strip():
            raise ValidationError(
                message="Extension justification is required",
                case_id=case.case_id,
            )
        if not case.is_active:
            raise TerminalStateViolation(
                message="Cannot request an extension on a closed case",
                case_id=case.case_id,
            )

        stage = case.current_stage
        rule = self.rule_table[stage]
        if not rule.extendable:
            raise ExtensionNotAllowed(
                message=f"Stage '{stage.value}' does not admit extensions",
                details={"stage": stage.value},
                case_id=case.case_id,
            )

        approved = case.clock.approved_extension_days
        if days + approved > rule.max_extension_days:
            raise ExtensionLimitExceeded(
                message=(
                    f"Requested {days} days exceeds the remaining extension "
                    f"({rule.max_extension_days - approved} of {rule.max_extension_days})"
                ),
                details={
                    "requested_days": days,
                    "approved_days": approved,
                    "max_extension_days": rule.max_extension_days,
                },
                case_id=case.case_id,
            )

        pending = self.pending_request(case)
        if pending is not None:
            raise DuplicatePendingExtension(
                message="An extension request is already pending for this stage",
                details={"pending_request_id": pending.id},
                case_id=case.case_id,
            )

        request = ExtensionRequest.create(
            case_id=case.case_id,
            stage=stage,
            requested_days=days,
            justification=justification.strip(),
            requested_by=requester,
            created_at=now,
        )
        logger.info(
            "Extension of %d days requested for case %s (%s)",
            days, case.case_id, stage.value,
            extra={"case_id": case.case_id, "stage": stage.value},
        )
        return request

    def decide(
        self,
        case: KarinCase,
        request: ExtensionRequest,
        approver: Actor,
        approve: bool,
        now: Optional[datetime] = None,
        comments: Optional[str] = None,
    ) -> ExtensionDecision:
        """
        Approve or reject a pending request.

        Approval adds the requested days to the clock, capped at the stage
        maximum, and records the new deadline. Rejection leaves the clock
        unchanged.

        Raises:
            ExtensionNotFound: request does not belong to the case
            AlreadyDecided: request is no longer pending
            UnauthorizedApprover: approver lacks authority for the case
            StaleExtensionRequest: case has left the request's stage
        """
        now = ensure_aware(now or datetime.now(timezone.utc), "now")
        stored = case.find_request(request.id)
        if stored is None:
            raise ExtensionNotFound(
                message=f"Extension request {request.id} not found on case",
                details={"request_id": request.id},
                case_id=case.case_id,
            )
        if not stored.is_pending:
            raise AlreadyDecided(
                message=f"Extension request already {stored.status.value}",
                details={"request_id": stored.id, "status": stored.status.value},
                case_id=case.case_id,
            )
        if not self.authority.can_decide_extension(approver, case):
            raise UnauthorizedApprover(
                message=f"User {approver.user_id} cannot decide extensions for this case",
                details={"user_id": approver.user_id, "role": approver.role.value},
                case_id=case.case_id,
            )
        if stored.stage is not case.current_stage:
            raise StaleExtensionRequest(
                message=(
                    f"Request targets stage '{stored.stage.value}' but the case is in "
                    f"'{case.current_stage.value}'"
                ),
                case_id=case.case_id,
            )

        if not approve:
            decided = stored.decided(False, approver, now, comments=comments)
            logger.info(
                "Extension %s rejected for case %s", stored.id, case.case_id,
                extra={"case_id": case.case_id},
            )
            return ExtensionDecision(clock=case.clock, request=decided)

        rule = self.rule_table[stored.stage]
        total = min(
            case.clock.approved_extension_days + stored.requested_days,
            rule.max_extension_days,
        )
        clock = case.clock.with_extension(total)
        new_deadline = self.calculator.deadline_for(rule, clock.stage_entered_at, total)
        decided = stored.decided(True, approver, now, new_deadline=new_deadline, comments=comments)
        logger.info(
            "Extension %s approved for case %s; new deadline %s",
            stored.id, case.case_id, new_deadline.isoformat(),
            extra={"case_id": case.case_id, "stage": stored.stage.value},
        )
        return ExtensionDecision(clock=clock, request=decided)
