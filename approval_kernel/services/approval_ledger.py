"""
ApprovalLedger -- records approver decisions.

Responsibility:
    Validates a decision against the request's current state and the
    approver's authority, records it on the level's approval row, and
    drives the request state machine (advance, final approve, reject).

Architecture position:
    Kernel > Services.  Called by ApprovalEngine under the request lock.

Invariants enforced:
    - A decision applies only to the open level: the approval is
      ``pending``, the request is ``submitted`` and ``level`` equals
      ``current_level``.  Anything else is a StaleLevelError.
    - The requester never decides their own request.
    - The approver must hold the level's role.
    - The approval is moved out of ``pending`` with a compare-and-swap
      UPDATE, so of two concurrent deciders exactly one wins.

Failure modes:
    - RequestNotFoundError / ApprovalNotFoundError for unknown ids.
    - StaleLevelError for late or duplicate decisions (never retried).
    - SelfApprovalForbiddenError / UnauthorizedApproverError.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from approval_kernel.domain.approval import (
    ApprovalChain,
    ApprovalDecision,
    ApprovalStatus,
    DecisionOutcome,
    RequestStatus,
    TransitionEvent,
)
from approval_kernel.domain.clock import Clock
from approval_kernel.domain.collaborators import RoleAuthority
from approval_kernel.domain.roles import Role
from approval_kernel.exceptions import (
    ApprovalNotFoundError,
    SelfApprovalForbiddenError,
    StaleLevelError,
    UnauthorizedApproverError,
)
from approval_kernel.logging_config import get_logger
from approval_kernel.models.request import ApprovalModel
from approval_kernel.services.base import BaseService
from approval_kernel.services.request_state_machine import RequestStateMachine

logger = get_logger("services.approval_ledger")


class ApprovalLedger(BaseService):
    """Validates and applies approve/reject decisions."""

    def __init__(
        self,
        session: Session,
        role_authority: RoleAuthority,
        state_machine: RequestStateMachine,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(session, clock)
        self._roles = role_authority
        self._state_machine = state_machine

    def decide(
        self,
        request_id: UUID,
        level: int,
        approver_id: UUID,
        decision: ApprovalDecision,
        notes: str | None = None,
    ) -> DecisionOutcome:
        """
        Record ``decision`` for ``level`` of a request.

        Preconditions: caller holds the request's lock.
        Postconditions: the approval is decided and the request advanced,
            approved or rejected, all flushed in the caller's transaction.
        """
        # Compare ids as UUIDs; a str form must not slip past the self check.
        approver_id = UUID(str(approver_id))
        decision = ApprovalDecision(decision)
        request = self._state_machine.load_for_update(request_id)

        approval = self.session.execute(
            select(ApprovalModel)
            .where(
                ApprovalModel.request_id == request_id,
                ApprovalModel.level == level,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if approval is None:
            raise ApprovalNotFoundError(str(request_id), level)

        if approval.status != ApprovalStatus.PENDING.value:
            raise StaleLevelError(
                str(request_id), level, f"approval already {approval.status}",
            )
        if request.status != RequestStatus.SUBMITTED.value:
            raise StaleLevelError(
                str(request_id), level, f"request is {request.status}",
            )
        if level != request.current_level:
            raise StaleLevelError(
                str(request_id), level,
                f"current level is {request.current_level}",
            )

        if approver_id == request.requester_id:
            raise SelfApprovalForbiddenError(str(request_id), str(approver_id))

        role = Role(approval.role)
        if not self._roles.has_role(approver_id, role):
            raise UnauthorizedApproverError(str(approver_id), role.value, level)

        now = self.clock.now()
        result = self.session.execute(
            update(ApprovalModel)
            .where(
                ApprovalModel.id == approval.id,
                ApprovalModel.status == ApprovalStatus.PENDING.value,
            )
            .values(
                status=decision.resulting_status.value,
                approver_id=approver_id,
                approved_at=now,
                notes=notes,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StaleLevelError(str(request_id), level, "decided concurrently")
        self.session.refresh(approval)

        events: list[TransitionEvent]
        if decision == ApprovalDecision.REJECT:
            events = self._state_machine.reject(request)
        elif ApprovalChain.from_payload(request.chain).is_final(level):
            events = self._state_machine.final_approve(request)
        else:
            events = self._state_machine.advance_level(request, level)

        logger.info(
            "approval_decided",
            extra={
                "request_id": str(request_id),
                "approval_level": level,
                "role": role.value,
                "approver_id": str(approver_id),
                "decision": decision.value,
                "request_status": request.status,
            },
        )

        return DecisionOutcome(
            request=request.to_dto(),
            approval=approval.to_dto(),
            events=tuple(events),
        )
