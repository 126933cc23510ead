"""
approval_kernel.services.request_state_machine -- Request lifecycle.

Responsibility:
    Owns a spending request's lifecycle
    (``draft -> submitted -> approved | rejected``, ``approved -> completed``)
    and its ``current_level`` pointer.  Opens the pending approval row for
    each level as the request reaches it.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/ and the pure
    chain resolver in approval_engines.

Invariants enforced:
    - Only transitions in ``REQUEST_TRANSITIONS`` are applied; everything
      else raises InvalidTransitionError.
    - ``current_level`` moves by exactly +1 per advance and never back.
    - At most one pending approval per request: a level is opened only
      after the previous one is decided.
    - The chain is resolved once, at submission, from the settings snapshot
      passed in, and stamped on the request.
    - ``completed_at`` is set on rejection (closure time) and completion.

Concurrency:
    ``advance_level``, ``final_approve`` and ``reject`` mutate a model that
    the caller loaded with ``load_for_update`` while holding the request's
    lock.  They never re-read the request themselves.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from approval_engines.chain import resolve_chain
from approval_kernel.db.types import is_storable_money, round_money, to_decimal
from approval_kernel.domain.approval import (
    ApprovalChain,
    ApprovalStatus,
    DepartmentContext,
    RequestStatus,
    SpendRequest,
    TransitionEvent,
    TransitionKind,
    TransitionResult,
    can_transition,
)
from approval_kernel.domain.clock import Clock
from approval_kernel.domain.collaborators import RoleAuthority
from approval_kernel.domain.settings import SettingsSnapshot
from approval_kernel.exceptions import (
    EmptyChainError,
    InvalidAmountError,
    InvalidTransitionError,
    RequestNotFoundError,
)
from approval_kernel.logging_config import get_logger
from approval_kernel.models.request import ApprovalModel, SpendRequestModel
from approval_kernel.services.base import BaseService
from approval_kernel.services.sequence_service import SequenceService

logger = get_logger("services.request_state_machine")

ChainResolver = Callable[..., ApprovalChain]


class RequestStateMachine(BaseService):
    """Applies request lifecycle transitions within the caller's transaction."""

    def __init__(
        self,
        session: Session,
        role_authority: RoleAuthority,
        clock: Clock | None = None,
        chain_resolver: ChainResolver = resolve_chain,
    ) -> None:
        super().__init__(session, clock)
        self._roles = role_authority
        self._resolve_chain = chain_resolver

    # -------------------------------------------------------------------------
    # Draft lifecycle
    # -------------------------------------------------------------------------

    def create_draft(
        self,
        requester_id: UUID,
        department_id: UUID,
        amount: Decimal | int | str,
        description: str,
    ) -> SpendRequest:
        """Create a request in ``draft`` with a freshly allocated number."""
        try:
            value = to_decimal(amount)
        except ValueError as exc:
            raise InvalidAmountError(str(amount)) from exc
        # Check before and after rounding: NaN and huge exponents can't be
        # quantized, and 9999999999999.995 rounds up to the limit.
        if not is_storable_money(value):
            raise InvalidAmountError(str(amount))
        value = round_money(value)
        if not is_storable_money(value):
            raise InvalidAmountError(str(amount))

        now = self.clock.now()
        number = SequenceService(self.session).next_request_number(now.year)
        model = SpendRequestModel(
            request_number=number,
            requester_id=requester_id,
            department_id=department_id,
            amount=value,
            description=description,
            status=RequestStatus.DRAFT.value,
            current_level=1,
            created_at=now,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "request_draft_created",
            extra={
                "request_id": str(model.id),
                "request_number": number,
                "amount": str(value),
            },
        )
        return model.to_dto()

    def discard_draft(self, request_id: UUID) -> None:
        """Delete a draft.  Drafts have no approvals, so nothing else changes."""
        model = self.load_for_update(request_id)
        if RequestStatus(model.status) != RequestStatus.DRAFT:
            raise InvalidTransitionError(str(request_id), model.status, "discarded")

        self.session.delete(model)
        self.session.flush()
        logger.info("request_draft_discarded", extra={"request_id": str(request_id)})

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def submit(self, request_id: UUID, settings: SettingsSnapshot) -> TransitionResult:
        """``draft -> submitted``: stamp the chain and open level 1."""
        model = self.load_for_update(request_id)
        self._require(model, RequestStatus.DRAFT, RequestStatus.SUBMITTED)

        chain = self._resolve_chain(
            amount=Decimal(model.amount),
            department=DepartmentContext(department_id=str(model.department_id)),
            settings=settings,
        )
        if len(chain) == 0:
            raise EmptyChainError(str(request_id))

        now = self.clock.now()
        model.chain = chain.to_payload()
        model.settings_version = settings.version
        model.settings_hash = settings.settings_hash
        model.submitted_at = now
        model.current_level = 1
        model.status = RequestStatus.SUBMITTED.value

        event = self._open_level(model, chain, 1, now)
        self.session.flush()

        logger.info(
            "request_submitted",
            extra={
                "request_id": str(request_id),
                "chain": [role.value for role in chain.roles],
                "settings_version": settings.version,
            },
        )
        return TransitionResult(request=model.to_dto(), events=(event,))

    def advance_level(
        self,
        model: SpendRequestModel,
        decided_level: int,
    ) -> list[TransitionEvent]:
        """``submitted -> submitted``: move to ``decided_level + 1``."""
        self._require(model, RequestStatus.SUBMITTED, RequestStatus.SUBMITTED)
        chain = ApprovalChain.from_payload(model.chain)
        next_level = decided_level + 1
        if decided_level != model.current_level or next_level > len(chain):
            raise InvalidTransitionError(
                str(model.id),
                f"level {model.current_level}",
                f"level {next_level}",
            )

        now = self.clock.now()
        model.current_level = next_level
        event = self._open_level(model, chain, next_level, now)
        self.session.flush()

        logger.info(
            "request_level_advanced",
            extra={"request_id": str(model.id), "current_level": next_level},
        )
        return [event]

    def final_approve(self, model: SpendRequestModel) -> list[TransitionEvent]:
        """``submitted -> approved`` after the last level is approved."""
        self._require(model, RequestStatus.SUBMITTED, RequestStatus.APPROVED)
        now = self.clock.now()
        model.status = RequestStatus.APPROVED.value
        self.session.flush()

        logger.info("request_approved", extra={"request_id": str(model.id)})
        return [self._event(TransitionKind.APPROVED, model, now)]

    def reject(self, model: SpendRequestModel) -> list[TransitionEvent]:
        """``submitted -> rejected``: terminal; no further levels open."""
        self._require(model, RequestStatus.SUBMITTED, RequestStatus.REJECTED)
        now = self.clock.now()
        model.status = RequestStatus.REJECTED.value
        model.completed_at = now
        self.session.flush()

        logger.info(
            "request_rejected",
            extra={"request_id": str(model.id), "approval_level": model.current_level},
        )
        return [self._event(TransitionKind.REJECTED, model, now, level=model.current_level)]

    def complete(self, request_id: UUID, actor_id: UUID) -> TransitionResult:
        """``approved -> completed``: external disbursement finished."""
        model = self.load_for_update(request_id)
        self._require(model, RequestStatus.APPROVED, RequestStatus.COMPLETED)

        now = self.clock.now()
        model.status = RequestStatus.COMPLETED.value
        model.completed_at = now
        self.session.flush()

        logger.info(
            "request_completed",
            extra={"request_id": str(request_id), "actor_id": str(actor_id)},
        )
        return TransitionResult(
            request=model.to_dto(),
            events=(self._event(TransitionKind.COMPLETED, model, now),),
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def load_for_update(self, request_id: UUID) -> SpendRequestModel:
        """Load and row-lock a request, raise if not found."""
        model = self.session.execute(
            select(SpendRequestModel)
            .where(SpendRequestModel.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if model is None:
            raise RequestNotFoundError(str(request_id))
        return model

    def _require(
        self,
        model: SpendRequestModel,
        expected: RequestStatus,
        target: RequestStatus,
    ) -> None:
        current = RequestStatus(model.status)
        if current != expected or not can_transition(current, target):
            raise InvalidTransitionError(str(model.id), current.value, target.value)

    def _open_level(
        self,
        model: SpendRequestModel,
        chain: ApprovalChain,
        level_number: int,
        now: datetime,
    ) -> TransitionEvent:
        required = chain.level(level_number)
        approver_id = self._roles.approver_for(required.role, model.department_id)
        if approver_id == model.requester_id:
            # Requester cannot decide their own request; leave it unassigned.
            logger.warning(
                "approval_assignee_is_requester",
                extra={"request_id": str(model.id), "approval_level": level_number},
            )
            approver_id = None

        model.approvals.append(
            ApprovalModel(
                approver_id=approver_id,
                level=level_number,
                role=required.role.value,
                status=ApprovalStatus.PENDING.value,
                sla_minutes=required.sla_minutes,
                created_at=now,
            )
        )
        return self._event(
            TransitionKind.LEVEL_OPENED,
            model,
            now,
            level=level_number,
            role=required.role,
            approver_id=approver_id,
        )

    @staticmethod
    def _event(
        kind: TransitionKind,
        model: SpendRequestModel,
        now: datetime,
        **fields,
    ) -> TransitionEvent:
        return TransitionEvent(kind=kind, request=model.to_dto(), occurred_at=now, **fields)
