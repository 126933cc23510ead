"""
Module: approval_kernel.selectors.request_selector
Responsibility: Read-only access to requests, their approval rows and an
    approver's pending inbox.

Failure modes:
    - ``get`` raises RequestNotFoundError for an unknown id; list queries
      return an empty list instead of raising.
"""

from uuid import UUID

from sqlalchemy import select

from approval_kernel.domain.approval import (
    ApprovalRecord,
    ApprovalStatus,
    RequestStatus,
    SpendRequest,
)
from approval_kernel.exceptions import RequestNotFoundError
from approval_kernel.models.request import ApprovalModel, SpendRequestModel
from approval_kernel.selectors.base import BaseSelector


class RequestSelector(BaseSelector):
    """Selector for spending requests and approvals."""

    def get(self, request_id: UUID) -> SpendRequest:
        model = self.session.get(SpendRequestModel, request_id)
        if model is None:
            raise RequestNotFoundError(str(request_id))
        return model.to_dto()

    def get_by_number(self, request_number: str) -> SpendRequest | None:
        model = self.session.execute(
            select(SpendRequestModel).where(
                SpendRequestModel.request_number == request_number,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def approvals(self, request_id: UUID) -> list[ApprovalRecord]:
        """Approval rows of a request, ordered by level."""
        rows = self.session.execute(
            select(ApprovalModel)
            .where(ApprovalModel.request_id == request_id)
            .order_by(ApprovalModel.level)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def by_status(self, status: RequestStatus) -> list[SpendRequest]:
        rows = self.session.execute(
            select(SpendRequestModel)
            .where(SpendRequestModel.status == RequestStatus(status).value)
            .order_by(SpendRequestModel.request_number)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def approver_inbox(self, approver_id: UUID) -> list[ApprovalRecord]:
        """
        Open levels assigned to ``approver_id``.

        Only approvals that are pending at their request's current level
        while the request is ``submitted``; oldest first.
        """
        rows = self.session.execute(
            select(ApprovalModel)
            .join(SpendRequestModel, ApprovalModel.request_id == SpendRequestModel.id)
            .where(
                ApprovalModel.approver_id == approver_id,
                ApprovalModel.status == ApprovalStatus.PENDING.value,
                ApprovalModel.level == SpendRequestModel.current_level,
                SpendRequestModel.status == RequestStatus.SUBMITTED.value,
            )
            .order_by(ApprovalModel.created_at)
        ).scalars().all()
        return [row.to_dto() for row in rows]
