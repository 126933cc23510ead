"""
Module: approval_kernel.models.request
Responsibility: ORM persistence for spending requests and their per-level
    approval rows.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - request_number is unique.
    - UNIQUE(request_id, level) on approvals: at most one approval row per
      level of a request.
    - current_level never decreases (ORM validator).
    - Status values limited by check constraints; the services layer
      enforces the transition table.
    - A request owns its approval rows; deleting the request deletes them.

Indexes:
    - (status, current_level, submitted_at) for SLA scans.
    - (approver_id, status) for approver inboxes.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from approval_kernel.db.base import Base, UUIDString
from approval_kernel.domain.clock import as_utc
from approval_kernel.exceptions import InvalidTransitionError

if TYPE_CHECKING:
    from approval_kernel.domain.approval import ApprovalRecord, SpendRequest


def _utc_or_none(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


class SpendRequestModel(Base):
    """Persistent spending request.

    Contract:
        ``chain`` holds the level list resolved at submission, together with
        the settings version and hash it was resolved under.  It is written
        once by submit and never recomputed.
    """

    __tablename__ = "requests"

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'submitted', 'approved', 'rejected', 'completed')",
            name="ck_requests_valid_status",
        ),
        CheckConstraint("amount > 0", name="ck_requests_positive_amount"),
        CheckConstraint("current_level >= 1", name="ck_requests_level_positive"),
        Index(
            "ix_requests_status_level_submitted",
            "status", "current_level", "submitted_at",
        ),
    )

    request_number: Mapped[str] = mapped_column(
        String(32), nullable=False, unique=True,
    )
    requester_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    department_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="draft", index=True,
    )
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    chain: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    settings_version: Mapped[int | None] = mapped_column(Integer, nullable=True)
    settings_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    approvals: Mapped[list["ApprovalModel"]] = relationship(
        "ApprovalModel",
        back_populates="request",
        order_by="ApprovalModel.level",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @validates("current_level")
    def _validate_current_level(self, key: str, value: int) -> int:
        previous = self.current_level
        if previous is not None and value < previous:
            raise InvalidTransitionError(
                str(self.id), f"level {previous}", f"level {value}",
            )
        return value

    def __repr__(self) -> str:
        return (
            f"<SpendRequest {self.request_number} "
            f"status={self.status} level={self.current_level}>"
        )

    def to_dto(self) -> SpendRequest:
        """Convert ORM model to frozen domain DTO."""
        from approval_kernel.domain.approval import (
            ApprovalChain,
            RequestStatus,
            SpendRequest as SpendRequestDTO,
        )

        return SpendRequestDTO(
            request_id=self.id,
            request_number=self.request_number,
            requester_id=self.requester_id,
            department_id=self.department_id,
            amount=Decimal(self.amount),
            description=self.description,
            status=RequestStatus(self.status),
            current_level=self.current_level,
            chain=ApprovalChain.from_payload(self.chain) if self.chain else None,
            settings_version=self.settings_version,
            submitted_at=_utc_or_none(self.submitted_at),
            completed_at=_utc_or_none(self.completed_at),
        )


class ApprovalModel(Base):
    """Persistent approval row for one level of a request.

    Contract:
        Created as ``pending`` when its level opens; decided exactly once.
        ``approver_id`` holds the assigned approver until a decision, then
        the approver who actually decided.
    """

    __tablename__ = "approvals"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_approvals_valid_status",
        ),
        UniqueConstraint("request_id", "level", name="uq_approvals_request_level"),
        Index("ix_approvals_approver_status", "approver_id", "status"),
    )

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    approver_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", index=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    sla_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    request: Mapped["SpendRequestModel"] = relationship(
        "SpendRequestModel",
        back_populates="approvals",
    )

    def __repr__(self) -> str:
        return (
            f"<Approval request={self.request_id} "
            f"level={self.level} status={self.status}>"
        )

    def to_dto(self) -> ApprovalRecord:
        """Convert ORM model to frozen domain DTO."""
        from approval_kernel.domain.approval import (
            ApprovalRecord as ApprovalRecordDTO,
            ApprovalStatus,
        )
        from approval_kernel.domain.roles import Role

        return ApprovalRecordDTO(
            approval_id=self.id,
            request_id=self.request_id,
            level=self.level,
            role=Role(self.role),
            status=ApprovalStatus(self.status),
            approver_id=self.approver_id,
            sla_minutes=self.sla_minutes,
            created_at=as_utc(self.created_at),
            notes=self.notes,
            approved_at=_utc_or_none(self.approved_at),
        )
