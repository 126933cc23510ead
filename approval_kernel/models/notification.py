"""
Module: approval_kernel.models.notification
Responsibility: ORM persistence for delivered notifications and for the
    dispatcher's SLA breach deduplication ledger.

Architecture position: Kernel > Models.

Invariants enforced:
    - UNIQUE(approval_id) on sla_breach_notices: a breach is announced at
      most once per approval, however many scans observe it.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from approval_kernel.db.base import Base, UUIDString
from approval_kernel.domain.clock import as_utc

if TYPE_CHECKING:
    from approval_kernel.domain.approval import NotificationRecord


class NotificationModel(Base):
    """A notification stored for in-app delivery."""

    __tablename__ = "notifications"

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<Notification user={self.user_id} title={self.title!r} read={self.is_read}>"

    def to_dto(self) -> NotificationRecord:
        """Convert ORM model to frozen domain DTO."""
        from approval_kernel.domain.approval import NotificationRecord as NotificationDTO

        return NotificationDTO(
            notification_id=self.id,
            user_id=self.user_id,
            title=self.title,
            message=self.message,
            is_read=self.is_read,
            created_at=as_utc(self.created_at),
        )


class BreachNoticeModel(Base):
    """Marks an approval whose SLA breach has already been announced."""

    __tablename__ = "sla_breach_notices"

    approval_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("approvals.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    request_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    minutes_overdue: Mapped[int] = mapped_column(Integer, nullable=False)
    notified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
