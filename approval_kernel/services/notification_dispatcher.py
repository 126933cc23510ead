"""
Notification dispatch.

Responsibility:
    Turns request transitions and SLA breaches into notification intents
    and hands them to a ``NotificationSink``.  ``NotificationStore`` is the
    default sink: it persists intents as ``notifications`` rows and serves
    the read side (unread list, mark read).

Architecture position:
    Kernel > Services.  Runs inside the same transaction as the state
    change it reports, so a rolled-back decision leaves no notification
    behind.

Invariants enforced:
    - A breach is announced at most once per approval (UNIQUE approval_id
      on ``sla_breach_notices``), however many scans observe it.
    - Escalation follows the fixed role order; nothing exists above admin.
    - An unassigned level (no approver) produces no level-opened intent.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from approval_kernel.domain.approval import (
    BreachEvent,
    NotificationIntent,
    NotificationRecord,
    TransitionEvent,
    TransitionKind,
)
from approval_kernel.domain.clock import Clock
from approval_kernel.domain.collaborators import NotificationSink, RoleAuthority
from approval_kernel.domain.roles import role_above
from approval_kernel.domain.settings import SettingsSnapshot
from approval_kernel.logging_config import get_logger
from approval_kernel.models.notification import BreachNoticeModel, NotificationModel
from approval_kernel.services.base import BaseService

logger = get_logger("services.notification_dispatcher")


class NotificationStore(BaseService):
    """Persists notifications for in-app delivery."""

    def deliver(self, intent: NotificationIntent) -> None:
        self.session.add(
            NotificationModel(
                user_id=intent.recipient_user_id,
                title=intent.title,
                message=intent.message,
                is_read=False,
                created_at=self.clock.now(),
            )
        )
        self.session.flush()

    def unread_for(self, user_id: UUID) -> list[NotificationRecord]:
        """Unread notifications for ``user_id``, oldest first."""
        rows = self.session.execute(
            select(NotificationModel)
            .where(
                NotificationModel.user_id == user_id,
                NotificationModel.is_read == False,  # noqa: E712
            )
            .order_by(NotificationModel.created_at)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def mark_read(self, notification_id: UUID) -> bool:
        """Mark one notification read.  Returns False if it doesn't exist."""
        row = self.session.get(NotificationModel, notification_id)
        if row is None:
            return False
        row.is_read = True
        self.session.flush()
        return True


class NotificationDispatcher(BaseService):
    """
    Maps engine events to recipients and messages.

    Non-goals:
        - Does NOT deliver over any channel itself; the sink does.
        - Does NOT retry failed deliveries.  A sink error propagates and
          rolls back the caller's transaction.
    """

    def __init__(
        self,
        session: Session,
        sink: NotificationSink,
        role_authority: RoleAuthority,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(session, clock)
        self._sink = sink
        self._roles = role_authority

    def on_transition(self, event: TransitionEvent) -> list[NotificationIntent]:
        """Notify whoever needs to act on, or learn about, ``event``."""
        request = event.request
        intents: list[NotificationIntent] = []

        if event.kind == TransitionKind.LEVEL_OPENED:
            if event.approver_id is not None:
                intents.append(
                    NotificationIntent(
                        recipient_user_id=event.approver_id,
                        title=f"Approval needed: {request.request_number}",
                        message=(
                            f"Request {request.request_number} for {request.amount} "
                            f"awaits your decision as {event.role.value} "
                            f"(level {event.level})."
                        ),
                    )
                )
            else:
                logger.warning(
                    "approval_level_unassigned",
                    extra={
                        "request_id": str(request.request_id),
                        "approval_level": event.level,
                    },
                )
        elif event.kind == TransitionKind.APPROVED:
            intents.append(
                self._to_requester(event, "approved", "has been fully approved.")
            )
        elif event.kind == TransitionKind.REJECTED:
            intents.append(
                self._to_requester(
                    event, "rejected", f"was rejected at level {event.level}.",
                )
            )
        elif event.kind == TransitionKind.COMPLETED:
            intents.append(
                self._to_requester(event, "completed", "has been completed.")
            )

        self._deliver(intents, request_id=request.request_id)
        return intents

    def on_breach(
        self,
        breach: BreachEvent,
        settings: SettingsSnapshot,
    ) -> list[NotificationIntent]:
        """
        Announce an SLA breach once per approval.

        Returns the intents delivered, or an empty list when this approval's
        breach was already announced.
        """
        if not self._record_notice(breach):
            logger.debug(
                "sla_breach_already_notified",
                extra={"approval_id": str(breach.approval_id)},
            )
            return []

        intents: list[NotificationIntent] = []
        if breach.approver_id is not None:
            intents.append(
                NotificationIntent(
                    recipient_user_id=breach.approver_id,
                    title=f"SLA breached: {breach.request_number}",
                    message=(
                        f"Level {breach.level} of request {breach.request_number} "
                        f"is {breach.minutes_overdue} business minutes past its "
                        f"{breach.sla_minutes}-minute SLA."
                    ),
                )
            )

        escalate_to = role_above(breach.role) if settings.escalate_breaches else None
        if escalate_to is not None:
            recipient = self._roles.approver_for(escalate_to, breach.department_id)
            if recipient is not None and recipient != breach.approver_id:
                intents.append(
                    NotificationIntent(
                        recipient_user_id=recipient,
                        title=f"Escalation: {breach.request_number}",
                        message=(
                            f"The {breach.role.value} level of request "
                            f"{breach.request_number} is {breach.minutes_overdue} "
                            f"business minutes overdue."
                        ),
                    )
                )

        logger.info(
            "sla_breach_notified",
            extra={
                "request_id": str(breach.request_id),
                "approval_level": breach.level,
                "escalated_to": escalate_to.value if escalate_to else None,
                "recipients": len(intents),
            },
        )
        self._deliver(intents, request_id=breach.request_id)
        return intents

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _notice_exists(self, approval_id: UUID) -> bool:
        return self.session.execute(
            select(BreachNoticeModel.id).where(
                BreachNoticeModel.approval_id == approval_id,
            )
        ).scalar_one_or_none() is not None

    def _record_notice(self, breach: BreachEvent) -> bool:
        if self._notice_exists(breach.approval_id):
            return False

        # A second process may record the same breach concurrently.
        savepoint = self.session.begin_nested()
        try:
            self.session.add(
                BreachNoticeModel(
                    approval_id=breach.approval_id,
                    request_id=breach.request_id,
                    level=breach.level,
                    minutes_overdue=breach.minutes_overdue,
                    notified_at=self.clock.now(),
                )
            )
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            if self._notice_exists(breach.approval_id):
                return False
            raise
        return True

    @staticmethod
    def _to_requester(
        event: TransitionEvent,
        outcome: str,
        detail: str,
    ) -> NotificationIntent:
        request = event.request
        return NotificationIntent(
            recipient_user_id=request.requester_id,
            title=f"Request {outcome}: {request.request_number}",
            message=f"Your request {request.request_number} for {request.amount} {detail}",
        )

    def _deliver(self, intents: list[NotificationIntent], request_id: UUID) -> None:
        for intent in intents:
            self._sink.deliver(intent)
            logger.debug(
                "notification_dispatched",
                extra={
                    "request_id": str(request_id),
                    "recipient_user_id": str(intent.recipient_user_id),
                    "title": intent.title,
                },
            )
