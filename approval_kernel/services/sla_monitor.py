"""
SlaMonitor -- finds pending approvals past their SLA.

Responsibility:
    Loads every open level (pending approval at the request's current
    level, request ``submitted``) and evaluates it against the business
    calendar of the settings snapshot in force at scan time.  SLA minutes
    come from the approval row, stamped when the level opened, so a
    settings reload changes the calendar of in-flight levels but not their
    SLA.  Breach evaluation itself is pure and lives in
    ``approval_engines.sla``.

Architecture position:
    Kernel > Services.  Read-only: never adds, updates or flushes.

Failure modes:
    A row that fails to evaluate is logged with its request id and skipped;
    the scan carries on with the remaining requests.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from approval_engines.business_time import BusinessCalendar
from approval_engines.sla import evaluate_breach
from approval_kernel.domain.approval import (
    ApprovalStatus,
    BreachEvent,
    RequestStatus,
)
from approval_kernel.domain.clock import Clock
from approval_kernel.domain.settings import SettingsSnapshot
from approval_kernel.logging_config import get_logger
from approval_kernel.models.request import ApprovalModel, SpendRequestModel
from approval_kernel.services.base import BaseService

logger = get_logger("services.sla_monitor")


class SlaMonitor(BaseService):
    """Read-only SLA breach scanner."""

    def __init__(
        self,
        session: Session,
        settings: SettingsSnapshot,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(session, clock)
        self._settings = settings
        self._calendar = BusinessCalendar.from_settings(settings)

    def scan(self, now: datetime | None = None) -> list[BreachEvent]:
        """Return a BreachEvent for every open level past its SLA at ``now``."""
        now = now or self.clock.now()
        rows = self.session.execute(
            select(ApprovalModel, SpendRequestModel)
            .join(SpendRequestModel, ApprovalModel.request_id == SpendRequestModel.id)
            .where(
                ApprovalModel.status == ApprovalStatus.PENDING.value,
                SpendRequestModel.status == RequestStatus.SUBMITTED.value,
                ApprovalModel.level == SpendRequestModel.current_level,
            )
            .order_by(SpendRequestModel.submitted_at, SpendRequestModel.request_number)
        ).all()

        breaches: list[BreachEvent] = []
        for approval, request in rows:
            try:
                breach = evaluate_breach(
                    approval.to_dto(),
                    request_number=request.request_number,
                    department_id=request.department_id,
                    now=now,
                    calendar=self._calendar,
                )
            except Exception:
                logger.exception(
                    "sla_scan_request_failed",
                    extra={"request_id": str(request.id), "approval_level": approval.level},
                )
                continue

            if breach is not None:
                logger.info(
                    "sla_breach_detected",
                    extra={
                        "request_id": str(breach.request_id),
                        "approval_level": breach.level,
                        "role": breach.role.value,
                        "minutes_overdue": breach.minutes_overdue,
                    },
                )
                breaches.append(breach)

        logger.info(
            "sla_scan_completed",
            extra={"open_levels": len(rows), "breaches": len(breaches)},
        )
        return breaches
