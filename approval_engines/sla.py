"""
approval_engines.sla -- Pure SLA breach evaluation.

Responsibility:
    Decide whether a pending approval has exceeded the SLA minutes stamped
    on it, measuring elapsed time in business minutes.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Only ``pending`` approvals can breach.
    - A breach requires elapsed business minutes strictly greater than the
      SLA; ``minutes_overdue`` is therefore always > 0.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from approval_engines.business_time import (
    BusinessCalendar,
    add_business_minutes,
    business_minutes_between,
)
from approval_engines.tracer import traced_engine
from approval_kernel.domain.approval import (
    ApprovalRecord,
    ApprovalStatus,
    BreachEvent,
)


@traced_engine(
    "sla_breach",
    "1.0",
    fingerprint_fields=("request_number", "now"),
    summarize=lambda breach: {"breached": breach is not None},
)
def evaluate_breach(
    approval: ApprovalRecord,
    *,
    request_number: str,
    department_id: UUID,
    now: datetime,
    calendar: BusinessCalendar,
) -> BreachEvent | None:
    """Return a BreachEvent if ``approval`` is past its SLA at ``now``."""
    if approval.status != ApprovalStatus.PENDING:
        return None

    elapsed = business_minutes_between(approval.created_at, now, calendar)
    if elapsed <= approval.sla_minutes:
        return None

    return BreachEvent(
        request_id=approval.request_id,
        request_number=request_number,
        approval_id=approval.approval_id,
        level=approval.level,
        role=approval.role,
        approver_id=approval.approver_id,
        department_id=department_id,
        sla_minutes=approval.sla_minutes,
        minutes_elapsed=elapsed,
        minutes_overdue=elapsed - approval.sla_minutes,
    )


def sla_deadline(
    approval: ApprovalRecord,
    calendar: BusinessCalendar,
) -> datetime:
    """The UTC instant at which ``approval`` reaches its SLA."""
    return add_business_minutes(approval.created_at, approval.sla_minutes, calendar)
