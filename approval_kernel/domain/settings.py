"""
Settings snapshot (``approval_kernel.domain.settings``).

A ``SettingsSnapshot`` is the immutable configuration every engine call
reads: the approval threshold, per-role SLA minutes and the business
calendar.  Reloading settings produces a NEW snapshot with a higher
``version``; an existing snapshot is never modified.  Requests stamp the
version and hash of the snapshot they were submitted under, so a reload
never rewrites an in-flight chain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from zoneinfo import ZoneInfo

from approval_kernel.domain.roles import Role

DEFAULT_APPROVAL_THRESHOLD = Decimal("10000000.00")
DEFAULT_SLA_SUPERVISOR = 240
DEFAULT_SLA_MANAGER = 360
DEFAULT_SLA_FINANCE = 240
DEFAULT_WORKDAY_START = time(8, 0)
DEFAULT_WORKDAY_END = time(17, 0)
# ISO weekday numbers, Monday=1 .. Sunday=7
DEFAULT_WORKDAYS: frozenset[int] = frozenset({1, 2, 3, 4, 5})


@dataclass(frozen=True)
class SettingsSnapshot:
    """Immutable approval configuration.

    ``sla_admin`` is optional.  When unset, the admin level reuses
    ``sla_manager``.
    """

    version: int = 1
    approval_threshold: Decimal = DEFAULT_APPROVAL_THRESHOLD
    sla_supervisor: int = DEFAULT_SLA_SUPERVISOR
    sla_manager: int = DEFAULT_SLA_MANAGER
    sla_finance: int = DEFAULT_SLA_FINANCE
    sla_admin: int | None = None
    workday_start: time = DEFAULT_WORKDAY_START
    workday_end: time = DEFAULT_WORKDAY_END
    workdays: frozenset[int] = DEFAULT_WORKDAYS
    holidays: frozenset[date] = frozenset()
    timezone: str = "UTC"
    department_thresholds: tuple[tuple[str, Decimal], ...] = ()
    escalate_breaches: bool = True
    settings_hash: str | None = field(default=None, compare=False)

    def sla_minutes_for(self, role: Role) -> int:
        """SLA minutes for the level held by ``role``."""
        if role == Role.SUPERVISOR:
            return self.sla_supervisor
        if role == Role.MANAGER:
            return self.sla_manager
        if role == Role.FINANCE:
            return self.sla_finance
        if role == Role.ADMIN and self.sla_admin is not None:
            return self.sla_admin
        return self.sla_manager

    def threshold_for(self, department_id: str | None) -> Decimal:
        """Approval threshold, honouring a per-department override."""
        if department_id is not None:
            for dept, threshold in self.department_thresholds:
                if dept == department_id:
                    return threshold
        return self.approval_threshold

    def to_payload(self) -> dict:
        """Canonical dict form used for hashing and persistence."""
        return {
            "approval_threshold": self.approval_threshold,
            "sla_supervisor": self.sla_supervisor,
            "sla_manager": self.sla_manager,
            "sla_finance": self.sla_finance,
            "sla_admin": self.sla_admin,
            "workday_start": self.workday_start,
            "workday_end": self.workday_end,
            "workdays": sorted(self.workdays),
            "holidays": sorted(self.holidays),
            "timezone": self.timezone,
            "department_thresholds": {
                dept: threshold for dept, threshold in self.department_thresholds
            },
            "escalate_breaches": self.escalate_breaches,
        }


def settings_errors(snapshot: SettingsSnapshot) -> list[str]:
    """Return every validation problem with ``snapshot`` (empty if valid)."""
    errors: list[str] = []
    if snapshot.approval_threshold <= 0:
        errors.append("approval_threshold must be greater than zero")
    for name in ("sla_supervisor", "sla_manager", "sla_finance", "sla_admin"):
        value = getattr(snapshot, name)
        if value is not None and value <= 0:
            errors.append(f"{name} must be a positive number of minutes")
    if snapshot.workday_start >= snapshot.workday_end:
        errors.append("workday_start must be earlier than workday_end")
    if not snapshot.workdays:
        errors.append("workdays must not be empty")
    elif not all(1 <= day <= 7 for day in snapshot.workdays):
        errors.append("workdays must be ISO weekday numbers 1..7")
    try:
        ZoneInfo(snapshot.timezone)
    except (KeyError, ValueError, OSError):
        errors.append(f"unknown timezone {snapshot.timezone!r}")
    for dept, threshold in snapshot.department_thresholds:
        if threshold <= 0:
            errors.append(f"department {dept} threshold must be greater than zero")
    return errors
