"""
Role hierarchy for spending approvals.

The order staff -> supervisor -> manager -> finance -> admin is fixed.
Approval chains are always a gap-free prefix of ``APPROVER_ROLES``
starting at ``supervisor``.  Nothing reorders or skips a role.
"""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles known to the approval engine."""

    STAFF = "staff"
    SUPERVISOR = "supervisor"
    MANAGER = "manager"
    FINANCE = "finance"
    ADMIN = "admin"


ROLE_ORDER: tuple[Role, ...] = (
    Role.STAFF,
    Role.SUPERVISOR,
    Role.MANAGER,
    Role.FINANCE,
    Role.ADMIN,
)

# Roles that approve, in the order levels are opened.
APPROVER_ROLES: tuple[Role, ...] = ROLE_ORDER[1:]


def role_above(role: Role) -> Role | None:
    """Return the next role up the hierarchy, or None for admin."""
    index = ROLE_ORDER.index(role)
    if index + 1 < len(ROLE_ORDER):
        return ROLE_ORDER[index + 1]
    return None
