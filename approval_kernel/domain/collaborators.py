"""
External collaborator interfaces.

The engine owns none of these concerns.  Callers plug in implementations
for role lookups, notification delivery and settings.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from approval_kernel.domain.approval import NotificationIntent
from approval_kernel.domain.roles import Role
from approval_kernel.domain.settings import SettingsSnapshot


class RoleAuthority(Protocol):
    """Pluggable interface for role authorization and approver lookup."""

    def has_role(self, user_id: UUID, role: Role) -> bool:
        """Check if user holds ``role``."""
        ...

    def approver_for(self, role: Role, department_id: UUID) -> UUID | None:
        """Return the user who should act for ``role`` in a department."""
        ...


class NotificationSink(Protocol):
    """Accepts notification intents and persists or delivers them."""

    def deliver(self, intent: NotificationIntent) -> None:
        ...


class SettingsProvider(Protocol):
    """Supplies the current immutable settings snapshot."""

    def current(self) -> SettingsSnapshot:
        ...
