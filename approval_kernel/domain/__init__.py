"""
Pure domain layer.

Value objects and interfaces with NO dependencies on the ORM, the database
or I/O (SystemClock excepted).  All domain objects are immutable.
"""

from approval_kernel.domain.approval import (
    REQUEST_TRANSITIONS,
    TERMINAL_REQUEST_STATUSES,
    ApprovalChain,
    ApprovalDecision,
    ApprovalRecord,
    ApprovalStatus,
    BreachEvent,
    DecisionOutcome,
    DepartmentContext,
    NotificationIntent,
    NotificationRecord,
    RequestStatus,
    RequiredLevel,
    SpendRequest,
    TransitionEvent,
    TransitionKind,
    TransitionResult,
    can_transition,
)
from approval_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from approval_kernel.domain.collaborators import (
    NotificationSink,
    RoleAuthority,
    SettingsProvider,
)
from approval_kernel.domain.roles import APPROVER_ROLES, ROLE_ORDER, Role, role_above
from approval_kernel.domain.settings import SettingsSnapshot, settings_errors

__all__ = [
    "APPROVER_ROLES",
    "REQUEST_TRANSITIONS",
    "ROLE_ORDER",
    "TERMINAL_REQUEST_STATUSES",
    "ApprovalChain",
    "ApprovalDecision",
    "ApprovalRecord",
    "ApprovalStatus",
    "BreachEvent",
    "Clock",
    "DecisionOutcome",
    "DepartmentContext",
    "DeterministicClock",
    "NotificationIntent",
    "NotificationRecord",
    "NotificationSink",
    "RequestStatus",
    "RequiredLevel",
    "Role",
    "RoleAuthority",
    "SettingsProvider",
    "SettingsSnapshot",
    "SpendRequest",
    "SystemClock",
    "TransitionEvent",
    "TransitionKind",
    "TransitionResult",
    "can_transition",
    "role_above",
    "settings_errors",
]
