"""
Approval domain types (``approval_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the approval routing engine: the request lifecycle
state machine, approval levels and chains, decision records, transition
events, SLA breach events and notification intents.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Request lifecycle -- ``REQUEST_TRANSITIONS`` defines the only valid
  status transitions.  Terminal states have no outgoing edges.
  ``submitted -> submitted`` is the level advance.
* Approval lifecycle -- an approval is decided exactly once:
  ``pending -> approved | rejected``.
* Chain shape -- ``ApprovalChain`` levels are numbered 1..N with no gaps
  and N >= 1.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from approval_kernel.domain.roles import Role


# =========================================================================
# Request Status Lifecycle
# =========================================================================


class RequestStatus(str, Enum):
    """Spending request lifecycle states."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


REQUEST_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.DRAFT: frozenset({RequestStatus.SUBMITTED}),
    RequestStatus.SUBMITTED: frozenset({
        RequestStatus.SUBMITTED,
        RequestStatus.APPROVED,
        RequestStatus.REJECTED,
    }),
    RequestStatus.APPROVED: frozenset({RequestStatus.COMPLETED}),
    RequestStatus.REJECTED: frozenset(),
    RequestStatus.COMPLETED: frozenset(),
}

TERMINAL_REQUEST_STATUSES: frozenset[RequestStatus] = frozenset({
    RequestStatus.REJECTED,
    RequestStatus.COMPLETED,
})


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    """True iff ``current -> target`` is in the transition table."""
    return target in REQUEST_TRANSITIONS.get(current, frozenset())


# =========================================================================
# Approval Status
# =========================================================================


class ApprovalStatus(str, Enum):
    """Status of a single level's approval row."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalDecision(str, Enum):
    """Decision types that an approver can make."""

    APPROVE = "approve"
    REJECT = "reject"

    @property
    def resulting_status(self) -> ApprovalStatus:
        if self == ApprovalDecision.APPROVE:
            return ApprovalStatus.APPROVED
        return ApprovalStatus.REJECTED


# =========================================================================
# Chain
# =========================================================================


@dataclass(frozen=True)
class RequiredLevel:
    """One level of an approval chain."""

    level_number: int
    role: Role
    sla_minutes: int

    def to_payload(self) -> dict:
        return {
            "level": self.level_number,
            "role": self.role.value,
            "sla_minutes": self.sla_minutes,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> RequiredLevel:
        return cls(
            level_number=int(payload["level"]),
            role=Role(payload["role"]),
            sla_minutes=int(payload["sla_minutes"]),
        )


@dataclass(frozen=True)
class ApprovalChain:
    """Ordered, immutable sequence of required levels.

    Stamped on the request at submission and never recomputed.
    """

    levels: tuple[RequiredLevel, ...]

    def __post_init__(self) -> None:
        numbers = [lvl.level_number for lvl in self.levels]
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValueError(f"Chain levels must be numbered 1..N, got {numbers}")

    def __len__(self) -> int:
        return len(self.levels)

    @property
    def roles(self) -> tuple[Role, ...]:
        return tuple(lvl.role for lvl in self.levels)

    def level(self, number: int) -> RequiredLevel:
        """Return level ``number`` (1-based)."""
        if number < 1 or number > len(self.levels):
            raise IndexError(f"Chain has no level {number}")
        return self.levels[number - 1]

    def is_final(self, number: int) -> bool:
        return number == len(self.levels)

    def to_payload(self) -> list[dict]:
        return [lvl.to_payload() for lvl in self.levels]

    @classmethod
    def from_payload(cls, payload: list[dict]) -> ApprovalChain:
        return cls(levels=tuple(RequiredLevel.from_payload(p) for p in payload))


@dataclass(frozen=True)
class DepartmentContext:
    """Department information available to chain resolution."""

    department_id: str | None = None


# =========================================================================
# Request and Approval Records
# =========================================================================


@dataclass(frozen=True)
class ApprovalRecord:
    """Snapshot of one level's approval row."""

    approval_id: UUID
    request_id: UUID
    level: int
    role: Role
    status: ApprovalStatus
    approver_id: UUID | None
    sla_minutes: int
    created_at: datetime
    notes: str | None = None
    approved_at: datetime | None = None


@dataclass(frozen=True)
class SpendRequest:
    """Immutable snapshot of a spending request."""

    request_id: UUID
    request_number: str
    requester_id: UUID
    department_id: UUID
    amount: Decimal
    description: str
    status: RequestStatus
    current_level: int
    chain: ApprovalChain | None = None
    settings_version: int | None = None
    submitted_at: datetime | None = None
    completed_at: datetime | None = None


# =========================================================================
# Events and Intents
# =========================================================================


class TransitionKind(str, Enum):
    """State changes the dispatcher reacts to."""

    LEVEL_OPENED = "level_opened"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


@dataclass(frozen=True)
class TransitionEvent:
    """Emitted by the request state machine for every state change."""

    kind: TransitionKind
    request: SpendRequest
    occurred_at: datetime
    level: int | None = None
    role: Role | None = None
    approver_id: UUID | None = None


@dataclass(frozen=True)
class BreachEvent:
    """A pending approval that has exceeded its SLA.

    Idempotent signal: scanning again while the breach persists yields an
    equal event with a larger ``minutes_overdue``.
    """

    request_id: UUID
    request_number: str
    approval_id: UUID
    level: int
    role: Role
    approver_id: UUID | None
    department_id: UUID
    sla_minutes: int
    minutes_elapsed: int
    minutes_overdue: int


@dataclass(frozen=True)
class NotificationIntent:
    """A notification to hand to the delivery collaborator."""

    recipient_user_id: UUID
    title: str
    message: str


@dataclass(frozen=True)
class TransitionResult:
    """Result of a request state machine operation."""

    request: SpendRequest
    events: tuple[TransitionEvent, ...] = ()


@dataclass(frozen=True)
class DecisionOutcome:
    """Result of an approval decision."""

    request: SpendRequest
    approval: ApprovalRecord
    events: tuple[TransitionEvent, ...] = ()


@dataclass(frozen=True)
class NotificationRecord:
    """A stored in-app notification."""

    notification_id: UUID
    user_id: UUID
    title: str
    message: str
    is_read: bool
    created_at: datetime
