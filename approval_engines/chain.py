"""
approval_engines.chain -- Pure approval chain resolution.

Responsibility:
    Given a request amount, its department and a settings snapshot, compute
    the ordered list of approval levels the request must pass.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import approval_kernel/domain/ types and exceptions.

Invariants enforced:
    - Level 1 is always ``supervisor``.
    - Above the threshold the chain continues ``manager, finance, admin``
      in that fixed order.  At or below it the chain is ``supervisor`` only.
    - Levels are numbered 1..N with no gaps.
    - Deterministic: identical inputs give identical chains.

Failure modes:
    - InvalidAmountError if amount is not finite or <= 0.
"""

from __future__ import annotations

from decimal import Decimal

from approval_engines.tracer import traced_engine
from approval_kernel.domain.approval import (
    ApprovalChain,
    DepartmentContext,
    RequiredLevel,
)
from approval_kernel.domain.roles import APPROVER_ROLES, Role
from approval_kernel.domain.settings import SettingsSnapshot
from approval_kernel.exceptions import InvalidAmountError

# Chain depth (number of APPROVER_ROLES) for each side of the threshold.
_DEPTH_AT_OR_BELOW_THRESHOLD = 1
_DEPTH_ABOVE_THRESHOLD = len(APPROVER_ROLES)


@traced_engine(
    "chain",
    "1.0",
    fingerprint_fields=("amount", "department"),
    summarize=lambda chain: {"chain_depth": len(chain)},
)
def resolve_chain(
    *,
    amount: Decimal,
    department: DepartmentContext,
    settings: SettingsSnapshot,
) -> ApprovalChain:
    """Compute the approval chain for a request.

    Args:
        amount: Request amount.
        department: Department context; its id selects a threshold override.
        settings: The settings snapshot in force at submission.

    Returns:
        ApprovalChain whose levels carry role and SLA minutes.
    """
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(str(amount))

    threshold = settings.threshold_for(department.department_id)
    if amount > threshold:
        depth = _DEPTH_ABOVE_THRESHOLD
    else:
        depth = _DEPTH_AT_OR_BELOW_THRESHOLD

    return build_chain(APPROVER_ROLES[:depth], settings)


def build_chain(roles: tuple[Role, ...], settings: SettingsSnapshot) -> ApprovalChain:
    """Number ``roles`` 1..N and attach each role's SLA minutes."""
    return ApprovalChain(
        levels=tuple(
            RequiredLevel(
                level_number=index,
                role=role,
                sla_minutes=settings.sla_minutes_for(role),
            )
            for index, role in enumerate(roles, start=1)
        )
    )
