"""
Module: approval_engines
Responsibility:
    Re-exports the pure calculation engines: chain resolution, business-time
    arithmetic and SLA breach evaluation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import approval_kernel/domain/, approval_kernel.exceptions,
    approval_kernel.utils and (for the tracer) approval_kernel.logging_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()``.  Callers pass ``now``.
    - Decimal-only arithmetic for amounts.
    - Determinism: identical inputs always produce identical outputs.
"""

from approval_engines.business_time import (
    BusinessCalendar,
    add_business_minutes,
    business_minutes_between,
)
from approval_engines.chain import build_chain, resolve_chain
from approval_engines.sla import evaluate_breach, sla_deadline

__all__ = [
    "BusinessCalendar",
    "add_business_minutes",
    "build_chain",
    "business_minutes_between",
    "evaluate_breach",
    "resolve_chain",
    "sla_deadline",
]
