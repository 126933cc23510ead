"""
approval_batch -- periodic background work for the approval engine.

Currently a single in-process scheduler that runs the SLA scan on an
interval.
"""

from approval_batch.scheduler import SlaScanScheduler

__all__ = ["SlaScanScheduler"]
