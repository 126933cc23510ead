"""Services for the approval kernel (write side)."""

from approval_kernel.services.approval_engine import ApprovalEngine
from approval_kernel.services.approval_ledger import ApprovalLedger
from approval_kernel.services.notification_dispatcher import (
    NotificationDispatcher,
    NotificationStore,
)
from approval_kernel.services.request_lock import RequestLockRegistry
from approval_kernel.services.request_state_machine import RequestStateMachine
from approval_kernel.services.sequence_service import SequenceService
from approval_kernel.services.settings_service import (
    DatabaseSettingsProvider,
    SettingsService,
)
from approval_kernel.services.sla_monitor import SlaMonitor

__all__ = [
    "ApprovalEngine",
    "ApprovalLedger",
    "DatabaseSettingsProvider",
    "NotificationDispatcher",
    "NotificationStore",
    "RequestLockRegistry",
    "RequestStateMachine",
    "SequenceService",
    "SettingsService",
    "SlaMonitor",
]
