"""ORM models for the approval kernel."""

from approval_kernel.models.notification import BreachNoticeModel, NotificationModel
from approval_kernel.models.request import ApprovalModel, SpendRequestModel
from approval_kernel.models.sequence import SequenceCounter
from approval_kernel.models.settings import SettingsModel

__all__ = [
    "ApprovalModel",
    "BreachNoticeModel",
    "NotificationModel",
    "SequenceCounter",
    "SettingsModel",
    "SpendRequestModel",
]
