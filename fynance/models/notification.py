"""
Notification Models

Notifications are generated fresh on every refresh and merged into the
stored collection by id. The only field a user changes afterwards is
`is_read`.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from fynance.models.snapshot import FinanceModel, ensure_utc


class NotificationType(str, Enum):
    """Visual classification of a notification."""
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"
    ACHIEVEMENT = "achievement"
    REMINDER = "reminder"


class NotificationCategory(str, Enum):
    """What area of the app a notification is about (used for filtering)."""
    TRANSACTION = "transaction"
    GOAL = "goal"
    CARD = "card"
    SYSTEM = "system"
    ACHIEVEMENT = "achievement"
    REMINDER = "reminder"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Numeric rank for ordering (higher = more urgent)."""
        return {"low": 1, "medium": 2, "high": 3}[self.value]


class Notification(FinanceModel):
    """
    A derived alert or insight shown in the notification center.

    Ids are stable per condition (e.g. `card-due-<cardId>`), so repeated
    generation replaces rather than duplicates.
    """

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., max_length=1000)
    type: NotificationType
    category: NotificationCategory
    is_read: bool = False
    created_at: datetime
    priority: NotificationPriority = NotificationPriority.MEDIUM
    action_required: bool = False
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Opaque payload for the host (ids, amounts)"
    )

    @field_validator("created_at")
    @classmethod
    def created_at_as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class NotificationPreferences(FinanceModel):
    """
    Per-user notification toggles.

    Persisted by the host; every toggle defaults to on.
    """

    card_reminders: bool = True
    goal_reminders: bool = True
    spending_alerts: bool = True
    weekly_summary: bool = True
    monthly_summary: bool = True
    achievements: bool = True
