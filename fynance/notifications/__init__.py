"""Notification generation package."""

from fynance.notifications.generator import (
    LOW_BALANCE_ID,
    RECURRING_EXPENSES_ID,
    WELCOME_ID,
    NotificationGenerator,
)
from fynance.notifications.views import (
    count_by_category,
    filter_notifications,
    mark_all_as_read,
    mark_as_read,
    sort_for_display,
    unread_count,
)

__all__ = [
    "LOW_BALANCE_ID",
    "RECURRING_EXPENSES_ID",
    "WELCOME_ID",
    "NotificationGenerator",
    "count_by_category",
    "filter_notifications",
    "mark_all_as_read",
    "mark_as_read",
    "sort_for_display",
    "unread_count",
]
