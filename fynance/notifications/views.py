"""
Notification center views.

Pure helpers over a notification collection: display ordering, filtering,
read-state changes and counters. None of these modify their input.
"""

from collections import Counter
from typing import Optional

from fynance.models.notification import Notification, NotificationCategory


def sort_for_display(notifications: list[Notification]) -> list[Notification]:
    """Highest priority first, newest first within a priority."""
    return sorted(
        notifications,
        key=lambda n: (n.priority.rank, n.created_at),
        reverse=True,
    )


def filter_notifications(
    notifications: list[Notification],
    category: Optional[NotificationCategory] = None,
    search: Optional[str] = None,
    unread_only: bool = False,
) -> list[Notification]:
    """
    Apply the notification center filters and sort for display.

    `search` matches title or message, case-insensitively.
    """
    filtered = list(notifications)

    if search:
        needle = search.lower()
        filtered = [
            n for n in filtered
            if needle in n.title.lower() or needle in n.message.lower()
        ]

    if category is not None:
        filtered = [n for n in filtered if n.category == category]

    if unread_only:
        filtered = [n for n in filtered if not n.is_read]

    return sort_for_display(filtered)


def mark_as_read(notifications: list[Notification], notification_id: str) -> list[Notification]:
    """Return a copy with one notification marked read. Unknown ids change nothing."""
    return [
        n.model_copy(update={"is_read": True}) if n.id == notification_id else n.model_copy()
        for n in notifications
    ]


def mark_all_as_read(notifications: list[Notification]) -> list[Notification]:
    return [n.model_copy(update={"is_read": True}) for n in notifications]


def unread_count(notifications: list[Notification]) -> int:
    return sum(1 for n in notifications if not n.is_read)


def count_by_category(notifications: list[Notification]) -> dict[NotificationCategory, int]:
    """Per-category totals for the filter chips (categories with none are included as 0)."""
    counts = Counter(n.category for n in notifications)
    return {category: counts.get(category, 0) for category in NotificationCategory}
