"""
Smart Notification Generator

Scans a snapshot through a fixed, ordered set of detectors and merges
what they find into the stored notification collection.

DETECTORS (in order):
1. Card due date       -> card-due-<cardId>
2. Large transaction   -> transaction-large-<transactionId>
3. Goal progress       -> goal-almost-<goalId> / goal-complete-<goalId>
4. Low balance         -> balance-low
5. Recurring expenses  -> recurring-expenses
6. Welcome             -> welcome (only when nothing else fired)

DESIGN DECISION: Notification ids are derived from the condition, not
random. Re-running the generator on the same snapshot replaces each
notification instead of stacking duplicates, which makes the merge
idempotent.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from fynance.aggregation import (
    description_counts,
    expenses,
    format_currency,
    format_percent,
    total_balance,
)
from fynance.config import NotificationSettings, get_settings
from fynance.models.achievement import Achievement
from fynance.models.insight import SpendingAlert, SpendingAlertLevel
from fynance.models.notification import (
    Notification,
    NotificationCategory,
    NotificationPreferences,
    NotificationPriority,
    NotificationType,
)
from fynance.models.snapshot import Snapshot, ensure_utc


WELCOME_ID = "welcome"
LOW_BALANCE_ID = "balance-low"
RECURRING_EXPENSES_ID = "recurring-expenses"


class NotificationGenerator:
    """
    Derives notifications from a snapshot.

    Pure: the caller's lists are never modified, and `now` can be pinned
    so repeated runs produce identical records.
    """

    def __init__(self, settings: Optional[NotificationSettings] = None):
        self._settings = settings or get_settings().notifications

    def generate(
        self,
        snapshot: Snapshot,
        existing: list[Notification],
        now: Optional[datetime] = None,
        preferences: Optional[NotificationPreferences] = None,
    ) -> list[Notification]:
        """
        Run all detectors and merge the result into `existing`.

        Newly generated notifications come first and win over stored
        ones with the same id.
        """
        generated = self.detect(snapshot, now=now, preferences=preferences)
        return self.merge(generated, existing)

    def detect(
        self,
        snapshot: Snapshot,
        now: Optional[datetime] = None,
        preferences: Optional[NotificationPreferences] = None,
    ) -> list[Notification]:
        """Run the detectors only, without merging."""
        now = ensure_utc(now or datetime.now(timezone.utc))
        preferences = preferences or NotificationPreferences()

        generated: list[Notification] = []

        if preferences.card_reminders:
            generated.extend(self._detect_card_due_dates(snapshot, now))
        if preferences.spending_alerts:
            generated.extend(self._detect_large_transaction(snapshot, now))
        if preferences.goal_reminders:
            generated.extend(self._detect_goal_progress(snapshot, now))
        generated.extend(self._detect_low_balance(snapshot, now))
        if preferences.spending_alerts:
            generated.extend(self._detect_recurring_expenses(snapshot, now))

        if not generated and snapshot.accounts:
            generated.append(self._welcome(now))

        return generated

    @staticmethod
    def merge(
        new: Iterable[Notification],
        existing: Iterable[Notification],
    ) -> list[Notification]:
        """
        Prepend `new` to `existing` and drop later duplicates by id.

        Returns copies; the first occurrence of each id is kept.
        """
        seen: set[str] = set()
        merged = []
        for notification in [*new, *existing]:
            if notification.id in seen:
                continue
            seen.add(notification.id)
            merged.append(notification.model_copy())
        return merged

    # -------------------------------------------------------------------------
    # Detectors
    # -------------------------------------------------------------------------

    def _detect_card_due_dates(self, snapshot: Snapshot, now: datetime) -> list[Notification]:
        """Cards due between today and the warning window (inclusive)."""
        today = now.date()
        found = []

        for card in snapshot.credit_cards:
            if card.due_date is None:
                continue
            days_until_due = (card.due_date - today).days
            if not 0 <= days_until_due <= self._settings.card_due_window_days:
                continue

            if days_until_due == 0:
                when = "today"
            elif days_until_due == 1:
                when = "tomorrow"
            else:
                when = f"in {days_until_due} days"

            found.append(Notification(
                id=f"card-due-{card.id}",
                title="💳 Card payment due soon",
                message=(
                    f"Your {card.name} card is due {when}. "
                    f"Current bill: {format_currency(card.current_balance)}"
                ),
                type=NotificationType.WARNING,
                category=NotificationCategory.CARD,
                created_at=now,
                priority=NotificationPriority.HIGH,
                action_required=True,
                data={
                    "cardId": card.id,
                    "dueDate": card.due_date.isoformat(),
                    "daysUntilDue": days_until_due,
                    "amount": str(card.current_balance),
                },
            ))

        return found

    def _detect_large_transaction(self, snapshot: Snapshot, now: datetime) -> list[Notification]:
        """The single largest recent transaction, if it is above the threshold."""
        cutoff = now.date() - timedelta(days=self._settings.large_transaction_lookback_days)
        recent = [t for t in snapshot.transactions if t.date >= cutoff]
        if not recent:
            return []

        largest = max(recent, key=lambda t: abs(t.amount))
        if abs(largest.amount) <= self._settings.large_transaction_threshold:
            return []

        direction = "received" if largest.is_income else "spent"
        return [Notification(
            id=f"transaction-large-{largest.id}",
            title="💰 Large transaction detected",
            message=(
                f"You {direction} {format_currency(abs(largest.amount))}"
                f" on {largest.date.isoformat()}: {largest.description}"
            ),
            type=NotificationType.INFO,
            category=NotificationCategory.TRANSACTION,
            created_at=now,
            priority=NotificationPriority.MEDIUM,
            data={
                "transactionId": largest.id,
                "amount": str(largest.amount),
            },
        )]

    def _detect_goal_progress(self, snapshot: Snapshot, now: datetime) -> list[Notification]:
        """Goals that are almost reached or reached. One notification per goal at most."""
        found = []

        for goal in snapshot.goals:
            progress = goal.progress
            if progress is None:
                continue

            percent = format_percent(progress * 100)
            if progress >= 1:
                found.append(Notification(
                    id=f"goal-complete-{goal.id}",
                    title="🎉 Goal reached!",
                    message=(
                        f'Congratulations! You reached your goal "{goal.title}" '
                        f"of {format_currency(goal.target_amount)}."
                    ),
                    type=NotificationType.ACHIEVEMENT,
                    category=NotificationCategory.GOAL,
                    created_at=now,
                    priority=NotificationPriority.HIGH,
                    data={"goalId": goal.id, "progress": percent},
                ))
            elif progress >= self._settings.goal_almost_ratio:
                remaining = goal.target_amount - goal.current_amount
                found.append(Notification(
                    id=f"goal-almost-{goal.id}",
                    title="🎯 Almost there!",
                    message=(
                        f'Your goal "{goal.title}" is {percent}% complete. '
                        f"Only {format_currency(remaining)} to go."
                    ),
                    type=NotificationType.SUCCESS,
                    category=NotificationCategory.GOAL,
                    created_at=now,
                    priority=NotificationPriority.HIGH,
                    data={"goalId": goal.id, "progress": percent},
                ))

        return found

    def _detect_low_balance(self, snapshot: Snapshot, now: datetime) -> list[Notification]:
        balance = total_balance(snapshot.accounts)
        if not 0 < balance < self._settings.low_balance_threshold:
            return []

        return [Notification(
            id=LOW_BALANCE_ID,
            title="⚠️ Low balance",
            message=(
                f"Your total balance is {format_currency(balance)}. "
                "Review your upcoming expenses."
            ),
            type=NotificationType.WARNING,
            category=NotificationCategory.SYSTEM,
            created_at=now,
            priority=NotificationPriority.HIGH,
            action_required=True,
            data={"totalBalance": str(balance)},
        )]

    def _detect_recurring_expenses(self, snapshot: Snapshot, now: datetime) -> list[Notification]:
        """Expense descriptions that repeat often enough to look like subscriptions."""
        counts = description_counts(expenses(snapshot.transactions))
        recurring = [
            description for description, count in counts.items()
            if count >= self._settings.recurring_min_occurrences
        ]
        if not recurring:
            return []

        return [Notification(
            id=RECURRING_EXPENSES_ID,
            title="🔁 Recurring expenses detected",
            message=(
                f"We found {len(recurring)} recurring expenses. "
                "Consider creating alerts or goals for them."
            ),
            type=NotificationType.INFO,
            category=NotificationCategory.SYSTEM,
            created_at=now,
            priority=NotificationPriority.MEDIUM,
            data={"count": len(recurring)},
        )]

    def _welcome(self, now: datetime) -> Notification:
        return Notification(
            id=WELCOME_ID,
            title="👋 Welcome to Fynance!",
            message="Your accounts are connected. We'll let you know when something needs your attention.",
            type=NotificationType.INFO,
            category=NotificationCategory.SYSTEM,
            created_at=now,
            priority=NotificationPriority.LOW,
        )

    # -------------------------------------------------------------------------
    # Event notifications
    # -------------------------------------------------------------------------

    @staticmethod
    def achievement_notifications(
        unlocked: Iterable[Achievement],
        now: Optional[datetime] = None,
    ) -> list[Notification]:
        """One notification per freshly unlocked achievement."""
        now = ensure_utc(now or datetime.now(timezone.utc))
        return [
            Notification(
                id=f"achievement-{achievement.id}",
                title="🏆 New achievement!",
                message=f'Congratulations! You unlocked "{achievement.title}"',
                type=NotificationType.ACHIEVEMENT,
                category=NotificationCategory.ACHIEVEMENT,
                created_at=now,
                priority=NotificationPriority.MEDIUM,
                data={"achievementId": achievement.id},
            )
            for achievement in unlocked
        ]

    @staticmethod
    def spending_alert_notifications(
        alerts: Iterable[SpendingAlert],
        now: Optional[datetime] = None,
    ) -> list[Notification]:
        """One notification per category over (or near) its budget."""
        now = ensure_utc(now or datetime.now(timezone.utc))
        found = []

        for alert in alerts:
            if alert.level == SpendingAlertLevel.EXCEEDED:
                over = format_percent(alert.percentage - 100)
                title = "🚨 Budget exceeded!"
                message = f"You went over your {alert.category} budget by {over}%"
                priority = NotificationPriority.HIGH
            else:
                title = "⚠️ Spending limit"
                message = (
                    f"You have already spent {format_percent(alert.percentage)}% "
                    f"of your {alert.category} budget"
                )
                priority = NotificationPriority.MEDIUM

            found.append(Notification(
                id=f"spending-limit-{alert.category}",
                title=title,
                message=message,
                type=NotificationType.WARNING,
                category=NotificationCategory.TRANSACTION,
                created_at=now,
                priority=priority,
                action_required=True,
                data={
                    "category": alert.category,
                    "percentage": str(alert.percentage),
                    "spent": str(alert.spent),
                    "limit": str(alert.limit),
                },
            ))

        return found
