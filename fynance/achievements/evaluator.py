"""
Achievement Evaluator

Decides which achievements a snapshot unlocks.

DESIGN DECISION: Unlocking is one-way. A criterion that stops holding
(e.g. net worth falling back under the millionaire target) never re-locks
an achievement, and the original `unlocked_at` is kept.

The "disciplined" streak counts adjacent entries in the sorted list of
months that HAVE transactions. A month with no transactions is simply
missing from that list, so it neither breaks nor extends a streak.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from fynance.aggregation import (
    format_currency,
    month_key,
    monthly_totals,
    total_patrimony,
)
from fynance.config import EvaluationSettings, get_settings
from fynance.models.achievement import (
    Achievement,
    AchievementCriterion,
    UserStats,
)
from fynance.models.snapshot import Snapshot, ensure_utc


class AchievementEvaluator:
    """
    Evaluates the fixed achievement criteria against a snapshot.

    Pure: never touches its inputs, never performs I/O.
    """

    def __init__(self, settings: Optional[EvaluationSettings] = None):
        self._settings = settings or get_settings().evaluation

    def evaluate(
        self,
        snapshot: Snapshot,
        current_achievements: list[Achievement],
        now: Optional[datetime] = None,
    ) -> list[Achievement]:
        """
        Return the achievements with unlock state brought up to date.

        Same length and order as the input. Only `is_unlocked` and
        `unlocked_at` ever change, and only from locked to unlocked.
        """
        now = ensure_utc(now or datetime.now(timezone.utc))
        updated = []

        for achievement in current_achievements:
            if not achievement.is_unlocked and self.is_satisfied(achievement.criteria_id, snapshot):
                updated.append(achievement.model_copy(
                    update={"is_unlocked": True, "unlocked_at": now}
                ))
            else:
                updated.append(achievement.model_copy())

        return updated

    def is_satisfied(self, criterion: AchievementCriterion, snapshot: Snapshot) -> bool:
        """Check a single criterion against the snapshot."""
        if criterion == AchievementCriterion.FIRST_TRANSACTION:
            return len(snapshot.transactions) > 0
        elif criterion == AchievementCriterion.MONTHLY_SAVER:
            return self._has_monthly_savings(snapshot, self._settings.monthly_saver_target)
        elif criterion == AchievementCriterion.PLANNER:
            return len(snapshot.goals) > 0
        elif criterion == AchievementCriterion.MILLIONAIRE:
            return total_patrimony(snapshot) >= self._settings.millionaire_target
        elif criterion == AchievementCriterion.DISCIPLINED:
            return self._has_consecutive_months_within_budget(
                snapshot,
                self._settings.disciplined_months,
                self._settings.disciplined_monthly_budget,
            )
        return False

    def _has_monthly_savings(self, snapshot: Snapshot, target: Decimal) -> bool:
        """Did income minus expenses reach the target in any single month?"""
        return any(
            month.balance >= target
            for month in monthly_totals(snapshot.transactions).values()
        )

    def _has_consecutive_months_within_budget(
        self,
        snapshot: Snapshot,
        consecutive_months: int,
        monthly_budget: Decimal,
    ) -> bool:
        """Is there a run of N adjacent tracked months with expenses within budget?"""
        months = monthly_totals(snapshot.transactions)
        streak = 0

        for key in sorted(months):
            if months[key].expenses <= monthly_budget:
                streak += 1
                if streak >= consecutive_months:
                    return True
            else:
                streak = 0

        return False

    def newly_unlocked(
        self,
        before: list[Achievement],
        after: list[Achievement],
    ) -> list[Achievement]:
        """Achievements unlocked in `after` that were locked in `before` (matched by id)."""
        was_unlocked = {a.id for a in before if a.is_unlocked}
        return [a for a in after if a.is_unlocked and a.id not in was_unlocked]

    def get_user_stats(
        self,
        snapshot: Snapshot,
        now: Optional[datetime] = None,
    ) -> UserStats:
        """General numbers for the gamification screen."""
        now = ensure_utc(now or datetime.now(timezone.utc))
        months = monthly_totals(snapshot.transactions)
        current = months.get(month_key(now.date()))

        return UserStats(
            total_transactions=len(snapshot.transactions),
            total_patrimony=total_patrimony(snapshot),
            active_goals=sum(1 for goal in snapshot.goals if goal.is_active),
            completed_goals=sum(1 for goal in snapshot.goals if goal.is_completed),
            current_month_balance=current.balance if current else Decimal("0"),
            total_months_tracked=len(months),
        )

    def suggest_next(
        self,
        snapshot: Snapshot,
        achievements: list[Achievement],
        now: Optional[datetime] = None,
    ) -> list[str]:
        """
        Hints for the next achievements to chase.

        Walks locked achievements in catalog order and stops after
        `max_suggestions`. Not sorted by how close each one is.
        """
        stats = self.get_user_stats(snapshot, now)
        suggestions = []

        for achievement in achievements:
            if achievement.is_unlocked:
                continue
            suggestion = self._suggestion_for(achievement, stats)
            if suggestion:
                suggestions.append(suggestion)

        return suggestions[:self._settings.max_suggestions]

    def _suggestion_for(self, achievement: Achievement, stats: UserStats) -> Optional[str]:
        criterion = achievement.criteria_id
        title = achievement.title

        if criterion == AchievementCriterion.FIRST_TRANSACTION:
            if stats.total_transactions == 0:
                return f'Record your first transaction to unlock "{title}"'

        elif criterion == AchievementCriterion.MONTHLY_SAVER:
            target = self._settings.monthly_saver_target
            if stats.current_month_balance < target:
                needed = target - stats.current_month_balance
                return f'Save {format_currency(needed)} more this month to unlock "{title}"'

        elif criterion == AchievementCriterion.PLANNER:
            if stats.active_goals == 0:
                return f'Create your first financial goal to unlock "{title}"'

        elif criterion == AchievementCriterion.MILLIONAIRE:
            target = self._settings.millionaire_target
            if stats.total_patrimony < target:
                needed = target - stats.total_patrimony
                return f'Build {format_currency(needed)} more in net worth to unlock "{title}"'

        elif criterion == AchievementCriterion.DISCIPLINED:
            months = self._settings.disciplined_months
            return f'Keep your spending within budget for {months} months in a row to unlock "{title}"'

        return None
