"""
Insight Analyzer

Spending-limit checks and the smart-analysis insight cards.

Spending limits are measured over the CURRENT calendar month only (the
month of `now`). Smart-analysis insights look at the whole transaction
history in the snapshot and assume it spans `averaging_days` days.
"""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_FLOOR
from typing import Optional

from fynance.aggregation import (
    description_counts,
    expenses,
    expenses_by_category,
    format_currency,
    format_percent,
    month_key,
    total_balance,
    total_card_debt,
    total_expenses,
    total_income,
)
from fynance.config import InsightSettings, get_settings
from fynance.models.insight import (
    Budget,
    Insight,
    InsightKind,
    MonthlySpendingStatus,
    SpendingAlert,
    SpendingAlertLevel,
    SpendingStatus,
)
from fynance.models.notification import NotificationPriority
from fynance.models.snapshot import Snapshot, Transaction, ensure_utc


HUNDRED = Decimal("100")


class InsightAnalyzer:
    """Derives budget alerts and analysis insights from a snapshot."""

    def __init__(self, settings: Optional[InsightSettings] = None):
        self._settings = settings or get_settings().insights

    def default_budgets(self) -> list[Budget]:
        return [
            Budget(category=category, limit=limit)
            for category, limit in self._settings.category_budgets.items()
        ]

    def _current_month_expenses(
        self,
        snapshot: Snapshot,
        now: datetime,
    ) -> list[Transaction]:
        month = month_key(now.date())
        return [t for t in expenses(snapshot.transactions) if t.month_key == month]

    # -------------------------------------------------------------------------
    # Spending limits
    # -------------------------------------------------------------------------

    def check_spending_limits(
        self,
        snapshot: Snapshot,
        budgets: Optional[list[Budget]] = None,
        now: Optional[datetime] = None,
    ) -> list[SpendingAlert]:
        """
        Compare this month's spending per category against its budget.

        Returns one alert per category at or above the warning ratio,
        in budget order. Budgets with a non-positive limit are ignored.
        """
        now = ensure_utc(now or datetime.now(timezone.utc))
        budgets = self.default_budgets() if budgets is None else budgets
        month_expenses = self._current_month_expenses(snapshot, now)
        warning_pct = self._settings.spending_warning_ratio * HUNDRED

        alerts = []
        for budget in budgets:
            if budget.limit <= 0:
                continue

            spent = sum(
                (abs(t.amount) for t in month_expenses if t.category == budget.category),
                Decimal("0"),
            )
            percentage = (spent / budget.limit * HUNDRED).quantize(Decimal("0.01"))

            if percentage >= HUNDRED:
                level = SpendingAlertLevel.EXCEEDED
            elif percentage >= warning_pct:
                level = SpendingAlertLevel.WARNING
            else:
                continue

            alerts.append(SpendingAlert(
                category=budget.category,
                spent=spent,
                limit=budget.limit,
                percentage=percentage,
                level=level,
            ))

        return alerts

    def monthly_spending_status(
        self,
        snapshot: Snapshot,
        monthly_limit: Optional[Decimal] = None,
        now: Optional[datetime] = None,
    ) -> MonthlySpendingStatus:
        """
        Gauge of this month's total spending against the overall limit.

        A missing or non-positive `monthly_limit` falls back to the
        configured limit, the same way non-positive budgets are ignored
        by `check_spending_limits`.
        """
        now = ensure_utc(now or datetime.now(timezone.utc))
        limit = monthly_limit
        if limit is None or limit <= 0:
            limit = self._settings.monthly_spending_limit
        spent = total_expenses(self._current_month_expenses(snapshot, now))
        ratio = spent / limit

        if ratio >= 1:
            status = SpendingStatus.EXCEEDED
        elif ratio >= self._settings.spending_warning_ratio:
            status = SpendingStatus.ATTENTION
        else:
            status = SpendingStatus.WITHIN_BUDGET

        return MonthlySpendingStatus(
            month=month_key(now.date()),
            spent=spent,
            limit=limit,
            ratio=ratio,
            remaining=limit - spent,
            status=status,
        )

    # -------------------------------------------------------------------------
    # Smart analysis
    # -------------------------------------------------------------------------

    def generate_insights(self, snapshot: Snapshot) -> list[Insight]:
        """
        Build the smart-analysis cards, most urgent first.

        Ordering within a priority follows the fixed card order below.
        """
        transactions = snapshot.transactions
        debits = expenses(transactions)
        total_spent = total_expenses(transactions)
        avg_daily = total_spent / self._settings.averaging_days
        insights = []

        # 1. Top spending category
        by_category = expenses_by_category(transactions)
        if by_category:
            category, amount = max(by_category.items(), key=lambda item: item[1])
            insights.append(Insight(
                id="top-category",
                kind=InsightKind.TOP_CATEGORY,
                title="Top spending category",
                description=f"You spent the most on {category}: {format_currency(amount)}",
                priority=NotificationPriority.HIGH,
                value=amount,
            ))

        # 2. Average daily spending
        insights.append(Insight(
            id="daily-average",
            kind=InsightKind.DAILY_AVERAGE,
            title="Average daily spending",
            description=f"You spend on average {format_currency(avg_daily)} per day",
            priority=NotificationPriority.MEDIUM,
            value=avg_daily,
        ))

        # 3. Balance projection
        balance = total_balance(snapshot.accounts)
        if balance > 0 and avg_daily > 0:
            days_until_zero = (balance / avg_daily).to_integral_value(rounding=ROUND_FLOOR)
            comfortable = balance > avg_daily * self._settings.averaging_days
            insights.append(Insight(
                id="balance-projection",
                kind=InsightKind.BALANCE_PROJECTION,
                title="Balance projection",
                description=(
                    f"At your current pace, your balance will last about "
                    f"{days_until_zero} days"
                ),
                priority=NotificationPriority.LOW if comfortable else NotificationPriority.HIGH,
                value=days_until_zero,
            ))

        # 4. Recurring transactions
        recurring = [
            description for description, count in description_counts(transactions).items()
            if count >= self._settings.recurring_insight_min_occurrences
        ]
        if recurring:
            insights.append(Insight(
                id="recurring",
                kind=InsightKind.RECURRING,
                title="Recurring expenses detected",
                description=(
                    f"We found {len(recurring)} transactions that repeat. "
                    "Consider creating alerts or goals for them."
                ),
                priority=NotificationPriority.MEDIUM,
                value=Decimal(len(recurring)),
            ))

        # 5. Largest expense
        if debits:
            largest = max(debits, key=lambda t: abs(t.amount))
            insights.append(Insight(
                id="largest-expense",
                kind=InsightKind.LARGEST_EXPENSE,
                title="Largest expense of the period",
                description=f"{largest.description}: {format_currency(abs(largest.amount))}",
                priority=NotificationPriority.HIGH,
                value=abs(largest.amount),
            ))

        # 6. Savings rate
        income = total_income(transactions)
        if income > 0:
            savings_rate = (income - total_spent) / income * HUNDRED
            insights.append(Insight(
                id="savings-rate",
                kind=InsightKind.SAVINGS_RATE,
                title="Savings rate",
                description=f"You are saving {format_percent(savings_rate, 1)}% of your income",
                priority=NotificationPriority.LOW if savings_rate > 20 else NotificationPriority.HIGH,
                value=savings_rate,
            ))

        # 7. Saving tip
        if avg_daily > self._settings.saving_tip_daily_threshold:
            monthly_savings = avg_daily * Decimal("0.1") * self._settings.averaging_days
            insights.append(Insight(
                id="saving-tip",
                kind=InsightKind.SAVING_TIP,
                title="💡 Saving tip",
                description=(
                    "Cut your spending by just 10% and you could save "
                    f"{format_currency(monthly_savings)} per month!"
                ),
                priority=NotificationPriority.MEDIUM,
                value=monthly_savings,
            ))

        # 8. Credit card usage
        if snapshot.credit_cards:
            card_debt = total_card_debt(snapshot.credit_cards)
            insights.append(Insight(
                id="credit-usage",
                kind=InsightKind.CREDIT_USAGE,
                title="Credit card usage",
                description=f"You have {format_currency(card_debt)} in open credit card bills",
                priority=(
                    NotificationPriority.HIGH
                    if card_debt > self._settings.high_card_usage
                    else NotificationPriority.LOW
                ),
                value=card_debt,
            ))

        return sorted(insights, key=lambda insight: -insight.priority.rank)
