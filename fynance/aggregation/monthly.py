"""
Shared aggregation helpers.

Month buckets, totals and groupings used by the achievement evaluator,
the notification generator and the insight analyzer. Everything here is a
plain function over already-validated snapshot records.
"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable

from fynance.models.snapshot import Account, CreditCard, Snapshot, Transaction


ZERO = Decimal("0")


@dataclass
class MonthlyTotals:
    """Income and (positive) expense sums for one YYYY-MM bucket."""
    income: Decimal = field(default=ZERO)
    expenses: Decimal = field(default=ZERO)

    @property
    def balance(self) -> Decimal:
        return self.income - self.expenses


def month_key(day: date) -> str:
    """YYYY-MM key for a calendar date."""
    return day.strftime("%Y-%m")


def monthly_totals(transactions: Iterable[Transaction]) -> dict[str, MonthlyTotals]:
    """
    Group transactions by month.

    Income is the sum of positive amounts; expenses the sum of the
    absolute value of everything else. Months with no transactions are
    absent from the result.
    """
    months: dict[str, MonthlyTotals] = defaultdict(MonthlyTotals)
    for transaction in transactions:
        bucket = months[transaction.month_key]
        if transaction.is_income:
            bucket.income += transaction.amount
        else:
            bucket.expenses += abs(transaction.amount)
    return dict(months)


def total_balance(accounts: Iterable[Account]) -> Decimal:
    return sum((account.balance for account in accounts), ZERO)


def total_card_debt(cards: Iterable[CreditCard]) -> Decimal:
    return sum((card.current_balance for card in cards), ZERO)


def total_patrimony(snapshot: Snapshot) -> Decimal:
    """Net worth: account balances minus what is owed on credit cards."""
    return total_balance(snapshot.accounts) - total_card_debt(snapshot.credit_cards)


def expenses(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.is_expense]


def total_expenses(transactions: Iterable[Transaction]) -> Decimal:
    return sum((abs(t.amount) for t in transactions if t.is_expense), ZERO)


def total_income(transactions: Iterable[Transaction]) -> Decimal:
    return sum((t.amount for t in transactions if t.is_income), ZERO)


def expenses_by_category(
    transactions: Iterable[Transaction],
    default_category: str = "Outros",
) -> dict[str, Decimal]:
    """Absolute expense totals per category, blank categories folded into the default."""
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for transaction in transactions:
        if transaction.is_expense:
            totals[transaction.category or default_category] += abs(transaction.amount)
    return dict(totals)


def description_counts(transactions: Iterable[Transaction]) -> Counter:
    """How many times each exact description string appears."""
    return Counter(t.description for t in transactions)
