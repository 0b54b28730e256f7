"""Snapshot aggregation helpers package."""

from fynance.aggregation.formatting import format_currency, format_percent
from fynance.aggregation.monthly import (
    MonthlyTotals,
    description_counts,
    expenses,
    expenses_by_category,
    month_key,
    monthly_totals,
    total_balance,
    total_card_debt,
    total_expenses,
    total_income,
    total_patrimony,
)

__all__ = [
    "MonthlyTotals",
    "description_counts",
    "expenses",
    "expenses_by_category",
    "format_currency",
    "format_percent",
    "month_key",
    "monthly_totals",
    "total_balance",
    "total_card_debt",
    "total_expenses",
    "total_income",
    "total_patrimony",
]
