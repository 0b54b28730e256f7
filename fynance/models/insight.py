"""
Insight Models

Derived spending alerts and smart-analysis insights. Like notifications,
these are recomputed from the snapshot on demand and carry no state.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field

from fynance.models.notification import NotificationPriority
from fynance.models.snapshot import FinanceModel


class SpendingAlertLevel(str, Enum):
    WARNING = "warning"    # at or above the warning ratio, below the limit
    EXCEEDED = "exceeded"  # at or above the limit


class SpendingStatus(str, Enum):
    """Monthly spending-limit gauge state."""
    WITHIN_BUDGET = "within_budget"
    ATTENTION = "attention"
    EXCEEDED = "exceeded"


class InsightKind(str, Enum):
    TOP_CATEGORY = "spending"
    DAILY_AVERAGE = "average"
    BALANCE_PROJECTION = "balance"
    RECURRING = "recurring"
    LARGEST_EXPENSE = "largest"
    SAVINGS_RATE = "savings"
    SAVING_TIP = "tip"
    CREDIT_USAGE = "credit"


class Budget(FinanceModel):
    """Monthly spending cap for one transaction category."""

    category: str = Field(..., min_length=1)
    limit: Decimal


class SpendingAlert(FinanceModel):
    """A category whose current-month spending approaches or passes its budget."""

    category: str
    spent: Decimal = Field(ge=0)
    limit: Decimal = Field(gt=0)
    percentage: Decimal = Field(
        ...,
        description="Spent as a percentage of the limit"
    )
    level: SpendingAlertLevel


class MonthlySpendingStatus(FinanceModel):
    """Current month expenses measured against the overall monthly limit."""

    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    spent: Decimal = Field(ge=0)
    limit: Decimal = Field(gt=0)
    ratio: Decimal
    remaining: Decimal = Field(
        ...,
        description="Negative when the limit has been passed"
    )
    status: SpendingStatus


class Insight(FinanceModel):
    """One card on the smart-analysis screen."""

    id: str
    kind: InsightKind
    title: str
    description: str
    priority: NotificationPriority
    value: Optional[Decimal] = Field(
        default=None,
        description="Headline number behind the insight, when there is one"
    )
