"""
Snapshot Models for Fynance Core

A snapshot is the point-in-time bundle of financial state that every
evaluation runs against. It is supplied by the host application (which in
turn syncs it from an Open Finance aggregator) and is never modified here.

DESIGN DECISION: The sign of a transaction amount is the ONLY thing that
decides income vs expense. The optional `type` field is display metadata
carried along for the host; the validator flags disagreements.

All records accept camelCase keys (as stored on the device) as well as
snake_case keys.
"""

from datetime import date as Date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class FinanceModel(BaseModel):
    """Base for all records exchanged with the host application."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
    )

    def to_storage_dict(self) -> dict:
        """Serialize using the host's camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class SnapshotRecord(FinanceModel):
    """Snapshot records are read-only once parsed."""
    model_config = ConfigDict(frozen=True)


def _coerce_calendar_date(value: Any) -> Any:
    """
    Reduce ISO 8601 datetimes to their calendar date.

    The aggregator sends booking timestamps like "2024-08-01T13:45:00.000Z";
    everything downstream buckets by day or month.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10 and value[10] in ("T", " "):
        return value[:10]
    return value


def ensure_utc(value: datetime) -> datetime:
    """Read naive datetimes as UTC so that stored and fresh timestamps compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Display-only transaction direction as reported by the source."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# RECORDS
# =============================================================================

class Account(SnapshotRecord):
    """A bank account with its current balance."""

    id: str = Field(..., min_length=1)
    balance: Decimal = Field(
        ...,
        description="Current balance, may be negative (overdraft)"
    )
    owner_name: str = Field(
        default="",
        description="Account holder name"
    )
    name: Optional[str] = None
    type: Optional[str] = Field(
        default=None,
        description="Account kind as reported by the aggregator (e.g. checking, savings)"
    )
    currency: str = Field(default="BRL", max_length=3)
    bank_name: Optional[str] = None


class CreditCard(SnapshotRecord):
    """A credit card and its open bill."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    limit: Decimal = Field(default=Decimal("0"), ge=0)
    current_balance: Decimal = Field(
        default=Decimal("0"),
        description="Amount currently owed on the card"
    )
    due_date: Optional[Date] = Field(
        default=None,
        description="Next bill due date"
    )
    available_limit: Optional[Decimal] = None
    minimum_payment: Optional[Decimal] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def coerce_due_date(cls, v: Any) -> Any:
        return _coerce_calendar_date(v)


class Transaction(SnapshotRecord):
    """
    A single booked transaction.

    Negative amount = expense, positive amount = income.
    """

    id: str = Field(..., min_length=1)
    date: Date
    amount: Decimal
    description: str = Field(default="")
    category: str = Field(default="")
    type: Optional[TransactionType] = Field(
        default=None,
        description="Direction reported by the source (display only)"
    )
    account_id: Optional[str] = None
    merchant: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> Any:
        return _coerce_calendar_date(v)

    @property
    def is_income(self) -> bool:
        return self.amount > 0

    @property
    def is_expense(self) -> bool:
        return not self.is_income

    @property
    def month_key(self) -> str:
        """YYYY-MM bucket this transaction belongs to."""
        return self.date.strftime("%Y-%m")

    @property
    def type_matches_sign(self) -> bool:
        """False when the reported type contradicts the amount sign."""
        if self.type is None or self.amount == 0:
            return True
        expected = TransactionType.INCOME if self.is_income else TransactionType.EXPENSE
        return self.type == expected


class Goal(SnapshotRecord):
    """A savings goal."""

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    target_amount: Decimal
    current_amount: Decimal = Field(default=Decimal("0"))
    is_active: bool = True
    target_date: Optional[Date] = None
    category: Optional[str] = None

    @field_validator("target_date", mode="before")
    @classmethod
    def coerce_target_date(cls, v: Any) -> Any:
        return _coerce_calendar_date(v)

    @property
    def progress(self) -> Optional[Decimal]:
        """Fraction of the target saved, or None when the target is not positive."""
        if self.target_amount <= 0:
            return None
        return self.current_amount / self.target_amount

    @property
    def is_completed(self) -> bool:
        return self.current_amount >= self.target_amount


class Snapshot(SnapshotRecord):
    """
    Point-in-time financial state.

    CRITICAL: Evaluators never mutate a snapshot. Build a new one for
    every refresh.
    """

    accounts: tuple[Account, ...] = ()
    credit_cards: tuple[CreditCard, ...] = ()
    transactions: tuple[Transaction, ...] = ()
    goals: tuple[Goal, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.accounts or self.credit_cards or self.transactions or self.goals)
