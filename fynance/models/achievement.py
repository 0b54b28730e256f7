"""
Achievement Models

Achievements come from a static catalog. The only state that ever changes
is the unlock flag and its timestamp, and that change is one-way.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from fynance.models.snapshot import FinanceModel, ensure_utc


class AchievementCriterion(str, Enum):
    """
    Closed set of evaluation rules.

    Each achievement in the catalog maps to exactly one of these.
    """
    FIRST_TRANSACTION = "first-transaction"
    MONTHLY_SAVER = "monthly-saver"
    PLANNER = "planner"
    MILLIONAIRE = "millionaire"
    DISCIPLINED = "disciplined"


class Achievement(FinanceModel):
    """
    A gamification badge.

    CRITICAL: Once `is_unlocked` is True it stays True. `unlocked_at`
    records the first evaluation that unlocked it and is never rewritten.
    """

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=300)
    criteria_id: AchievementCriterion = Field(
        ...,
        description="Rule that decides whether this achievement unlocks"
    )
    icon: Optional[str] = None
    is_unlocked: bool = False
    unlocked_at: Optional[datetime] = None

    @field_validator("unlocked_at")
    @classmethod
    def unlocked_at_as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else v


class UserStats(FinanceModel):
    """Aggregate numbers shown on the achievements screen."""

    total_transactions: int = Field(ge=0)
    total_patrimony: Decimal
    active_goals: int = Field(ge=0)
    completed_goals: int = Field(ge=0)
    current_month_balance: Decimal
    total_months_tracked: int = Field(ge=0)


def default_achievements() -> list[Achievement]:
    """Return a fresh copy of the built-in achievement catalog, all locked."""
    return [
        Achievement(
            id="1",
            title="First Step",
            description="Recorded your first transaction",
            criteria_id=AchievementCriterion.FIRST_TRANSACTION,
            icon="🎯",
        ),
        Achievement(
            id="2",
            title="Saver",
            description="Saved R$ 1,000 in a single month",
            criteria_id=AchievementCriterion.MONTHLY_SAVER,
            icon="💰",
        ),
        Achievement(
            id="3",
            title="Planner",
            description="Created your first financial goal",
            criteria_id=AchievementCriterion.PLANNER,
            icon="📋",
        ),
        Achievement(
            id="4",
            title="Millionaire",
            description="Reached R$ 100,000 in net worth",
            criteria_id=AchievementCriterion.MILLIONAIRE,
            icon="💎",
        ),
        Achievement(
            id="5",
            title="Disciplined",
            description="Stayed within budget for 3 months in a row",
            criteria_id=AchievementCriterion.DISCIPLINED,
            icon="🏆",
        ),
    ]
