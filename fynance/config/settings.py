"""
Configuration Management for Fynance Core

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Every threshold the rules use lives here, not in the rules.
Components take a settings object in their constructor, so the host owns
their lifecycle; `get_settings()` is only the fallback when none is passed.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EvaluationSettings(BaseSettings):
    """Achievement criteria thresholds."""

    model_config = SettingsConfigDict(
        env_prefix="FYNANCE_ACHIEVEMENT_",
        extra="ignore"
    )

    monthly_saver_target: Decimal = Field(
        default=Decimal("1000"),
        gt=0,
        description="Minimum income minus expenses in one month"
    )
    millionaire_target: Decimal = Field(
        default=Decimal("100000"),
        gt=0,
        description="Net worth needed for the millionaire badge"
    )
    disciplined_monthly_budget: Decimal = Field(
        default=Decimal("3000"),
        gt=0,
        description="Maximum expenses for a month to count as within budget"
    )
    disciplined_months: int = Field(
        default=3,
        ge=1,
        le=24,
        description="Run length of within-budget months required"
    )
    max_suggestions: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many next-achievement suggestions to show"
    )


class NotificationSettings(BaseSettings):
    """Detector thresholds for the notification generator."""

    model_config = SettingsConfigDict(
        env_prefix="FYNANCE_NOTIFY_",
        extra="ignore"
    )

    card_due_window_days: int = Field(
        default=3,
        ge=0,
        description="Warn when a card is due within this many days"
    )
    large_transaction_threshold: Decimal = Field(
        default=Decimal("1000"),
        gt=0,
        description="Absolute amount above which a transaction is 'large'"
    )
    large_transaction_lookback_days: int = Field(
        default=7,
        ge=1,
        description="How far back to look for large transactions"
    )
    goal_almost_ratio: Decimal = Field(
        default=Decimal("0.9"),
        gt=0,
        lt=1,
        description="Goal progress at which the 'almost there' alert fires"
    )
    low_balance_threshold: Decimal = Field(
        default=Decimal("500"),
        gt=0,
        description="Total balance below which the low-balance alert fires"
    )
    recurring_min_occurrences: int = Field(
        default=4,
        ge=2,
        description="Times an expense description must repeat to count as recurring"
    )


class InsightSettings(BaseSettings):
    """Spending-limit and smart-analysis configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FYNANCE_INSIGHT_",
        extra="ignore"
    )

    monthly_spending_limit: Decimal = Field(
        default=Decimal("3000"),
        gt=0,
        description="Overall monthly spending limit"
    )
    spending_warning_ratio: Decimal = Field(
        default=Decimal("0.8"),
        gt=0,
        lt=1,
        description="Fraction of a budget at which to start warning"
    )
    category_budgets: dict[str, Decimal] = Field(
        default_factory=lambda: {
            "Alimentação": Decimal("800"),
            "Transporte": Decimal("400"),
            "Entretenimento": Decimal("300"),
            "Compras": Decimal("500"),
        },
        description="Default monthly budget per category (JSON in env)"
    )
    averaging_days: int = Field(
        default=30,
        ge=1,
        description="Days the transaction history is assumed to cover"
    )
    recurring_insight_min_occurrences: int = Field(
        default=3,
        ge=2,
        description="Times a description must repeat for the recurring insight"
    )
    saving_tip_daily_threshold: Decimal = Field(
        default=Decimal("100"),
        description="Daily average spend above which a saving tip is shown"
    )
    high_card_usage: Decimal = Field(
        default=Decimal("1000"),
        description="Open card balance considered high"
    )


class StorageSettings(BaseSettings):
    """Local key-value store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FYNANCE_STORAGE_",
        extra="ignore"
    )

    data_path: str = Field(
        default="fynance_data.json",
        description="Path of the JSON file backing the local store"
    )
    key_prefix: str = Field(
        default="@fynance:",
        description="Prefix for every stored key"
    )
    audit_log_max_events: int = Field(
        default=1000,
        ge=10,
        description="Oldest audit events are dropped past this count"
    )

    @field_validator("data_path")
    @classmethod
    def validate_data_path(cls, v: str) -> str:
        """Warn if the parent directory doesn't exist (but don't fail - might be mounted later)."""
        parent = Path(v).expanduser().parent
        if not parent.exists():
            import warnings
            warnings.warn(
                f"Storage directory not found at {parent}. "
                "It will be created on first write."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for local structured logs"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def evaluation(self) -> EvaluationSettings:
        return EvaluationSettings()

    @property
    def notifications(self) -> NotificationSettings:
        return NotificationSettings()

    @property
    def insights(self) -> InsightSettings:
        return InsightSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("evaluation", "notifications", "insights", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
