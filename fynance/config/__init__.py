"""Configuration package."""

from fynance.config.settings import (
    AppSettings,
    EvaluationSettings,
    InsightSettings,
    NotificationSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "EvaluationSettings",
    "InsightSettings",
    "NotificationSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
