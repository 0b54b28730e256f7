"""
Data Models Package

This package contains all Pydantic models used in Fynance Core.
All data flowing in from the host and back out must conform to these schemas.
"""

from fynance.models.snapshot import (
    Account,
    CreditCard,
    FinanceModel,
    Goal,
    Snapshot,
    Transaction,
    TransactionType,
    ensure_utc,
)
from fynance.models.achievement import (
    Achievement,
    AchievementCriterion,
    UserStats,
    default_achievements,
)
from fynance.models.notification import (
    Notification,
    NotificationCategory,
    NotificationPreferences,
    NotificationPriority,
    NotificationType,
)
from fynance.models.insight import (
    Budget,
    Insight,
    InsightKind,
    MonthlySpendingStatus,
    SpendingAlert,
    SpendingAlertLevel,
    SpendingStatus,
)
from fynance.models.validation import (
    SnapshotValidationResult,
    ValidationIssue,
)
from fynance.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Snapshot models
    "Account",
    "CreditCard",
    "FinanceModel",
    "Goal",
    "Snapshot",
    "Transaction",
    "TransactionType",
    "ensure_utc",
    # Achievement models
    "Achievement",
    "AchievementCriterion",
    "UserStats",
    "default_achievements",
    # Notification models
    "Notification",
    "NotificationCategory",
    "NotificationPreferences",
    "NotificationPriority",
    "NotificationType",
    # Insight models
    "Budget",
    "Insight",
    "InsightKind",
    "MonthlySpendingStatus",
    "SpendingAlert",
    "SpendingAlertLevel",
    "SpendingStatus",
    # Validation models
    "SnapshotValidationResult",
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
