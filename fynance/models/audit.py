"""
Audit Models for Fynance Core

Every refresh and every user action on notifications is logged.
This provides:
1. Traceability of when each achievement unlocked and why
2. Debugging information when snapshot data is malformed
3. A history the user can inspect

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of the refresh pipeline has its own event type.
    """
    # Snapshot intake
    SNAPSHOT_LOADED = "snapshot_loaded"
    SNAPSHOT_RECORD_SKIPPED = "snapshot_record_skipped"

    # Evaluation
    ACHIEVEMENTS_EVALUATED = "achievements_evaluated"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    NOTIFICATIONS_GENERATED = "notifications_generated"
    SPENDING_LIMIT_REACHED = "spending_limit_reached"

    # User actions
    NOTIFICATION_READ = "notification_read"
    ALL_NOTIFICATIONS_READ = "all_notifications_read"
    PREFERENCES_UPDATED = "preferences_updated"

    # Persistence
    STATE_SAVED = "state_saved"
    SAVE_FAILED = "save_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'achievement', 'notification', 'transaction')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one refresh)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_storage_record(self) -> dict:
        """
        Convert to a JSON-safe record for the local audit log.

        Details are stored as an encoded string so arbitrary payloads
        survive a round trip without schema drift.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type or "",
            "entity_id": self.entity_id or "",
            "correlation_id": str(self.correlation_id) if self.correlation_id else "",
            "description": self.description,
            "details_json": json.dumps(self.details, default=str) if self.details else "",
            "error_message": self.error_message or "",
            "is_user_action": self.is_user_action,
        }

    @classmethod
    def from_storage_record(cls, record: dict) -> "AuditEvent":
        """Rebuild an event written by `to_storage_record`."""
        return cls(
            event_id=UUID(record["event_id"]),
            timestamp=datetime.fromisoformat(record["timestamp"]),
            event_type=AuditEventType(record["event_type"]),
            severity=AuditSeverity(record["severity"]),
            entity_type=record.get("entity_type") or None,
            entity_id=record.get("entity_id") or None,
            correlation_id=UUID(record["correlation_id"]) if record.get("correlation_id") else None,
            description=record["description"],
            details=json.loads(record["details_json"]) if record.get("details_json") else {},
            error_message=record.get("error_message") or None,
            is_user_action=bool(record.get("is_user_action", False)),
        )


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.achievement_unlocked("4", "Millionaire", correlation_id)
        event = AuditEventBuilder.notification_read("balance-low", correlation_id)
    """

    @staticmethod
    def snapshot_loaded(
        accounts: int,
        credit_cards: int,
        transactions: int,
        goals: int,
        source: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_LOADED,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description=f"Snapshot loaded from {source}: {transactions} transactions",
            details={
                "source": source,
                "accounts": accounts,
                "credit_cards": credit_cards,
                "transactions": transactions,
                "goals": goals,
            },
        )

    @staticmethod
    def snapshot_record_skipped(
        field: str,
        record_id: Optional[str],
        message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_RECORD_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="snapshot_record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Malformed record excluded: {field}",
            details={
                "field": field,
                "message": message,
            },
        )

    @staticmethod
    def achievements_evaluated(
        total: int,
        unlocked: int,
        newly_unlocked: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACHIEVEMENTS_EVALUATED,
            entity_type="achievement",
            correlation_id=correlation_id,
            description=f"Achievements evaluated: {unlocked} of {total} unlocked",
            details={
                "total": total,
                "unlocked": unlocked,
                "newly_unlocked": newly_unlocked,
            },
        )

    @staticmethod
    def achievement_unlocked(
        achievement_id: str,
        title: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACHIEVEMENT_UNLOCKED,
            entity_type="achievement",
            entity_id=achievement_id,
            correlation_id=correlation_id,
            description=f"Achievement unlocked: {title}",
            details={
                "title": title,
            },
        )

    @staticmethod
    def notifications_generated(
        generated_ids: list[str],
        total: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATIONS_GENERATED,
            entity_type="notification",
            correlation_id=correlation_id,
            description=f"Generated {len(generated_ids)} notifications ({total} stored)",
            details={
                "generated_ids": generated_ids,
                "total": total,
            },
        )

    @staticmethod
    def spending_limit_reached(
        category: str,
        percentage: str,
        level: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPENDING_LIMIT_REACHED,
            severity=AuditSeverity.WARNING,
            entity_type="budget",
            entity_id=category,
            correlation_id=correlation_id,
            description=f"Spending limit {level} for {category}: {percentage}%",
            details={
                "category": category,
                "percentage": percentage,
                "level": level,
            },
        )

    @staticmethod
    def notification_read(
        notification_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_READ,
            entity_type="notification",
            entity_id=notification_id,
            correlation_id=correlation_id,
            description=f"Notification marked as read: {notification_id}",
            is_user_action=True,
        )

    @staticmethod
    def all_notifications_read(
        count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALL_NOTIFICATIONS_READ,
            entity_type="notification",
            correlation_id=correlation_id,
            description=f"All notifications marked as read ({count} changed)",
            details={
                "changed": count,
            },
            is_user_action=True,
        )

    @staticmethod
    def preferences_updated(
        preferences: dict,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREFERENCES_UPDATED,
            entity_type="preferences",
            correlation_id=correlation_id,
            description="Notification preferences updated",
            details=preferences,
            is_user_action=True,
        )

    @staticmethod
    def state_saved(
        keys: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_SAVED,
            entity_type="storage",
            correlation_id=correlation_id,
            description=f"Saved {len(keys)} collections",
            details={
                "keys": keys,
            },
        )

    @staticmethod
    def save_failed(
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="storage",
            entity_id=key,
            correlation_id=correlation_id,
            description=f"Failed to save {key}",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
