"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of unlocks and generated notifications
2. Debugging capability
3. A local history the user can inspect

The audit logger:
- Is async to match the storage interface
- Gracefully handles failures (doesn't crash a refresh if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from fynance.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from fynance.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The local store's audit log key (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("fynance.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_snapshot_loaded(
        self,
        accounts: int,
        credit_cards: int,
        transactions: int,
        goals: int,
        source: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.snapshot_loaded(
            accounts=accounts,
            credit_cards=credit_cards,
            transactions=transactions,
            goals=goals,
            source=source,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_skipped(
        self,
        field: str,
        record_id: Optional[str],
        message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a malformed snapshot record that was excluded."""
        event = AuditEventBuilder.snapshot_record_skipped(
            field=field,
            record_id=record_id,
            message=message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_achievements_evaluated(
        self,
        total: int,
        unlocked: int,
        newly_unlocked: list[str],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.achievements_evaluated(
            total=total,
            unlocked=unlocked,
            newly_unlocked=newly_unlocked,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_achievement_unlocked(
        self,
        achievement_id: str,
        title: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.achievement_unlocked(
            achievement_id=achievement_id,
            title=title,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_notifications_generated(
        self,
        generated_ids: list[str],
        total: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.notifications_generated(
            generated_ids=generated_ids,
            total=total,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_spending_limit_reached(
        self,
        category: str,
        percentage: str,
        level: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.spending_limit_reached(
            category=category,
            percentage=percentage,
            level=level,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_notification_read(
        self,
        notification_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a user marking one notification as read."""
        event = AuditEventBuilder.notification_read(
            notification_id=notification_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_all_notifications_read(
        self,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.all_notifications_read(
            count=count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_preferences_updated(
        self,
        preferences: dict,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.preferences_updated(
            preferences=preferences,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_state_saved(
        self,
        keys: list[str],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.state_saved(
            keys=keys,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_save_failed(
        self,
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.save_failed(
            key=key,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a refresh or user action and pass it
    through all subsequent operations.
    """
    return uuid4()
