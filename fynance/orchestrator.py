"""
Main Orchestrator for Fynance

This module ties together all the components and defines the
end-to-end flows for:
1. Refresh (snapshot → validate → evaluate → detect → persist)
2. Notification inbox (read state and preferences changed by the user)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Evaluation and detection never see a record that failed validation
- Unlocks are sticky; nothing here can re-lock an achievement
- Every step is audited

The evaluator, generator and analyzer are pure. All I/O (storage and
audit) happens here, awaited in sequence.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from fynance.achievements import AchievementEvaluator
from fynance.audit import AuditLogger, create_correlation_id
from fynance.config import Settings, get_settings
from fynance.insights import InsightAnalyzer
from fynance.models.achievement import Achievement, UserStats, default_achievements
from fynance.models.insight import Budget, Insight, MonthlySpendingStatus, SpendingAlert
from fynance.models.notification import (
    Notification,
    NotificationCategory,
    NotificationPreferences,
)
from fynance.models.snapshot import Snapshot, ensure_utc
from fynance.models.validation import SnapshotValidationResult
from fynance.notifications import NotificationGenerator, views
from fynance.services.storage import (
    FinanceStorageInterface,
    LocalJsonAuditStorage,
    LocalJsonClient,
    LocalJsonFinanceStorage,
    StorageError,
)
from fynance.validation import SnapshotValidator


logger = structlog.get_logger("fynance.orchestrator")


class RefreshResult(BaseModel):
    """Everything the host needs to render after a refresh."""

    correlation_id: UUID
    validation: SnapshotValidationResult
    achievements: list[Achievement]
    newly_unlocked: list[Achievement] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    stats: UserStats
    notifications: list[Notification]
    generated_ids: list[str] = Field(
        default_factory=list,
        description="Ids produced by this refresh, in generation order"
    )
    spending_alerts: list[SpendingAlert] = Field(default_factory=list)
    monthly_status: MonthlySpendingStatus
    insights: list[Insight] = Field(default_factory=list)

    @property
    def unread_count(self) -> int:
        return views.unread_count(self.notifications)


class RefreshFlow:
    """
    Orchestrates a refresh of derived state.

    Flow:
    1. Snapshot → from the host (fresh sync) or from storage (last sync)
    2. Validate → malformed records excluded and reported
    3. Evaluate → achievements, newly unlocked, suggestions
    4. Analyze → spending alerts, monthly status, insights
    5. Detect → notifications, merged into the stored collection
    6. Save → snapshot (if fresh), achievements, notifications

    Without storage, each refresh starts from the default catalog and
    an empty notification collection.
    """

    def __init__(
        self,
        storage: Optional[FinanceStorageInterface] = None,
        validator: Optional[SnapshotValidator] = None,
        evaluator: Optional[AchievementEvaluator] = None,
        generator: Optional[NotificationGenerator] = None,
        analyzer: Optional[InsightAnalyzer] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self._storage = storage
        self._validator = validator or SnapshotValidator()
        self._evaluator = evaluator or AchievementEvaluator(settings.evaluation)
        self._generator = generator or NotificationGenerator(settings.notifications)
        self._analyzer = analyzer or InsightAnalyzer(settings.insights)
        self._audit_logger = audit_logger

    async def refresh(
        self,
        raw_snapshot: Optional[Mapping[str, Any]] = None,
        budgets: Optional[list[Budget]] = None,
        monthly_limit: Optional[Decimal] = None,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> RefreshResult:
        """
        Recompute achievements, notifications and insights.

        Args:
            raw_snapshot: Freshly synced records. When given, they replace
                          the stored snapshot. When None, the last stored
                          snapshot is used.
            budgets: Category budgets (defaults from settings)
            monthly_limit: Overall monthly limit (default from settings)
            now: Evaluation time, injectable for deterministic runs

        Raises:
            StorageError: If loading or saving state fails
            Exception: Anything raised while deriving state is audited as
                       a system error and re-raised
        """
        correlation_id = correlation_id or create_correlation_id()
        now = ensure_utc(now or datetime.now(timezone.utc))

        try:
            if raw_snapshot is not None:
                source = "host"
            elif self._storage:
                source = "storage"
                raw_snapshot = await self._storage.load_raw_snapshot()
            else:
                source = "empty"
                raw_snapshot = {}

            validation = self._validator.validate(raw_snapshot)
            snapshot = validation.snapshot
            await self._audit_snapshot(validation, source, correlation_id)

            current_achievements, existing, preferences = await self._load_state()
        except StorageError as e:
            await self._audit_storage_failure("load", e, correlation_id)
            raise

        try:
            # Achievements
            achievements = self._evaluator.evaluate(snapshot, current_achievements, now=now)
            newly_unlocked = self._evaluator.newly_unlocked(current_achievements, achievements)
            suggestions = self._evaluator.suggest_next(snapshot, achievements, now=now)
            stats = self._evaluator.get_user_stats(snapshot, now=now)

            # Spending analysis
            spending_alerts = self._analyzer.check_spending_limits(snapshot, budgets, now=now)
            monthly_status = self._analyzer.monthly_spending_status(snapshot, monthly_limit, now=now)
            insights = self._analyzer.generate_insights(snapshot)

            # Notifications
            generated: list[Notification] = []
            if preferences.achievements:
                generated.extend(self._generator.achievement_notifications(newly_unlocked, now))
            if preferences.spending_alerts:
                generated.extend(self._generator.spending_alert_notifications(spending_alerts, now))
            generated.extend(self._generator.detect(snapshot, now=now, preferences=preferences))
            notifications = self._generator.merge(generated, existing)
        except Exception as e:
            logger.error("refresh_failed", error_type=type(e).__name__, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"step": "derive"},
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_achievements_evaluated(
                total=len(achievements),
                unlocked=sum(1 for a in achievements if a.is_unlocked),
                newly_unlocked=[a.id for a in newly_unlocked],
                correlation_id=correlation_id,
            )
            for achievement in newly_unlocked:
                await self._audit_logger.log_achievement_unlocked(
                    achievement_id=achievement.id,
                    title=achievement.title,
                    correlation_id=correlation_id,
                )
            for alert in spending_alerts:
                await self._audit_logger.log_spending_limit_reached(
                    category=alert.category,
                    percentage=str(alert.percentage),
                    level=alert.level.value,
                    correlation_id=correlation_id,
                )
            await self._audit_logger.log_notifications_generated(
                generated_ids=[n.id for n in generated],
                total=len(notifications),
                correlation_id=correlation_id,
            )

        if self._storage:
            await self._save_state(
                snapshot=snapshot if source == "host" else None,
                achievements=achievements,
                notifications=notifications,
                correlation_id=correlation_id,
            )

        return RefreshResult(
            correlation_id=correlation_id,
            validation=validation,
            achievements=achievements,
            newly_unlocked=newly_unlocked,
            suggestions=suggestions,
            stats=stats,
            notifications=notifications,
            generated_ids=[n.id for n in generated],
            spending_alerts=spending_alerts,
            monthly_status=monthly_status,
            insights=insights,
        )

    async def _load_state(
        self,
    ) -> tuple[list[Achievement], list[Notification], NotificationPreferences]:
        if not self._storage:
            return default_achievements(), [], NotificationPreferences()
        return (
            await self._storage.load_achievements(),
            await self._storage.load_notifications(),
            await self._storage.load_preferences(),
        )

    async def _save_state(
        self,
        snapshot: Optional[Snapshot],
        achievements: list[Achievement],
        notifications: list[Notification],
        correlation_id: UUID,
    ) -> None:
        saved = []
        key = "snapshot"
        try:
            if snapshot is not None:
                await self._storage.save_snapshot(snapshot)
                saved.append(key)
            key = "achievements"
            await self._storage.save_achievements(achievements)
            saved.append(key)
            key = "notifications"
            await self._storage.save_notifications(notifications)
            saved.append(key)
        except StorageError as e:
            await self._audit_storage_failure(key, e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_state_saved(keys=saved, correlation_id=correlation_id)

    async def _audit_snapshot(
        self,
        validation: SnapshotValidationResult,
        source: str,
        correlation_id: UUID,
    ) -> None:
        if not self._audit_logger:
            return

        snapshot = validation.snapshot
        await self._audit_logger.log_snapshot_loaded(
            accounts=len(snapshot.accounts),
            credit_cards=len(snapshot.credit_cards),
            transactions=len(snapshot.transactions),
            goals=len(snapshot.goals),
            source=source,
            correlation_id=correlation_id,
        )
        for issue in validation.issues:
            if issue.severity == "error":
                await self._audit_logger.log_record_skipped(
                    field=issue.field,
                    record_id=issue.record_id,
                    message=issue.message,
                    correlation_id=correlation_id,
                )

    async def _audit_storage_failure(
        self,
        key: str,
        error: StorageError,
        correlation_id: UUID,
    ) -> None:
        logger.error("refresh_storage_failed", key=key, error=str(error))
        if self._audit_logger:
            await self._audit_logger.log_save_failed(
                key=key,
                error_message=str(error),
                correlation_id=correlation_id,
            )


class NotificationInbox:
    """
    User-driven changes to the notification center.

    Every mutation loads the stored collection, applies a pure view
    function, writes it back and audits the action.
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def list_notifications(
        self,
        category: Optional[NotificationCategory] = None,
        search: Optional[str] = None,
        unread_only: bool = False,
    ) -> list[Notification]:
        """Stored notifications, filtered and sorted for display."""
        notifications = await self._storage.load_notifications()
        return views.filter_notifications(
            notifications,
            category=category,
            search=search,
            unread_only=unread_only,
        )

    async def unread_count(self) -> int:
        return views.unread_count(await self._storage.load_notifications())

    async def counts_by_category(self) -> dict[NotificationCategory, int]:
        return views.count_by_category(await self._storage.load_notifications())

    async def mark_as_read(self, notification_id: str) -> bool:
        """
        Mark one notification read.

        Returns False (and writes nothing) for an unknown id.
        """
        notifications = await self._storage.load_notifications()
        if not any(n.id == notification_id for n in notifications):
            return False

        await self._storage.save_notifications(views.mark_as_read(notifications, notification_id))
        if self._audit_logger:
            await self._audit_logger.log_notification_read(notification_id=notification_id)
        return True

    async def mark_all_as_read(self) -> int:
        """Mark everything read. Returns how many were unread."""
        notifications = await self._storage.load_notifications()
        changed = views.unread_count(notifications)

        if changed:
            await self._storage.save_notifications(views.mark_all_as_read(notifications))
        if self._audit_logger:
            await self._audit_logger.log_all_notifications_read(count=changed)
        return changed

    async def get_preferences(self) -> NotificationPreferences:
        return await self._storage.load_preferences()

    async def update_preferences(self, **changes: bool) -> NotificationPreferences:
        """
        Toggle notification preferences.

        Usage:
            await inbox.update_preferences(card_reminders=False)
        """
        current = await self._storage.load_preferences()
        updated = NotificationPreferences.model_validate(
            {**current.model_dump(), **changes}
        )
        await self._storage.save_preferences(updated)

        if self._audit_logger:
            await self._audit_logger.log_preferences_updated(preferences=updated.model_dump())
        return updated


def create_app_components(
    use_storage: bool = True,
    settings: Optional[Settings] = None,
) -> tuple[RefreshFlow, Optional[NotificationInbox], Optional[LocalJsonClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize the local JSON store.
                    Set to False for testing without storage.
        settings: Settings to use (defaults to the cached environment settings)

    Returns:
        (refresh_flow, inbox, json_client); inbox and client are None
        without storage
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.app.log_level)

    client = None
    finance_storage = None
    audit_logger = None

    if use_storage:
        try:
            client = LocalJsonClient(settings.storage)
            finance_storage = LocalJsonFinanceStorage(client)
            audit_storage = LocalJsonAuditStorage(
                client,
                max_events=settings.storage.audit_log_max_events,
            )
            audit_logger = AuditLogger(audit_storage)
        except (StorageError, OSError) as e:
            # Storage not usable - continue without it
            logger.warning("storage_not_configured", error=str(e))
            client = None
            finance_storage = None
            audit_logger = AuditLogger()  # Local-only logging
    else:
        audit_logger = AuditLogger()  # Local-only logging

    refresh_flow = RefreshFlow(
        storage=finance_storage,
        audit_logger=audit_logger,
        settings=settings,
    )

    inbox = None
    if finance_storage:
        inbox = NotificationInbox(storage=finance_storage, audit_logger=audit_logger)

    return refresh_flow, inbox, client
