"""Tests for the Fynance pydantic models."""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from fynance.models import (
    Account,
    Achievement,
    AchievementCriterion,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    CreditCard,
    Goal,
    Notification,
    NotificationCategory,
    NotificationPreferences,
    NotificationPriority,
    NotificationType,
    Snapshot,
    SnapshotValidationResult,
    Transaction,
    TransactionType,
    ValidationIssue,
    default_achievements,
)


class TestSnapshotModels:
    """Tests for snapshot records."""

    def test_transaction_accepts_camel_case_keys(self):
        """Test that host payload keys are accepted."""
        transaction = Transaction.model_validate({
            "id": "t1",
            "date": "2024-08-01",
            "amount": -120.5,
            "description": "Mercado",
            "category": "Alimentação",
            "accountId": "acc-1",
        })
        assert transaction.account_id == "acc-1"
        assert transaction.amount == Decimal("-120.5")

    def test_transaction_date_truncates_iso_datetime(self):
        """Test that booking timestamps are reduced to their date."""
        transaction = Transaction(id="t1", date="2024-08-01T13:45:00.000Z", amount=10)
        assert transaction.date == date(2024, 8, 1)
        assert transaction.month_key == "2024-08"

    def test_date_field_is_a_calendar_date(self):
        assert Transaction.model_fields["date"].annotation is date

    def test_unlocked_at_without_offset_is_utc(self):
        achievement = Achievement.model_validate({
            "id": "1",
            "title": "First Step",
            "criteriaId": "first-transaction",
            "isUnlocked": True,
            "unlockedAt": "2024-08-20T12:00:00",
        })
        assert achievement.unlocked_at == datetime(2024, 8, 20, 12, 0, tzinfo=timezone.utc)

    def test_numeric_id_is_coerced_to_string(self):
        account = Account(id=1, balance=10)
        assert account.id == "1"

    def test_transaction_rejects_nan_amount(self):
        """Test that non-finite amounts are rejected."""
        with pytest.raises(ValidationError):
            Transaction(id="t1", date="2024-08-01", amount="NaN")

    def test_transaction_rejects_bad_date(self):
        with pytest.raises(ValidationError):
            Transaction(id="t1", date="not-a-date", amount=10)

    def test_amount_sign_decides_direction(self):
        """Test that the sign, not the type field, decides income vs expense."""
        transaction = Transaction(
            id="t1", date="2024-08-01", amount=-50, type=TransactionType.INCOME
        )
        assert transaction.is_expense is True
        assert transaction.is_income is False
        assert transaction.type_matches_sign is False

    def test_zero_amount_counts_as_expense(self):
        transaction = Transaction(id="t1", date="2024-08-01", amount=0)
        assert transaction.is_expense is True
        assert transaction.type_matches_sign is True

    def test_snapshot_records_are_frozen(self):
        """Test that parsed records can't be modified."""
        account = Account(id="a1", balance=100)
        with pytest.raises(ValidationError):
            account.balance = Decimal("0")

    def test_goal_progress(self):
        goal = Goal(id="g1", title="Trip", target_amount=1000, current_amount=900)
        assert goal.progress == Decimal("0.9")
        assert goal.is_completed is False

    def test_goal_progress_none_for_non_positive_target(self):
        goal = Goal(id="g1", title="Broken", target_amount=0, current_amount=10)
        assert goal.progress is None

    def test_credit_card_due_date_from_timestamp(self):
        card = CreditCard(id="c1", name="Nubank", due_date="2024-08-23T03:00:00Z")
        assert card.due_date == date(2024, 8, 23)

    def test_credit_card_rejects_negative_limit(self):
        with pytest.raises(ValidationError):
            CreditCard(id="c1", name="Nubank", limit=-1)

    def test_snapshot_defaults_empty(self):
        snapshot = Snapshot()
        assert snapshot.is_empty is True
        assert snapshot.transactions == ()

    def test_snapshot_storage_dict_uses_camel_case(self):
        snapshot = Snapshot(credit_cards=[CreditCard(id="c1", name="Nubank", current_balance=10)])
        record = snapshot.to_storage_dict()
        assert "creditCards" in record
        assert record["creditCards"][0]["currentBalance"] == "10"


class TestAchievementModels:
    """Tests for achievement models."""

    def test_default_catalog(self):
        """Test the built-in catalog covers every criterion once."""
        catalog = default_achievements()
        assert [a.id for a in catalog] == ["1", "2", "3", "4", "5"]
        assert {a.criteria_id for a in catalog} == set(AchievementCriterion)
        assert all(not a.is_unlocked for a in catalog)

    def test_default_catalog_is_a_fresh_copy(self):
        first = default_achievements()
        first[0].is_unlocked = True
        assert default_achievements()[0].is_unlocked is False

    def test_unknown_criterion_rejected(self):
        with pytest.raises(ValidationError):
            Achievement(id="9", title="Nope", criteria_id="does-not-exist")

    def test_achievement_parses_stored_record(self):
        achievement = Achievement.model_validate({
            "id": "1",
            "title": "First Step",
            "criteriaId": "first-transaction",
            "isUnlocked": True,
            "unlockedAt": "2024-08-01T10:00:00+00:00",
        })
        assert achievement.is_unlocked is True
        assert achievement.unlocked_at.year == 2024


class TestNotificationModels:
    """Tests for notification models."""

    def test_priority_rank_order(self):
        assert NotificationPriority.HIGH.rank > NotificationPriority.MEDIUM.rank
        assert NotificationPriority.MEDIUM.rank > NotificationPriority.LOW.rank

    def test_notification_defaults(self):
        notification = Notification(
            id="welcome",
            title="Hi",
            message="Hello",
            type=NotificationType.INFO,
            category=NotificationCategory.SYSTEM,
            created_at=datetime(2024, 8, 20, tzinfo=timezone.utc),
        )
        assert notification.is_read is False
        assert notification.priority == NotificationPriority.MEDIUM
        assert notification.data == {}

    def test_preferences_default_all_on(self):
        preferences = NotificationPreferences()
        assert all(preferences.model_dump().values())

    def test_preferences_from_camel_case(self):
        preferences = NotificationPreferences.model_validate({"cardReminders": False})
        assert preferences.card_reminders is False
        assert preferences.goal_reminders is True


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.SNAPSHOT_LOADED,
            description="Snapshot loaded",
        )
        assert event.event_type == AuditEventType.SNAPSHOT_LOADED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.ACHIEVEMENT_UNLOCKED,
            description="Achievement unlocked",
            details={"title": "Planner"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "achievement_unlocked"
        assert log_dict["details"]["title"] == "Planner"

    def test_storage_record_restores_event(self):
        """Test that a stored record rebuilds the same event."""
        event = AuditEventBuilder.spending_limit_reached(
            category="Transporte",
            percentage="85.00",
            level="warning",
            correlation_id=uuid4(),
        )
        restored = AuditEvent.from_storage_record(event.to_storage_record())
        assert restored.event_id == event.event_id
        assert restored.correlation_id == event.correlation_id
        assert restored.details == event.details
        assert restored.severity == AuditSeverity.WARNING

    def test_builder_notification_read_is_user_action(self):
        event = AuditEventBuilder.notification_read(notification_id="balance-low")
        assert event.entity_id == "balance-low"
        assert event.is_user_action is True
        assert event.correlation_id is None

    def test_builder_save_failed_is_error(self):
        event = AuditEventBuilder.save_failed(key="notifications", error_message="disk full")
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "disk full"


class TestValidationResult:
    """Tests for SnapshotValidationResult."""

    def test_has_errors(self):
        result = SnapshotValidationResult(
            snapshot=Snapshot(),
            issues=[
                ValidationIssue(
                    field="transactions[0]",
                    issue_type="invalid_record",
                    message="bad amount",
                    severity="error",
                ),
            ],
            skipped_count=1,
        )
        assert result.has_errors is True

    def test_warnings_only(self):
        result = SnapshotValidationResult(
            snapshot=Snapshot(),
            issues=[
                ValidationIssue(
                    field="transactions",
                    issue_type="duplicate_id",
                    message="Id t1 appears 2 times",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.warnings == ["Id t1 appears 2 times"]

    def test_issue_severity_pattern(self):
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")
