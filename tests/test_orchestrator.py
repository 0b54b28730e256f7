"""Tests for the refresh flow and notification inbox."""

import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest

from fynance.achievements import AchievementEvaluator
from fynance.audit import AuditLogger
from fynance.config import Settings, get_settings
from fynance.models import (
    AchievementCriterion,
    AuditEventType,
    NotificationCategory,
)
from fynance.notifications import LOW_BALANCE_ID, WELCOME_ID
from fynance.orchestrator import (
    NotificationInbox,
    RefreshFlow,
    create_app_components,
)
from fynance.services.storage import LocalJsonFinanceStorage, StorageError


class BrokenSaveStorage(LocalJsonFinanceStorage):
    """Loads normally, fails to save notifications."""

    async def save_notifications(self, notifications):
        raise StorageError("disk full")


class BrokenEvaluator(AchievementEvaluator):
    """Fails while evaluating."""

    def evaluate(self, snapshot, current_achievements, now=None):
        raise RuntimeError("criterion table missing")


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def flow(finance_storage, audit_logger):
    return RefreshFlow(storage=finance_storage, audit_logger=audit_logger, settings=Settings())


@pytest.fixture
def inbox(finance_storage, audit_logger):
    return NotificationInbox(storage=finance_storage, audit_logger=audit_logger)


def _ids(notifications):
    return [n.id for n in notifications]


class TestRefreshFlow:
    """Tests for RefreshFlow.refresh."""

    def test_end_to_end_single_account(self, flow, finance_storage, now):
        """Test a lone 5430.50 account: nothing unlocks, one welcome notification."""
        result = asyncio.run(flow.refresh(
            {"accounts": [{"id": "a1", "balance": "5430.50"}], "creditCards": [], "transactions": [], "goals": []},
            now=now,
        ))

        assert result.newly_unlocked == []
        assert not any(a.is_unlocked for a in result.achievements)
        assert _ids(result.notifications) == [WELCOME_ID]
        assert result.unread_count == 1

        stored = asyncio.run(finance_storage.load_notifications())
        assert _ids(stored) == [WELCOME_ID]
        raw = asyncio.run(finance_storage.load_raw_snapshot())
        assert raw["accounts"][0]["balance"] == "5430.50"

    def test_refresh_without_snapshot_uses_stored(self, flow, now):
        asyncio.run(flow.refresh({"accounts": [{"id": "a1", "balance": 100}]}, now=now))
        result = asyncio.run(flow.refresh(now=now))
        assert result.validation.snapshot.accounts[0].id == "a1"
        assert LOW_BALANCE_ID in _ids(result.notifications)

    def test_unlock_is_sticky_across_refreshes(self, flow, now):
        first = asyncio.run(flow.refresh({"accounts": [{"id": "a1", "balance": 150000}]}, now=now))
        assert [a.criteria_id for a in first.newly_unlocked] == [AchievementCriterion.MILLIONAIRE]
        assert "achievement-4" in _ids(first.notifications)

        later = now + timedelta(days=1)
        second = asyncio.run(flow.refresh({"accounts": [{"id": "a1", "balance": 10}]}, now=later))
        millionaire = {a.criteria_id: a for a in second.achievements}[AchievementCriterion.MILLIONAIRE]
        assert millionaire.is_unlocked is True
        assert millionaire.unlocked_at == now
        assert second.newly_unlocked == []
        assert "achievement-4" in _ids(second.notifications)

    def test_refresh_is_idempotent(self, flow, now):
        snapshot = {
            "accounts": [{"id": "a1", "balance": 300}],
            "goals": [{"id": "g1", "title": "Trip", "targetAmount": 100, "currentAmount": 95}],
        }
        first = asyncio.run(flow.refresh(snapshot, now=now))
        second = asyncio.run(flow.refresh(snapshot, now=now))
        third = asyncio.run(flow.refresh(snapshot, now=now))

        assert set(_ids(second.notifications)) == set(_ids(first.notifications))
        assert len(set(_ids(second.notifications))) == len(second.notifications)
        assert third.notifications == second.notifications

    def test_spending_alerts_become_notifications(self, flow, now):
        result = asyncio.run(flow.refresh({
            "transactions": [
                {"id": "t1", "date": "2024-08-02", "amount": -600, "category": "Compras"},
            ],
        }, now=now))
        assert [a.category for a in result.spending_alerts] == ["Compras"]
        assert "spending-limit-Compras" in _ids(result.notifications)
        assert result.monthly_status.spent == Decimal("600")

    def test_malformed_records_excluded_and_audited(self, flow, audit_storage, now):
        result = asyncio.run(flow.refresh({
            "transactions": [
                {"id": "t1", "date": "2024-08-01", "amount": -10},
                {"id": "t2", "date": "2024-08-01", "amount": "not a number"},
            ],
        }, now=now))
        assert [t.id for t in result.validation.snapshot.transactions] == ["t1"]

        events = asyncio.run(audit_storage.get_events_by_correlation_id(result.correlation_id))
        skipped = [e for e in events if e.event_type == AuditEventType.SNAPSHOT_RECORD_SKIPPED]
        assert [e.entity_id for e in skipped] == ["t2"]
        assert events[-1].event_type == AuditEventType.STATE_SAVED

    def test_achievement_notifications_respect_preferences(self, flow, inbox, now):
        asyncio.run(inbox.update_preferences(achievements=False))
        result = asyncio.run(flow.refresh({"goals": [{"id": "g1", "title": "Trip", "targetAmount": 100}]}, now=now))
        assert result.newly_unlocked
        assert not any(n.category == NotificationCategory.ACHIEVEMENT for n in result.notifications)

    def test_storage_failure_audited_and_raised(self, json_client, audit_storage, audit_logger, now):
        flow = RefreshFlow(
            storage=BrokenSaveStorage(json_client),
            audit_logger=audit_logger,
            settings=Settings(),
        )
        with pytest.raises(StorageError):
            asyncio.run(flow.refresh({"accounts": [{"id": "a1", "balance": 10}]}, now=now))

        [event] = asyncio.run(audit_storage.get_recent_events(limit=1))
        assert event.event_type == AuditEventType.SAVE_FAILED
        assert event.entity_id == "notifications"

    def test_derive_failure_audited_and_raised(self, finance_storage, audit_storage, audit_logger, now):
        flow = RefreshFlow(
            storage=finance_storage,
            evaluator=BrokenEvaluator(),
            audit_logger=audit_logger,
            settings=Settings(),
        )
        with pytest.raises(RuntimeError, match="criterion table missing"):
            asyncio.run(flow.refresh({"accounts": [{"id": "a1", "balance": 10}]}, now=now))

        [event] = asyncio.run(audit_storage.get_recent_events(limit=1))
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.error_message == "criterion table missing"
        assert event.details == {"step": "derive"}
        assert asyncio.run(finance_storage.load_notifications()) == []

    def test_naive_now_mixes_with_aware_history(self, flow, inbox, now):
        """Test a naive refresh time is read as UTC next to aware timestamps."""
        asyncio.run(flow.refresh({"accounts": [{"id": "a1", "balance": 100}]}, now=now.replace(tzinfo=None)))
        asyncio.run(flow.refresh(
            {"accounts": [{"id": "a1", "balance": 100}], "goals": [{"id": "g1", "title": "Trip", "targetAmount": 100}]},
            now=now + timedelta(hours=1),
        ))

        listed = asyncio.run(inbox.list_notifications())
        assert LOW_BALANCE_ID in _ids(listed)
        assert all(n.created_at.tzinfo is not None for n in listed)

    def test_without_storage(self, now):
        flow = RefreshFlow(settings=Settings())
        result = asyncio.run(flow.refresh({"accounts": [{"id": "a1", "balance": 5000}]}, now=now))
        assert _ids(result.notifications) == [WELCOME_ID]
        assert asyncio.run(flow.refresh(now=now)).notifications == []


class TestNotificationInbox:
    """Tests for user-driven notification changes."""

    def _seed(self, flow, now):
        asyncio.run(flow.refresh({
            "accounts": [{"id": "a1", "balance": 300}],
            "creditCards": [{"id": "c1", "name": "Nubank", "dueDate": (now.date() + timedelta(days=2)).isoformat()}],
        }, now=now))

    def test_mark_as_read(self, flow, inbox, now):
        self._seed(flow, now)
        assert asyncio.run(inbox.unread_count()) == 2
        assert asyncio.run(inbox.mark_as_read(LOW_BALANCE_ID)) is True
        assert asyncio.run(inbox.unread_count()) == 1

    def test_mark_unknown_id(self, flow, inbox, now):
        self._seed(flow, now)
        assert asyncio.run(inbox.mark_as_read("missing")) is False

    def test_mark_all_as_read(self, flow, inbox, now):
        self._seed(flow, now)
        assert asyncio.run(inbox.mark_all_as_read()) == 2
        assert asyncio.run(inbox.unread_count()) == 0
        assert asyncio.run(inbox.mark_all_as_read()) == 0

    def test_list_notifications_filters_and_sorts(self, flow, inbox, now):
        self._seed(flow, now)
        cards = asyncio.run(inbox.list_notifications(category=NotificationCategory.CARD))
        assert _ids(cards) == ["card-due-c1"]
        counts = asyncio.run(inbox.counts_by_category())
        assert counts[NotificationCategory.SYSTEM] == 1

    def test_read_state_resets_when_regenerated(self, flow, inbox, now):
        self._seed(flow, now)
        asyncio.run(inbox.mark_as_read(LOW_BALANCE_ID))
        self._seed(flow, now)
        assert asyncio.run(inbox.unread_count()) == 2

    def test_update_preferences(self, inbox, audit_storage):
        updated = asyncio.run(inbox.update_preferences(card_reminders=False))
        assert updated.card_reminders is False
        assert asyncio.run(inbox.get_preferences()).card_reminders is False

        [event] = asyncio.run(audit_storage.get_recent_events(limit=1))
        assert event.event_type == AuditEventType.PREFERENCES_UPDATED


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_without_storage(self):
        refresh_flow, inbox, client = create_app_components(use_storage=False, settings=Settings())
        assert isinstance(refresh_flow, RefreshFlow)
        assert inbox is None
        assert client is None

    def test_with_storage_from_environment(self, tmp_path, monkeypatch, now):
        path = tmp_path / "store.json"
        monkeypatch.setenv("FYNANCE_STORAGE_DATA_PATH", str(path))
        get_settings.cache_clear()
        try:
            refresh_flow, inbox, client = create_app_components()
            assert client.path == path
            asyncio.run(refresh_flow.refresh({"accounts": [{"id": "a1", "balance": 5000}]}, now=now))
            assert asyncio.run(inbox.unread_count()) == 1
        finally:
            get_settings.cache_clear()
