"""Tests for the local JSON store."""

import asyncio
import json
import os
from datetime import datetime, timezone
from unittest.mock import patch
from uuid import uuid4

import pytest

from fynance.config import StorageSettings
from fynance.models import (
    Account,
    AuditEventBuilder,
    NotificationPreferences,
    Snapshot,
    Transaction,
    default_achievements,
)
from fynance.notifications import NotificationGenerator
from fynance.services.storage import CorruptedDataError, LocalJsonClient, StorageError


class TestLocalJsonClient:
    """Tests for the key-value client."""

    def test_missing_file_reads_as_empty(self, json_client):
        assert json_client.get_item("accounts") is None
        assert json_client.all_keys() == []

    def test_keys_are_prefixed(self, json_client):
        json_client.set_item("goals", [])
        with json_client.path.open(encoding="utf-8") as f:
            assert "@fynance:goals" in json.load(f)

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "store.json"
        with pytest.warns(UserWarning):
            settings = StorageSettings(data_path=str(path))
        client = LocalJsonClient(settings)
        client.set_item("accounts", [])
        assert path.exists()

    def test_remove_item(self, json_client):
        json_client.multi_set({"accounts": [], "goals": []})
        assert json_client.remove_item("goals") is True
        assert json_client.remove_item("goals") is False
        assert json_client.all_keys() == ["@fynance:accounts"]

    def test_invalid_json_is_corrupted(self, json_client):
        json_client.path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CorruptedDataError):
            json_client.get_item("accounts")

    def test_non_object_root_is_corrupted(self, json_client):
        json_client.path.write_text("[]", encoding="utf-8")
        with pytest.raises(CorruptedDataError):
            json_client.get_item("accounts")

    def test_write_retried_then_wrapped(self, json_client):
        """Test persistent OS errors are retried and surface as StorageError."""
        with patch("fynance.services.storage.local_json.os.replace", side_effect=OSError("disk full")) as replace:
            with pytest.raises(StorageError, match="disk full"):
                json_client.set_item("accounts", [])
        assert replace.call_count == 3
        assert not json_client.path.exists()
        assert list(json_client.path.parent.glob("*.tmp")) == []

    def test_transient_write_error_recovers(self, json_client):
        real_replace = os.replace
        calls = []

        def flaky_replace(src, dst):
            calls.append(src)
            if len(calls) == 1:
                raise OSError("busy")
            return real_replace(src, dst)

        with patch("fynance.services.storage.local_json.os.replace", side_effect=flaky_replace):
            json_client.set_item("accounts", [{"id": "a1"}])
        assert json_client.get_item("accounts") == [{"id": "a1"}]


class TestFinanceStorage:
    """Tests for finance state persistence."""

    def test_empty_store_defaults(self, finance_storage):
        raw = asyncio.run(finance_storage.load_raw_snapshot())
        assert raw == {"accounts": [], "creditCards": [], "transactions": [], "goals": []}
        assert asyncio.run(finance_storage.load_achievements()) == default_achievements()
        assert asyncio.run(finance_storage.load_notifications()) == []
        assert asyncio.run(finance_storage.load_preferences()) == NotificationPreferences()

    def test_snapshot_saved_under_separate_keys(self, finance_storage, json_client):
        snapshot = Snapshot(
            accounts=[Account(id="a1", balance=10)],
            transactions=[Transaction(id="t1", date="2024-08-01", amount=-5, account_id="a1")],
        )
        asyncio.run(finance_storage.save_snapshot(snapshot))

        stored = json_client.get_item("transactions")
        assert stored[0]["accountId"] == "a1"
        assert stored[0]["date"] == "2024-08-01"
        assert json_client.get_item("credit_cards") == []

        raw = asyncio.run(finance_storage.load_raw_snapshot())
        assert raw["accounts"][0]["id"] == "a1"

    def test_achievements_persist_unlock_state(self, finance_storage):
        achievements = default_achievements()
        unlocked_at = datetime(2024, 8, 20, tzinfo=timezone.utc)
        achievements[0] = achievements[0].model_copy(
            update={"is_unlocked": True, "unlocked_at": unlocked_at}
        )
        asyncio.run(finance_storage.save_achievements(achievements))

        loaded = asyncio.run(finance_storage.load_achievements())
        assert loaded[0].is_unlocked is True
        assert loaded[0].unlocked_at == unlocked_at

    def test_notifications_persist(self, finance_storage, now):
        notifications = NotificationGenerator.achievement_notifications(default_achievements()[:1], now)
        asyncio.run(finance_storage.save_notifications(notifications))
        assert asyncio.run(finance_storage.load_notifications()) == notifications

    def test_preferences_persist(self, finance_storage):
        asyncio.run(finance_storage.save_preferences(NotificationPreferences(goal_reminders=False)))
        assert asyncio.run(finance_storage.load_preferences()).goal_reminders is False

    def test_corrupted_achievements(self, finance_storage, json_client):
        json_client.set_item("achievements", [{"id": "1"}])
        with pytest.raises(CorruptedDataError):
            asyncio.run(finance_storage.load_achievements())

    def test_notifications_not_a_list(self, finance_storage, json_client):
        json_client.set_item("notifications", {"id": "x"})
        with pytest.raises(CorruptedDataError):
            asyncio.run(finance_storage.load_notifications())


class TestAuditStorage:
    """Tests for the capped audit log."""

    def test_append_and_query(self, audit_storage):
        correlation_id = uuid4()
        asyncio.run(audit_storage.append_event(
            AuditEventBuilder.state_saved(keys=["achievements"], correlation_id=correlation_id)
        ))
        asyncio.run(audit_storage.append_event(
            AuditEventBuilder.notification_read(notification_id="welcome")
        ))

        related = asyncio.run(audit_storage.get_events_by_correlation_id(correlation_id))
        assert len(related) == 1
        assert related[0].details == {"keys": ["achievements"]}

        recent = asyncio.run(audit_storage.get_recent_events(limit=1))
        assert recent[0].entity_id == "welcome"

    def test_log_is_capped(self, audit_storage, json_client):
        for i in range(25):
            asyncio.run(audit_storage.append_event(
                AuditEventBuilder.notification_read(notification_id=f"n{i}")
            ))
        stored = json_client.get_item("audit_log")
        assert len(stored) == 20
        assert stored[0]["entity_id"] == "n5"
