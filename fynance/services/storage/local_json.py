"""
Local JSON Storage Implementation

DESIGN DECISION: State is kept in a single JSON file shaped like the
device's key-value store (keys such as "@fynance:transactions"). This:
1. Matches what the mobile host already persists, key for key
2. Needs no database
3. Is trivially inspectable and portable

TRADEOFFS:
- Whole-file rewrite on every write (fine for one user's data)
- No cross-key transactions; each collection is replaced wholesale
- Last write wins when refreshes overlap

Writes go to a temp file and are renamed into place, so a crash never
leaves a half-written store behind.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional
from uuid import UUID

from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from fynance.config import StorageSettings, get_settings
from fynance.models.achievement import Achievement, default_achievements
from fynance.models.audit import AuditEvent
from fynance.models.notification import Notification, NotificationPreferences
from fynance.models.snapshot import Snapshot
from fynance.services.storage.interface import (
    AuditStorageInterface,
    CorruptedDataError,
    FinanceStorageInterface,
    StorageError,
)


# Collection keys (without prefix)
ACCOUNTS_KEY = "accounts"
CREDIT_CARDS_KEY = "credit_cards"
TRANSACTIONS_KEY = "transactions"
GOALS_KEY = "goals"
ACHIEVEMENTS_KEY = "achievements"
NOTIFICATIONS_KEY = "notifications"
PREFERENCES_KEY = "notification_settings"
AUDIT_LOG_KEY = "audit_log"


class LocalJsonClient:
    """
    Low-level key-value client over a JSON file.

    Handles key prefixing, atomic writes and retry logic for file I/O.
    """

    def __init__(self, settings: Optional[StorageSettings] = None):
        self._settings = settings or get_settings().storage
        self._path = Path(self._settings.data_path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def key(self, name: str) -> str:
        """Full storage key for a collection name."""
        return f"{self._settings.key_prefix}{name}"

    def _read_all(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise CorruptedDataError(f"Store file {self._path} is not valid JSON: {e}")
        except OSError as e:
            raise StorageError(f"Could not read store file {self._path}: {e}")

        if not isinstance(data, dict):
            raise CorruptedDataError(f"Store file {self._path} does not contain an object")
        return data

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _write_all(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get_item(self, name: str) -> Optional[Any]:
        """Decoded value for a key, or None if absent."""
        return self._read_all().get(self.key(name))

    def set_item(self, name: str, value: Any) -> None:
        self.multi_set({name: value})

    def multi_set(self, items: dict[str, Any]) -> None:
        """Write several keys in one file rewrite."""
        data = self._read_all()
        for name, value in items.items():
            data[self.key(name)] = value
        try:
            self._write_all(data)
        except OSError as e:
            raise StorageError(f"Failed to write store file {self._path}: {e}")

    def remove_item(self, name: str) -> bool:
        """Delete a key. Returns False if it wasn't there."""
        data = self._read_all()
        if data.pop(self.key(name), None) is None:
            return False
        try:
            self._write_all(data)
        except OSError as e:
            raise StorageError(f"Failed to write store file {self._path}: {e}")
        return True

    def all_keys(self) -> list[str]:
        return sorted(self._read_all())


class LocalJsonFinanceStorage(FinanceStorageInterface):
    """Finance state stored through a LocalJsonClient."""

    def __init__(self, client: LocalJsonClient):
        self._client = client

    async def load_raw_snapshot(self) -> dict[str, Any]:
        return {
            "accounts": self._client.get_item(ACCOUNTS_KEY) or [],
            "creditCards": self._client.get_item(CREDIT_CARDS_KEY) or [],
            "transactions": self._client.get_item(TRANSACTIONS_KEY) or [],
            "goals": self._client.get_item(GOALS_KEY) or [],
        }

    async def save_snapshot(self, snapshot: Snapshot) -> bool:
        record = snapshot.to_storage_dict()
        self._client.multi_set({
            ACCOUNTS_KEY: record["accounts"],
            CREDIT_CARDS_KEY: record["creditCards"],
            TRANSACTIONS_KEY: record["transactions"],
            GOALS_KEY: record["goals"],
        })
        return True

    async def load_achievements(self) -> list[Achievement]:
        stored = self._client.get_item(ACHIEVEMENTS_KEY)
        if stored is None:
            return default_achievements()
        return self._parse_list(Achievement, stored, ACHIEVEMENTS_KEY)

    async def save_achievements(self, achievements: list[Achievement]) -> bool:
        self._client.set_item(ACHIEVEMENTS_KEY, [a.to_storage_dict() for a in achievements])
        return True

    async def load_notifications(self) -> list[Notification]:
        stored = self._client.get_item(NOTIFICATIONS_KEY)
        if stored is None:
            return []
        return self._parse_list(Notification, stored, NOTIFICATIONS_KEY)

    async def save_notifications(self, notifications: list[Notification]) -> bool:
        self._client.set_item(NOTIFICATIONS_KEY, [n.to_storage_dict() for n in notifications])
        return True

    async def load_preferences(self) -> NotificationPreferences:
        stored = self._client.get_item(PREFERENCES_KEY)
        if stored is None:
            return NotificationPreferences()
        try:
            return NotificationPreferences.model_validate(stored)
        except ValidationError as e:
            raise CorruptedDataError(f"Stored {PREFERENCES_KEY} is invalid: {e}")

    async def save_preferences(self, preferences: NotificationPreferences) -> bool:
        self._client.set_item(PREFERENCES_KEY, preferences.to_storage_dict())
        return True

    def _parse_list(self, model, stored: Any, name: str) -> list:
        if not isinstance(stored, list):
            raise CorruptedDataError(f"Stored {name} is not a list")
        try:
            return [model.model_validate(item) for item in stored]
        except ValidationError as e:
            raise CorruptedDataError(f"Stored {name} is invalid: {e}")


class LocalJsonAuditStorage(AuditStorageInterface):
    """Append-only audit log kept under one key, capped in size."""

    def __init__(self, client: LocalJsonClient, max_events: Optional[int] = None):
        self._client = client
        self._max_events = max_events or get_settings().storage.audit_log_max_events

    def _load_events(self) -> list[AuditEvent]:
        stored = self._client.get_item(AUDIT_LOG_KEY) or []
        try:
            return [AuditEvent.from_storage_record(record) for record in stored]
        except (KeyError, ValueError, TypeError) as e:
            raise CorruptedDataError(f"Stored {AUDIT_LOG_KEY} is invalid: {e}")

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event, dropping the oldest past the cap."""
        stored = self._client.get_item(AUDIT_LOG_KEY) or []
        stored.append(event.to_storage_record())
        self._client.set_item(AUDIT_LOG_KEY, stored[-self._max_events:])
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._load_events() if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = self._load_events()
        return list(reversed(events))[:limit]
