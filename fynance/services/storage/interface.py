"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Mirror the device's key-value store locally (JSON file)
2. Swap in a real database or the host's own store later
3. Keep evaluation logic decoupled from where state lives

Collections are written wholesale: every aggregator sync replaces the
snapshot, every refresh replaces the achievement and notification lists.
There is no partial update and no cross-key transaction.
"""

from abc import ABC, abstractmethod
from typing import Any
from uuid import UUID

from fynance.models.achievement import Achievement
from fynance.models.audit import AuditEvent
from fynance.models.notification import Notification, NotificationPreferences
from fynance.models.snapshot import Snapshot


class FinanceStorageInterface(ABC):
    """
    Abstract interface for the app's persisted state.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def load_raw_snapshot(self) -> dict[str, Any]:
        """
        Load the last synced snapshot as raw records.

        Returned unparsed on purpose: it goes through the snapshot
        validator like any freshly synced data.

        Returns:
            Mapping of accounts / creditCards / transactions / goals
            (empty lists when nothing was synced yet)
        """
        pass

    @abstractmethod
    async def save_snapshot(self, snapshot: Snapshot) -> bool:
        """
        Replace the stored snapshot.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def load_achievements(self) -> list[Achievement]:
        """
        Load achievement state.

        Returns:
            Stored achievements, or the default catalog if none stored

        Raises:
            CorruptedDataError: If stored records can't be parsed
        """
        pass

    @abstractmethod
    async def save_achievements(self, achievements: list[Achievement]) -> bool:
        pass

    @abstractmethod
    async def load_notifications(self) -> list[Notification]:
        """
        Load the notification collection.

        Raises:
            CorruptedDataError: If stored records can't be parsed
        """
        pass

    @abstractmethod
    async def save_notifications(self, notifications: list[Notification]) -> bool:
        pass

    @abstractmethod
    async def load_preferences(self) -> NotificationPreferences:
        """Load notification toggles (all on when none stored)."""
        pass

    @abstractmethod
    async def save_preferences(self, preferences: NotificationPreferences) -> bool:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never modify them. Implementations
    may drop the oldest events past a size cap.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one refresh).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptedDataError(StorageError):
    """Stored data exists but can't be decoded or parsed."""
    pass
