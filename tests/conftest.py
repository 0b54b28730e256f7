"""
Shared fixtures for Fynance Core tests.

Test strategy:
1. Unit tests for the pure components (models, evaluator, generator, analyzer)
2. Storage and flow tests against a JSON store in a temporary directory
3. `now` is always pinned so runs are deterministic
"""

from datetime import datetime, timezone

import pytest

from fynance.config import (
    EvaluationSettings,
    InsightSettings,
    NotificationSettings,
    StorageSettings,
)
from fynance.services.storage import (
    LocalJsonAuditStorage,
    LocalJsonClient,
    LocalJsonFinanceStorage,
)


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 8, 20, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def evaluation_settings() -> EvaluationSettings:
    return EvaluationSettings()


@pytest.fixture
def notification_settings() -> NotificationSettings:
    return NotificationSettings()


@pytest.fixture
def insight_settings() -> InsightSettings:
    return InsightSettings()


@pytest.fixture
def storage_settings(tmp_path) -> StorageSettings:
    return StorageSettings(data_path=str(tmp_path / "fynance_data.json"))


@pytest.fixture
def json_client(storage_settings) -> LocalJsonClient:
    return LocalJsonClient(storage_settings)


@pytest.fixture
def finance_storage(json_client) -> LocalJsonFinanceStorage:
    return LocalJsonFinanceStorage(json_client)


@pytest.fixture
def audit_storage(json_client) -> LocalJsonAuditStorage:
    return LocalJsonAuditStorage(json_client, max_events=20)
