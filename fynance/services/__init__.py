"""Services package."""

from fynance.services.storage import (
    AuditStorageInterface,
    CorruptedDataError,
    FinanceStorageInterface,
    LocalJsonAuditStorage,
    LocalJsonClient,
    LocalJsonFinanceStorage,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "CorruptedDataError",
    "FinanceStorageInterface",
    "LocalJsonAuditStorage",
    "LocalJsonClient",
    "LocalJsonFinanceStorage",
    "StorageError",
]
