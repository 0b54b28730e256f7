"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements a local JSON key-value store, but designed to be swappable.
"""

from fynance.services.storage.interface import (
    AuditStorageInterface,
    CorruptedDataError,
    FinanceStorageInterface,
    StorageError,
)
from fynance.services.storage.local_json import (
    LocalJsonAuditStorage,
    LocalJsonClient,
    LocalJsonFinanceStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "FinanceStorageInterface",
    # Exceptions
    "CorruptedDataError",
    "StorageError",
    # Local JSON implementation
    "LocalJsonAuditStorage",
    "LocalJsonClient",
    "LocalJsonFinanceStorage",
]
