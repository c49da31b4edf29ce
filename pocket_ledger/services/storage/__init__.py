"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the remote
ledger and settings stores. Google Sheets is the production backend; the
in-memory stores back the tests and offline runs.
"""

from pocket_ledger.services.storage.interface import (
    LedgerStoreInterface,
    NotFoundError,
    SettingsStoreInterface,
    StorageConnectionError,
    StorageError,
)
from pocket_ledger.services.storage.memory import (
    InMemoryLedgerStore,
    InMemorySettingsStore,
)
from pocket_ledger.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    GoogleSheetsSettingsStore,
)

__all__ = [
    # Interfaces
    "LedgerStoreInterface",
    "SettingsStoreInterface",
    # Exceptions
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStore",
    "GoogleSheetsSettingsStore",
    "InMemoryLedgerStore",
    "InMemorySettingsStore",
]
