"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for the remote stores.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep ledger logic decoupled from the storage implementation

Two logical, owner-scoped collections back the ledger:
- manual expenses (read/write)
- message-derived transactions (read-only from our side)
"""

from abc import ABC, abstractmethod
from typing import Optional

from pocket_ledger.models.transaction import (
    ExpenseDraft,
    ManualExpenseRecord,
    MessageTransactionRecord,
)


class LedgerStoreInterface(ABC):
    """
    Abstract interface for the remote ledger.

    Pages are returned newest first (reverse-chronological by transaction
    time) and addressed by (offset, count).
    """

    @abstractmethod
    async def fetch_manual_page(
        self,
        owner_id: str,
        offset: int,
        count: int,
    ) -> list[ManualExpenseRecord]:
        """
        Fetch a page of manually entered expenses.

        Raises:
            StorageError: If the collection cannot be read
        """
        pass

    @abstractmethod
    async def fetch_message_page(
        self,
        owner_id: str,
        offset: int,
        count: int,
    ) -> list[MessageTransactionRecord]:
        """
        Fetch a page of message-derived transactions.

        Raises:
            StorageError: If the collection cannot be read
        """
        pass

    @abstractmethod
    async def insert_expense(
        self,
        owner_id: str,
        draft: ExpenseDraft,
    ) -> ManualExpenseRecord:
        """
        Insert one expense.

        Returns:
            The persisted record with its canonical id and timestamp

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def insert_expenses(
        self,
        owner_id: str,
        drafts: list[ExpenseDraft],
    ) -> list[ManualExpenseRecord]:
        """
        Insert several expenses in one call.

        Raises:
            StorageError: If the batch insert fails
        """
        pass

    @abstractmethod
    async def delete_expense(self, owner_id: str, expense_id: str) -> bool:
        """
        Delete an expense by id.

        Returns:
            True if a row was deleted
        """
        pass


class SettingsStoreInterface(ABC):
    """
    Abstract interface for per-user secrets.

    Holds exactly one value per owner: the OCR credential.
    """

    @abstractmethod
    async def get_secret(self, owner_id: str) -> Optional[str]:
        pass

    @abstractmethod
    async def upsert_secret(self, owner_id: str, value: str) -> None:
        pass

    @abstractmethod
    async def clear_secret(self, owner_id: str) -> None:
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
