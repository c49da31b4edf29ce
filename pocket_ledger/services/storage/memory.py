"""
In-Memory Storage

Implements the storage interfaces in plain Python. Used by the tests and
when the app runs without a configured remote store.

fail_* flags let tests simulate an unreachable backend.
"""

from datetime import datetime, timezone
from itertools import count as counter
from typing import Optional

from pocket_ledger.models.transaction import (
    EPOCH,
    ExpenseDraft,
    ManualExpenseRecord,
    MessageTransactionRecord,
)
from pocket_ledger.services.storage.interface import (
    LedgerStoreInterface,
    SettingsStoreInterface,
    StorageConnectionError,
)


def _newest_first(records: list, offset: int, count: int) -> list:
    ordered = sorted(
        records,
        key=lambda r: r.transaction_at or EPOCH,
        reverse=True,
    )
    return ordered[offset:offset + count]


class InMemoryLedgerStore(LedgerStoreInterface):
    """Dict-backed ledger store, one bucket per owner."""

    def __init__(self):
        self._manual: dict[str, list[ManualExpenseRecord]] = {}
        self._messages: dict[str, list[MessageTransactionRecord]] = {}
        self._ids = counter(1)
        self.fail_manual = False
        self.fail_messages = False
        self.fail_writes = False
        self.calls: list[str] = []

    def seed_manual(self, owner_id: str, records: list[ManualExpenseRecord]) -> None:
        self._manual.setdefault(owner_id, []).extend(records)

    def seed_messages(self, owner_id: str, records: list[MessageTransactionRecord]) -> None:
        self._messages.setdefault(owner_id, []).extend(records)

    def manual_records(self, owner_id: str) -> list[ManualExpenseRecord]:
        return list(self._manual.get(owner_id, []))

    async def fetch_manual_page(self, owner_id, offset, count):
        self.calls.append("fetch_manual_page")
        if self.fail_manual:
            raise StorageConnectionError("manual expenses unavailable")
        return _newest_first(self._manual.get(owner_id, []), offset, count)

    async def fetch_message_page(self, owner_id, offset, count):
        self.calls.append("fetch_message_page")
        if self.fail_messages:
            raise StorageConnectionError("message transactions unavailable")
        return _newest_first(self._messages.get(owner_id, []), offset, count)

    def _persist(self, owner_id: str, draft: ExpenseDraft) -> ManualExpenseRecord:
        record = ManualExpenseRecord(
            id=str(next(self._ids)),
            label=draft.label,
            amount=draft.amount,
            icon=draft.icon,
            category_id=draft.category_id,
            transaction_at=draft.transaction_at or datetime.now(timezone.utc),
        )
        self._manual.setdefault(owner_id, []).append(record)
        return record

    async def insert_expense(self, owner_id, draft):
        self.calls.append("insert_expense")
        if self.fail_writes:
            raise StorageConnectionError("insert rejected")
        return self._persist(owner_id, draft)

    async def insert_expenses(self, owner_id, drafts):
        self.calls.append("insert_expenses")
        if self.fail_writes:
            raise StorageConnectionError("batch insert rejected")
        return [self._persist(owner_id, d) for d in drafts]

    async def delete_expense(self, owner_id, expense_id):
        self.calls.append("delete_expense")
        if self.fail_writes:
            raise StorageConnectionError("delete rejected")
        rows = self._manual.get(owner_id, [])
        for idx, row in enumerate(rows):
            if row.id == expense_id:
                del rows[idx]
                return True
        return False


class InMemorySettingsStore(SettingsStoreInterface):
    """Dict-backed secret store."""

    def __init__(self):
        self._secrets: dict[str, Optional[str]] = {}
        self.fail = False

    async def get_secret(self, owner_id):
        if self.fail:
            raise StorageConnectionError("settings unavailable")
        return self._secrets.get(owner_id)

    async def upsert_secret(self, owner_id, value):
        if self.fail:
            raise StorageConnectionError("settings unavailable")
        self._secrets[owner_id] = value

    async def clear_secret(self, owner_id):
        if self.fail:
            raise StorageConnectionError("settings unavailable")
        self._secrets[owner_id] = None
