"""
Shared fixtures.

No real API calls in tests: every remote collaborator is an in-memory
fake implementing the same interface.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest

from pocket_ledger.audit import AuditLogger
from pocket_ledger.ledger import Ledger, LedgerLoader, LedgerService
from pocket_ledger.models.transaction import (
    ConfirmationStatus,
    ManualExpenseRecord,
    MessageTransactionRecord,
    Transaction,
    TransactionSource,
)
from pocket_ledger.services.cache import MemoryKeyValueStore, OfflineCache
from pocket_ledger.services.storage import InMemoryLedgerStore, InMemorySettingsStore


OWNER = "user-1"


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def kv_store():
    return MemoryKeyValueStore()


@pytest.fixture
def cache(kv_store, audit_logger):
    return OfflineCache(kv_store, audit_logger)


@pytest.fixture
def remote():
    return InMemoryLedgerStore()


@pytest.fixture
def settings_store():
    return InMemorySettingsStore()


@pytest.fixture
def ledger():
    return Ledger()


@pytest.fixture
def loader(ledger, cache, audit_logger, remote):
    return LedgerLoader(ledger, cache, audit_logger, store=remote, page_size=25)


@pytest.fixture
def service(ledger, loader, cache, audit_logger, remote):
    return LedgerService(OWNER, ledger, loader, cache, audit_logger, store=remote)


@pytest.fixture
def make_tx():
    """Factory for canonical transactions."""

    def _make(
        tx_id: str,
        amount,
        timestamp: Optional[datetime] = None,
        label: str = "Item",
        icon: str = "Coffee",
        source: TransactionSource = TransactionSource.MANUAL,
        confirmation: ConfirmationStatus = ConfirmationStatus.CONFIRMED,
    ) -> Transaction:
        return Transaction(
            id=tx_id,
            source=source,
            icon=icon,
            label=label,
            amount=Decimal(str(amount)),
            timestamp=timestamp,
            confirmation=confirmation,
        )

    return _make


@pytest.fixture
def manual_records():
    """n manual records, one per day of January 2024, newest has the highest id."""

    def _make(n: int, start_id: int = 1) -> list[ManualExpenseRecord]:
        return [
            ManualExpenseRecord(
                id=str(start_id + i),
                label=f"Expense {start_id + i}",
                amount=Decimal("-1"),
                icon="Coffee",
                transaction_at=datetime(2024, 1, 1, tzinfo=timezone.utc).replace(day=1 + i % 28, hour=i // 28),
            )
            for i in range(n)
        ]

    return _make


@pytest.fixture
def message_records():
    def _make(n: int) -> list[MessageTransactionRecord]:
        return [
            MessageTransactionRecord(
                id=str(i),
                description=f"Transfer {i}",
                type="payment_sent",
                amount=Decimal("5"),
                transaction_at=datetime(2024, 2, 1 + i % 28, i // 28, tzinfo=timezone.utc),
            )
            for i in range(n)
        ]

    return _make
