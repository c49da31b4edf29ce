"""Tests for LedgerService: hydration, inserts with fallback, deletes."""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from pocket_ledger.ledger import LedgerLoader, LedgerService, LedgerValidationError
from pocket_ledger.models.audit import AuditEventType
from pocket_ledger.models.transaction import (
    ConfirmationStatus,
    ExpenseDraft,
    ManualExpenseRecord,
    TransactionSource,
)

from conftest import OWNER


def _event_types(audit_logger):
    return [e.event_type for e in audit_logger.history]


class TestHydration:

    def test_hydrates_from_cache_without_network(self, service, cache, remote, make_tx):
        cache.save_snapshot([make_tx("cached", -5, datetime(2024, 1, 1, tzinfo=timezone.utc))])

        count = service.hydrate_from_cache()

        assert count == 1
        assert service.transactions[0].id == "cached"
        assert remote.calls == []

    def test_corrupt_cache_is_ignored(self, service, kv_store, cache):
        kv_store.data[cache.ledger_key] = "{not json"
        assert service.hydrate_from_cache() == 0
        assert service.transactions == ()


class TestManualExpense:

    def test_remote_insert_is_confirmed_and_negative(self, service, remote, kv_store):
        tx = asyncio.run(service.add_manual_expense("Lunch", 12.5, "food-dining"))

        assert tx.amount == Decimal("-12.5")
        assert tx.icon == "Coffee"
        assert tx.confirmation == ConfirmationStatus.CONFIRMED
        assert remote.manual_records(OWNER)[0].id == tx.id
        assert kv_store.writes == 1

    def test_positive_input_is_normalized(self, service):
        tx = asyncio.run(service.add_manual_expense("Taxi", "-8", "transportation"))
        assert tx.amount == Decimal("-8")

    def test_blank_label_defaults(self, service):
        tx = asyncio.run(service.add_manual_expense("   ", 3))
        assert tx.label == "Transaction"
        assert tx.icon == "ShoppingBag"

    @pytest.mark.parametrize("category_id", [None, "", "not-a-category"])
    def test_uncategorized_expense_gets_default_icon(self, service, remote, category_id):
        tx = asyncio.run(service.add_manual_expense("Stuff", 4, category_id))

        assert tx.icon == "ShoppingBag"
        record = remote.manual_records(OWNER)[0]
        assert record.icon == "ShoppingBag"
        assert record.category_id is None

    def test_catch_all_category_keeps_its_icon(self, service):
        tx = asyncio.run(service.add_manual_expense("Misc", 4, "miscellaneous-other"))
        assert tx.icon == "MoreHorizontal"

    def test_remote_failure_falls_back_to_local(self, service, remote, audit_logger):
        remote.fail_writes = True

        tx = asyncio.run(service.add_manual_expense("Snack", 2))

        assert tx.id.startswith("local-")
        assert tx.confirmation == ConfirmationStatus.PENDING_CONFIRMATION
        assert service.transactions[0].id == tx.id
        assert AuditEventType.LOCAL_FALLBACK_USED in _event_types(audit_logger)

    @pytest.mark.parametrize("amount", [float("nan"), float("inf"), "abc", True])
    def test_rejects_non_finite_amount(self, service, remote, amount):
        with pytest.raises(LedgerValidationError):
            asyncio.run(service.add_manual_expense("Bad", amount))
        assert service.transactions == ()
        assert remote.calls == []

    def test_local_ids_never_collide(self, ledger, cache, audit_logger):
        loader = LedgerLoader(ledger, cache, audit_logger, store=None)
        service = LedgerService(OWNER, ledger, loader, cache, audit_logger, store=None)

        async def scenario():
            return [await service.add_manual_expense("x", 1) for _ in range(5)]

        ids = {t.id for t in asyncio.run(scenario())}
        assert len(ids) == 5


class TestInsertMany:

    def test_batch_fallback_keeps_all_items(self, service, remote):
        remote.fail_writes = True
        drafts = [ExpenseDraft(label=f"Item {i}", amount=Decimal("-1")) for i in range(3)]

        inserted = asyncio.run(service.insert_many(drafts))

        assert len(inserted) == 3
        assert all(t.confirmation == ConfirmationStatus.PENDING_CONFIRMATION for t in inserted)
        assert len(service.transactions) == 3

    def test_empty_batch_is_noop(self, service, remote):
        assert asyncio.run(service.insert_many([])) == []
        assert remote.calls == []


class TestDelete:

    def test_delete_is_local_first_then_remote(self, service, remote, kv_store):
        tx = asyncio.run(service.add_manual_expense("Lunch", 10))
        writes = kv_store.writes

        assert asyncio.run(service.delete(tx.id)) is True

        assert service.transactions == ()
        assert remote.manual_records(OWNER) == []
        assert kv_store.writes == writes + 1

    def test_remote_delete_failure_is_not_rolled_back(self, service, remote, audit_logger):
        tx = asyncio.run(service.add_manual_expense("Lunch", 10))
        remote.fail_writes = True

        assert asyncio.run(service.delete(tx.id)) is True

        assert service.transactions == ()
        assert AuditEventType.REMOTE_DELETE_FAILED in _event_types(audit_logger)

    def test_message_derived_delete_is_local_only(self, service, ledger, remote, make_tx):
        ledger.merge([make_tx("mp_9", -3, source=TransactionSource.MESSAGE)])

        assert asyncio.run(service.delete("mp_9")) is True
        assert "delete_expense" not in remote.calls

    def test_unknown_id_returns_false(self, service):
        assert asyncio.run(service.delete("missing")) is False


class TestLoadMore:

    def test_load_more_respects_has_more(self, service, remote):
        result = asyncio.run(service.load_more())
        assert result.success and not result.has_more
        assert remote.calls == []

    def test_reset_keeps_local_pending_records(self, service, remote):
        remote.seed_manual(OWNER, [ManualExpenseRecord(
            id="r1", amount=Decimal("-4"), transaction_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )])

        async def scenario():
            remote.fail_writes = True
            pending = await service.add_manual_expense("Offline", 2)
            remote.fail_writes = False
            await service.load_page(reset=True)
            return pending

        pending = asyncio.run(scenario())
        ids = {t.id for t in service.transactions}
        assert ids == {"r1", pending.id}
