"""End-to-end wiring through create_app_context with in-memory stores."""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

from pocket_ledger.models.receipt import ReceiptImage
from pocket_ledger.models.transaction import ManualExpenseRecord, MessageTransactionRecord
from pocket_ledger.orchestrator import create_app_context
from pocket_ledger.services.cache import MemoryKeyValueStore
from pocket_ledger.services.ocr import ReceiptOCRProvider
from pocket_ledger.services.storage import InMemoryLedgerStore, InMemorySettingsStore


class StaticProvider(ReceiptOCRProvider):
    async def extract_text(self, image, instructions, api_key):
        return '{"items":[{"description":"Coffee","price":4.5,"category":"food-dining"}]}'


def test_local_only_context_starts_without_raising():
    context = create_app_context(
        "user-1",
        use_storage=False,
        key_value_store=MemoryKeyValueStore(),
        ocr_provider=StaticProvider(),
    )
    asyncio.run(context.start())
    assert context.ledger_service.transactions == ()
    assert context.sheets_client is None


def test_full_flow_with_in_memory_stores():
    remote = InMemoryLedgerStore()
    remote.seed_manual("user-1", [ManualExpenseRecord(
        id="1", label="Rent", amount=Decimal("-50"),
        transaction_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )])
    remote.seed_messages("user-1", [MessageTransactionRecord(
        id="mp_1", description="Cafe", type="payment_sent", amount=Decimal("10"),
        transaction_at=datetime(2024, 1, 2, tzinfo=timezone.utc),
    )])
    settings_store = InMemorySettingsStore()
    kv_store = MemoryKeyValueStore()

    context = create_app_context(
        "user-1",
        key_value_store=kv_store,
        ledger_store=remote,
        settings_store=settings_store,
        ocr_provider=StaticProvider(),
        image_preparer=lambda data: ReceiptImage(data=data, width=1, height=1),
    )

    async def scenario():
        await settings_store.upsert_secret("user-1", "gemini-key")
        await context.start()
        await context.receipts.select_image(b"photo")
        return await context.receipts.commit()

    result = asyncio.run(scenario())

    assert result.inserted == 1
    amounts = {t.label: t.amount for t in context.ledger_service.transactions}
    assert amounts == {
        "Rent": Decimal("-50"),
        "Cafe": Decimal("-10"),
        "Coffee": Decimal("-4.5"),
    }

    # A fresh context hydrates the same ledger from the shared local store
    reopened = create_app_context("user-1", use_storage=False, key_value_store=kv_store)
    assert reopened.ledger_service.hydrate_from_cache() == 3


def test_analytics_windows_come_from_settings(monkeypatch):
    monkeypatch.setenv("TREND_MONTHS", "3")
    monkeypatch.setenv("TOP_MERCHANTS", "1")
    remote = InMemoryLedgerStore()
    remote.seed_manual("user-1", [
        ManualExpenseRecord(
            id=str(i), label=label, amount=Decimal(amount),
            transaction_at=datetime(2024, 5, 10, tzinfo=timezone.utc),
        )
        for i, (label, amount) in enumerate([("Rent", "-500"), ("Cafe", "-4")])
    ])
    context = create_app_context(
        "user-1",
        key_value_store=MemoryKeyValueStore(),
        ledger_store=remote,
        settings_store=InMemorySettingsStore(),
        ocr_provider=StaticProvider(),
    )
    asyncio.run(context.start())

    trends = context.trends(now=datetime(2024, 5, 15, tzinfo=timezone.utc))
    assert [(t.year, t.month) for t in trends] == [(2024, 3), (2024, 4), (2024, 5)]
    assert trends[-1].expenses == Decimal("504")

    ranking = context.top_merchant_ranking()
    assert [m.label for m in ranking] == ["Rent"]
