"""
Tests for Pocket Ledger models

Test strategy:
1. Unit tests for individual components (models, catalog lookups)
2. Integration tests for flows (with in-memory fakes)
3. No real API calls in tests
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from pocket_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from pocket_ledger.models.budget import Budget
from pocket_ledger.models.category import (
    CATEGORIES,
    DEFAULT_CATEGORY_ID,
    all_categories,
    category_for_icon,
    category_icon,
    get_category,
    is_known_category,
)
from pocket_ledger.models.receipt import ExtractedItem, PendingItem
from pocket_ledger.models.transaction import (
    EPOCH,
    ConfirmationStatus,
    ManualExpenseRecord,
    Transaction,
)


class TestCategoryCatalog:
    """Tests for the static category catalog."""

    def test_catalog_has_nine_unique_categories(self):
        ids = [c.id for c in all_categories()]
        assert len(ids) == 9
        assert len(set(ids)) == 9
        assert set(ids) == set(CATEGORIES)

    def test_unknown_category_falls_back_to_default(self):
        assert get_category("does-not-exist").id == DEFAULT_CATEGORY_ID
        assert get_category(None).id == DEFAULT_CATEGORY_ID

    def test_category_icon_lookup(self):
        assert category_icon("food-dining") == "Coffee"
        assert category_icon("transportation") == "Truck"
        assert category_icon("nope") == "MoreHorizontal"

    def test_is_known_category(self):
        assert is_known_category("health-wellness")
        assert not is_known_category("")
        assert not is_known_category(None)

    def test_reverse_icon_lookup(self):
        assert category_for_icon("Film").id == "recreation-entertainment"
        assert category_for_icon("ArrowUpRight") is None
        assert category_for_icon(None) is None

    def test_catalog_is_read_only(self):
        with pytest.raises(TypeError):
            CATEGORIES["new"] = get_category("food-dining")


class TestTransactionModels:
    """Tests for transaction models."""

    def test_naive_timestamp_is_treated_as_utc(self):
        tx = Transaction(id="1", amount=Decimal("-5"), timestamp=datetime(2024, 1, 1, 9, 30))
        assert tx.timestamp.tzinfo == timezone.utc

    def test_transaction_is_frozen(self):
        tx = Transaction(id="1", amount=Decimal("-5"))
        with pytest.raises(ValidationError):
            tx.amount = Decimal("5")

    def test_rejects_non_finite_amount(self):
        with pytest.raises(ValueError):
            Transaction(id="1", amount=Decimal("NaN"))

    def test_undated_sorts_as_epoch(self):
        tx = Transaction(id="1", amount=Decimal("1"))
        assert tx.sort_key == EPOCH
        assert tx.is_income
        assert not tx.is_expense

    def test_defaults(self):
        tx = Transaction(id="1", amount=Decimal("-1"))
        assert tx.label == "Transaction"
        assert tx.icon == "ShoppingBag"
        assert tx.confirmation == ConfirmationStatus.CONFIRMED

    def test_manual_record_coerces_numeric_id(self):
        record = ManualExpenseRecord(id=42, amount=Decimal("-3"))
        assert record.id == "42"


class TestReceiptModels:
    """Tests for staged receipt items."""

    def test_pending_item_derives_icon(self):
        item = PendingItem(description="Taxi", price=Decimal("12"), category_id="transportation")
        assert item.icon == "Truck"
        assert item.id.startswith("ocr-")

    def test_pending_item_unknown_category_defaults(self):
        item = PendingItem(description="Thing", price=Decimal("1"), category_id="made-up")
        assert item.category_id == DEFAULT_CATEGORY_ID
        assert item.icon == "MoreHorizontal"

    def test_pending_item_rejects_non_positive_price(self):
        with pytest.raises(ValueError):
            PendingItem(description="Free", price=Decimal("0"))

    def test_from_extracted_keeps_receipt_date(self):
        extracted = ExtractedItem(description="Coffee", price=Decimal("4.5"), category_id="food-dining")
        item = PendingItem.from_extracted(extracted, date(2024, 3, 2))
        assert item.receipt_date == date(2024, 3, 2)
        assert item.icon == "Coffee"


class TestBudgetModels:

    def test_budget_rejects_zero_limit(self):
        with pytest.raises(ValueError):
            Budget(category_id="food-dining", limit=Decimal("0"))


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            description="Loaded page",
        )
        assert event.event_type == AuditEventType.LEDGER_LOADED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_INSERTED,
            description="Transaction saved",
            details={"label": "Cafe", "amount": "-4.50"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_inserted"
        assert log_dict["details"]["label"] == "Cafe"

    def test_builder_transaction_deleted(self):
        correlation_id = uuid4()
        event = AuditEventBuilder.transaction_deleted("42", correlation_id)
        assert event.event_type == AuditEventType.TRANSACTION_DELETED
        assert event.entity_id == "42"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_builder_source_fetch_failed_is_warning(self):
        event = AuditEventBuilder.source_fetch_failed("message", "timeout")
        assert event.severity == AuditSeverity.WARNING
        assert event.entity_id == "message"
        assert event.error_message == "timeout"

    def test_credential_saved_records_owner_only(self):
        event = AuditEventBuilder.credential_saved(owner_id="user-1", stored_remotely=True)
        assert event.entity_id == "user-1"
        assert event.details == {"stored_remotely": True}
