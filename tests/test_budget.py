"""Tests for the budget tracker."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from pocket_ledger.budget import BudgetTracker, InvalidBudgetError


NOW = datetime(2024, 5, 15, 10, tzinfo=timezone.utc)


@pytest.fixture
def tracker(kv_store, audit_logger):
    return BudgetTracker(kv_store, audit_logger)


class TestBudgetCrud:

    def test_set_and_replace(self, tracker):
        tracker.set_budget("food-dining", 100)
        tracker.set_budget("food-dining", "250.50")
        assert tracker.get_budget("food-dining").limit == Decimal("250.50")
        assert len(tracker.list_budgets()) == 1

    @pytest.mark.parametrize("limit", [0, -5, float("nan"), float("inf"), "abc", True])
    def test_invalid_limit_rejected_before_mutation(self, tracker, kv_store, limit):
        with pytest.raises(InvalidBudgetError):
            tracker.set_budget("food-dining", limit)
        assert tracker.get_budget("food-dining") is None
        assert kv_store.writes == 0

    def test_unknown_category_rejected(self, tracker):
        with pytest.raises(InvalidBudgetError):
            tracker.set_budget("space-travel", 10)

    def test_remove_is_noop_when_absent(self, tracker, kv_store):
        assert tracker.remove_budget("food-dining") is False
        assert kv_store.writes == 0
        tracker.set_budget("food-dining", 10)
        assert tracker.remove_budget("food-dining") is True
        assert tracker.get_budget("food-dining") is None

    def test_budgets_persist_apart_from_ledger_cache(self, kv_store, audit_logger, cache, make_tx):
        BudgetTracker(kv_store, audit_logger).set_budget("transportation", 60)
        cache.save_snapshot([make_tx("1", -1)])

        reopened = BudgetTracker(kv_store, audit_logger)
        assert reopened.get_budget("transportation").limit == Decimal("60")

    def test_corrupt_budgets_are_ignored(self, kv_store, audit_logger):
        kv_store.data["pf_budgets_v1"] = "nonsense"
        assert BudgetTracker(kv_store, audit_logger).list_budgets() == []

    def test_list_in_catalog_order(self, tracker):
        tracker.set_budget("miscellaneous-other", 5)
        tracker.set_budget("utilities-bills", 5)
        tracker.set_budget("food-dining", 5)
        assert [b.category_id for b in tracker.list_budgets()] == [
            "utilities-bills", "food-dining", "miscellaneous-other",
        ]


class TestBudgetProgress:

    def test_over_budget_clamps_percentage(self, tracker, make_tx):
        tracker.set_budget("food-dining", 100)
        txs = [make_tx("1", -150, datetime(2024, 5, 3, tzinfo=timezone.utc), icon="Coffee")]

        progress = tracker.progress(txs, "food-dining", NOW)

        assert progress.percentage == 100
        assert progress.over_budget is True
        assert progress.over_by == Decimal("50")
        assert progress.remaining == 0

    def test_exactly_at_limit_is_not_over(self, tracker, make_tx):
        tracker.set_budget("food-dining", 100)
        txs = [make_tx("1", -100, datetime(2024, 5, 3, tzinfo=timezone.utc), icon="Coffee")]

        progress = tracker.progress(txs, "food-dining", NOW)

        assert progress.percentage == 100
        assert progress.over_budget is False
        assert progress.over_by == 0

    def test_just_over_rounds_to_100_but_flags(self, tracker, make_tx):
        tracker.set_budget("food-dining", 1000)
        txs = [make_tx("1", "-1000.01", datetime(2024, 5, 3, tzinfo=timezone.utc), icon="Coffee")]
        progress = tracker.progress(txs, "food-dining", NOW)
        assert progress.percentage == 100
        assert progress.over_budget is True

    def test_spend_counts_current_month_expenses_with_icon(self, tracker, make_tx):
        txs = [
            make_tx("1", -20, datetime(2024, 5, 1, tzinfo=timezone.utc), icon="Truck"),
            make_tx("2", -30, datetime(2024, 5, 2, tzinfo=timezone.utc), icon="Truck"),
            make_tx("3", -70, datetime(2024, 4, 30, tzinfo=timezone.utc), icon="Truck"),
            make_tx("4", 90, datetime(2024, 5, 2, tzinfo=timezone.utc), icon="Truck"),
            make_tx("5", -5, datetime(2024, 5, 2, tzinfo=timezone.utc), icon="Coffee"),
            make_tx("6", -5, None, icon="Truck"),
        ]
        assert tracker.spend_for(txs, "Truck", NOW) == Decimal("50")

    def test_partial_progress(self, tracker, make_tx):
        tracker.set_budget("transportation", 200)
        txs = [make_tx("1", -50, datetime(2024, 5, 1, tzinfo=timezone.utc), icon="Truck")]
        progress = tracker.progress(txs, "transportation", NOW)
        assert progress.percentage == 25
        assert progress.remaining == Decimal("150")

    def test_no_budget_gives_none(self, tracker):
        assert tracker.progress([], "food-dining", NOW) is None

    def test_all_progress(self, tracker):
        tracker.set_budget("health-wellness", 10)
        tracker.set_budget("utilities-bills", 10)
        progress = tracker.all_progress([], NOW)
        assert [p.category_id for p in progress] == ["utilities-bills", "health-wellness"]
        assert all(p.percentage == 0 for p in progress)
