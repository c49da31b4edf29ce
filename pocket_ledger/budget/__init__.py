"""Per-category monthly budgets."""

from pocket_ledger.budget.tracker import BudgetTracker, InvalidBudgetError

__all__ = ["BudgetTracker", "InvalidBudgetError"]
