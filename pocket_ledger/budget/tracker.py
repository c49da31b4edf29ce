"""
Budget Tracker

Monthly spending limits per category.

Budgets live under their own key in the local store, apart from the
ledger snapshot, so ledger reloads and cache rehydration never touch
them.

Spend is matched by icon: a transaction counts toward a category's
budget when it carries that category's icon.
"""

import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional, Union

from pydantic import TypeAdapter, ValidationError

from pocket_ledger.analytics.engine import current_month_bounds
from pocket_ledger.audit import AuditLogger
from pocket_ledger.models.audit import AuditEventBuilder
from pocket_ledger.models.budget import Budget, BudgetProgress
from pocket_ledger.models.category import all_categories, category_icon, is_known_category
from pocket_ledger.models.transaction import Transaction
from pocket_ledger.services.cache import KeyValueStore


_BUDGETS = TypeAdapter(list[Budget])


class InvalidBudgetError(ValueError):
    """Budget rejected before any mutation."""
    pass


def _validate_limit(limit: Union[Decimal, float, int, str]) -> Decimal:
    if isinstance(limit, bool):
        raise InvalidBudgetError("Budget limit must be a number")
    if isinstance(limit, float) and not math.isfinite(limit):
        raise InvalidBudgetError("Budget limit must be finite")
    try:
        value = Decimal(str(limit).strip())
    except (InvalidOperation, ValueError):
        raise InvalidBudgetError(f"Budget limit must be a number, got {limit!r}")
    if not value.is_finite():
        raise InvalidBudgetError("Budget limit must be finite")
    if value <= 0:
        raise InvalidBudgetError("Budget limit must be greater than zero")
    return value


class BudgetTracker:
    """At most one budget per category; setting again overwrites."""

    def __init__(
        self,
        store: KeyValueStore,
        audit_logger: AuditLogger,
        key: str = "pf_budgets_v1",
    ):
        self._store = store
        self._audit = audit_logger
        self._key = key
        self._budgets: dict[str, Budget] = self._load()

    def _load(self) -> dict[str, Budget]:
        try:
            raw = self._store.get(self._key)
        except OSError as e:
            self._audit.log(AuditEventBuilder.cache_discarded(self._key, str(e)))
            return {}
        if raw is None:
            return {}
        try:
            budgets = _BUDGETS.validate_json(raw)
        except ValidationError as e:
            self._audit.log(AuditEventBuilder.cache_discarded(
                self._key,
                f"invalid budgets: {e.error_count()} errors",
            ))
            return {}
        return {b.category_id: b for b in budgets if is_known_category(b.category_id)}

    def _save(self) -> None:
        try:
            self._store.set(self._key, _BUDGETS.dump_json(self.list_budgets()).decode("utf-8"))
        except OSError as e:
            self._audit.log(AuditEventBuilder.cache_write_failed(self._key, str(e)))

    def set_budget(
        self,
        category_id: str,
        limit: Union[Decimal, float, int, str],
    ) -> Budget:
        """
        Create or replace the budget for a category.

        Raises:
            InvalidBudgetError: Unknown category, or limit not positive and finite
        """
        if not is_known_category(category_id):
            raise InvalidBudgetError(f"Unknown category: {category_id}")
        budget = Budget(category_id=category_id, limit=_validate_limit(limit))

        self._budgets[category_id] = budget
        self._save()
        self._audit.log(AuditEventBuilder.budget_set(category_id, str(budget.limit)))
        return budget

    def remove_budget(self, category_id: str) -> bool:
        if self._budgets.pop(category_id, None) is None:
            return False
        self._save()
        self._audit.log(AuditEventBuilder.budget_removed(category_id))
        return True

    def get_budget(self, category_id: str) -> Optional[Budget]:
        return self._budgets.get(category_id)

    def list_budgets(self) -> list[Budget]:
        """Budgets in catalog order."""
        return [
            self._budgets[c.id] for c in all_categories() if c.id in self._budgets
        ]

    def spend_for(
        self,
        transactions: Iterable[Transaction],
        icon: str,
        now: Optional[datetime] = None,
    ) -> Decimal:
        """Absolute current-month expenses carrying this icon."""
        start, end = current_month_bounds(now)
        return sum(
            (
                abs(t.amount) for t in transactions
                if t.is_expense
                and t.icon == icon
                and t.timestamp is not None
                and start <= t.timestamp <= end
            ),
            Decimal("0"),
        )

    def progress(
        self,
        transactions: Iterable[Transaction],
        category_id: str,
        now: Optional[datetime] = None,
    ) -> Optional[BudgetProgress]:
        """Progress against a category's budget, None when it has none."""
        budget = self._budgets.get(category_id)
        if budget is None:
            return None

        icon = category_icon(category_id)
        spent = self.spend_for(transactions, icon, now)
        ratio = (spent / budget.limit * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)

        return BudgetProgress(
            category_id=category_id,
            icon=icon,
            limit=budget.limit,
            spent=spent,
            percentage=min(int(ratio), 100),
            over_budget=spent > budget.limit,
            over_by=max(spent - budget.limit, Decimal("0")),
            remaining=max(budget.limit - spent, Decimal("0")),
        )

    def all_progress(
        self,
        transactions: Iterable[Transaction],
        now: Optional[datetime] = None,
    ) -> list[BudgetProgress]:
        transactions = list(transactions)
        return [
            self.progress(transactions, b.category_id, now)
            for b in self.list_budgets()
        ]
