"""
In-memory ledger.

Invariants held after every mutation:
- ids are unique
- order is newest first; undated transactions sort as the oldest
- equal timestamps keep their previous relative order
"""

from typing import Iterable, Iterator, Optional

from pocket_ledger.models.transaction import ConfirmationStatus, Transaction


def _ordered(transactions: list[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda t: t.sort_key, reverse=True)


class Ledger:
    """Deduplicated, time-ordered collection of Transactions."""

    def __init__(self, transactions: Optional[Iterable[Transaction]] = None):
        self._items: list[Transaction] = []
        if transactions:
            self.replace_all(transactions)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self.snapshot())

    def __contains__(self, transaction_id: object) -> bool:
        return any(t.id == transaction_id for t in self._items)

    def snapshot(self) -> tuple[Transaction, ...]:
        """Immutable view for analytics and the cache."""
        return tuple(self._items)

    def get(self, transaction_id: str) -> Optional[Transaction]:
        for t in self._items:
            if t.id == transaction_id:
                return t
        return None

    def _unique(self, incoming: Iterable[Transaction], known: set[str]) -> list[Transaction]:
        fresh = []
        for t in incoming:
            if t.id in known:
                continue
            known.add(t.id)
            fresh.append(t)
        return fresh

    def replace_all(self, transactions: Iterable[Transaction]) -> None:
        self._items = _ordered(self._unique(transactions, set()))

    def merge(self, incoming: Iterable[Transaction]) -> int:
        """
        Add records whose ids are not already present.

        Returns:
            Number of records added
        """
        fresh = self._unique(incoming, {t.id for t in self._items})
        if fresh:
            self._items = _ordered(self._items + fresh)
        return len(fresh)

    def replace_confirmed(self, incoming: Iterable[Transaction]) -> int:
        """
        Reset load: drop confirmed records, keep local pending ones, merge.

        Returns:
            Number of records taken from incoming
        """
        pending = [
            t for t in self._items
            if t.confirmation == ConfirmationStatus.PENDING_CONFIRMATION
        ]
        fresh = self._unique(incoming, {t.id for t in pending})
        self._items = _ordered(pending + fresh)
        return len(fresh)

    def insert(self, transactions: Iterable[Transaction]) -> list[Transaction]:
        """New records go ahead of existing ones with the same timestamp."""
        fresh = self._unique(transactions, {t.id for t in self._items})
        if fresh:
            self._items = _ordered(fresh + self._items)
        return fresh

    def remove(self, transaction_id: str) -> Optional[Transaction]:
        for idx, t in enumerate(self._items):
            if t.id == transaction_id:
                return self._items.pop(idx)
        return None
