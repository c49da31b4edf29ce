"""
Ledger Service

The single entry point for reading and mutating the ledger.

DESIGN DECISION: Local state wins.
- Inserts try the remote store; on failure the same records are kept
  locally, tagged PENDING_CONFIRMATION, so user input is never lost
- Deletes happen locally first; the remote delete is best effort and a
  failure is logged, not rolled back
- Every mutation rewrites the full offline snapshot

Nothing here retries pending records against the remote store yet.
"""

import math
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional, Union
from uuid import uuid4

from pocket_ledger.audit import AuditLogger, create_correlation_id
from pocket_ledger.ledger.loader import NOT_CONFIGURED, LedgerLoader
from pocket_ledger.ledger.mapping import FALLBACK_LABEL, map_manual_record
from pocket_ledger.ledger.store import Ledger
from pocket_ledger.models.audit import AuditEventBuilder
from pocket_ledger.models.category import DEFAULT_ICON, category_icon, is_known_category
from pocket_ledger.models.transaction import (
    ConfirmationStatus,
    ExpenseDraft,
    LoadResult,
    Transaction,
    TransactionSource,
)
from pocket_ledger.services.cache import OfflineCache
from pocket_ledger.services.storage import LedgerStoreInterface, StorageError


LOCAL_ID_PREFIX = "local-"


class LedgerValidationError(ValueError):
    """Input rejected before any mutation."""
    pass


def _finite_decimal(amount: Union[Decimal, float, int, str]) -> Decimal:
    if isinstance(amount, bool):
        raise LedgerValidationError("Amount must be a number")
    if isinstance(amount, float) and not math.isfinite(amount):
        raise LedgerValidationError("Amount must be a finite number")
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise LedgerValidationError(f"Amount must be a number, got {amount!r}")
    if not value.is_finite():
        raise LedgerValidationError("Amount must be a finite number")
    return value


def _local_transaction(draft: ExpenseDraft) -> Transaction:
    return Transaction(
        id=f"{LOCAL_ID_PREFIX}{uuid4().hex}",
        source=TransactionSource.MANUAL,
        icon=draft.icon,
        label=draft.label,
        amount=draft.amount,
        timestamp=draft.transaction_at or datetime.now(timezone.utc),
        confirmation=ConfirmationStatus.PENDING_CONFIRMATION,
    )


class LedgerService:
    """
    Owns the ledger for one user.

    Usage:
        service.hydrate_from_cache()          # sync, before any network call
        await service.load_page(reset=True)
        await service.add_manual_expense("Lunch", 12.5, "food-dining")
    """

    def __init__(
        self,
        owner_id: str,
        ledger: Ledger,
        loader: LedgerLoader,
        cache: OfflineCache,
        audit_logger: AuditLogger,
        store: Optional[LedgerStoreInterface] = None,
    ):
        self.owner_id = owner_id
        self._ledger = ledger
        self._loader = loader
        self._cache = cache
        self._audit = audit_logger
        self._store = store

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self._ledger.snapshot()

    @property
    def has_more(self) -> bool:
        return self._loader.has_more

    @property
    def loading(self) -> bool:
        return self._loader.in_flight

    # =========================================================================
    # LOADING
    # =========================================================================

    def hydrate_from_cache(self) -> int:
        """Replace the ledger with the cached snapshot, if one is usable."""
        cached = self._cache.load_snapshot()
        if cached is None:
            return 0
        self._ledger.replace_all(cached)
        self._audit.log(AuditEventBuilder.ledger_hydrated(len(self._ledger)))
        return len(self._ledger)

    async def load_page(self, reset: bool = False) -> LoadResult:
        return await self._loader.load_page(self.owner_id, reset=reset)

    async def load_more(self) -> LoadResult:
        if not self._loader.has_more:
            return LoadResult(success=True, has_more=False)
        return await self._loader.load_page(self.owner_id, reset=False)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def _commit_local(self, transactions: list[Transaction], correlation_id) -> list[Transaction]:
        added = self._ledger.insert(transactions)
        self._cache.save_snapshot(self._ledger.snapshot())
        for t in added:
            self._audit.log(AuditEventBuilder.transaction_inserted(
                transaction_id=t.id,
                label=t.label,
                amount=str(t.amount),
                correlation_id=correlation_id,
            ))
        return added

    async def insert_many(self, drafts: list[ExpenseDraft]) -> list[Transaction]:
        """
        Insert drafts remotely in one batch, falling back to local records.

        Returns:
            The inserted transactions; check .confirmation to see which path ran
        """
        if not drafts:
            return []
        correlation_id = create_correlation_id()

        error_message = NOT_CONFIGURED
        if self._store is not None:
            try:
                records = await self._store.insert_expenses(self.owner_id, drafts)
            except StorageError as e:
                error_message = str(e)
            else:
                return self._commit_local(
                    [map_manual_record(r) for r in records],
                    correlation_id,
                )

        self._audit.log(AuditEventBuilder.local_fallback_used(
            count=len(drafts),
            error_message=error_message,
            correlation_id=correlation_id,
        ))
        return self._commit_local([_local_transaction(d) for d in drafts], correlation_id)

    async def add_manual_expense(
        self,
        label: Optional[str],
        amount: Union[Decimal, float, int, str],
        category_id: Optional[str] = None,
        when: Optional[datetime] = None,
    ) -> Transaction:
        """
        Record a manual expense. The amount is always stored negative.

        Raises:
            LedgerValidationError: If amount is not a finite number
        """
        value = _finite_decimal(amount)
        known = is_known_category(category_id)
        draft = ExpenseDraft(
            label=(label or "").strip() or FALLBACK_LABEL,
            amount=-abs(value),
            # Uncategorized manual entries carry the default icon, not the catch-all category's
            icon=category_icon(category_id) if known else DEFAULT_ICON,
            category_id=category_id if known else None,
            transaction_at=when,
        )
        correlation_id = create_correlation_id()

        error_message = NOT_CONFIGURED
        if self._store is not None:
            try:
                record = await self._store.insert_expense(self.owner_id, draft)
            except StorageError as e:
                error_message = str(e)
            else:
                return self._commit_local([map_manual_record(record)], correlation_id)[0]

        self._audit.log(AuditEventBuilder.local_fallback_used(
            count=1,
            error_message=error_message,
            correlation_id=correlation_id,
        ))
        return self._commit_local([_local_transaction(draft)], correlation_id)[0]

    async def delete(self, transaction_id: str) -> bool:
        """
        Remove a transaction locally, then best-effort remotely.

        Message-derived and local-only records never touch the remote store.

        Returns:
            False when the id is not in the ledger
        """
        removed = self._ledger.remove(transaction_id)
        if removed is None:
            return False

        correlation_id = create_correlation_id()
        self._cache.save_snapshot(self._ledger.snapshot())
        self._audit.log(AuditEventBuilder.transaction_deleted(transaction_id, correlation_id))

        remote = (
            self._store is not None
            and removed.source == TransactionSource.MANUAL
            and removed.confirmation == ConfirmationStatus.CONFIRMED
        )
        if remote:
            try:
                await self._store.delete_expense(self.owner_id, transaction_id)
            except StorageError as e:
                self._audit.log(AuditEventBuilder.remote_delete_failed(
                    transaction_id=transaction_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                ))
        return True
