"""
Multi-source page loader.

Both remote collections are paged with the same (offset, count), and
the offset is the combined ledger length. When one source returned a
shorter page than the other, the next offset runs past its unread
records, so the source with the fuller history skips some of them.
Later pages never go back for them.

Failure policy:
- one source fails: log it, merge what the other returned
- both fail: ledger untouched, LoadResult(success=False), nothing raised
"""

import asyncio
from typing import Callable, Optional, Sequence

from pydantic import ValidationError

from pocket_ledger.audit import AuditLogger, create_correlation_id
from pocket_ledger.ledger.mapping import map_manual_record, map_message_record
from pocket_ledger.ledger.store import Ledger
from pocket_ledger.models.audit import AuditEventBuilder
from pocket_ledger.models.transaction import LoadResult, Transaction
from pocket_ledger.services.cache import OfflineCache
from pocket_ledger.services.storage import LedgerStoreInterface


NOT_CONFIGURED = "remote store not configured"


class LedgerLoader:
    """Fetches, maps and merges one page from each source."""

    def __init__(
        self,
        ledger: Ledger,
        cache: OfflineCache,
        audit_logger: AuditLogger,
        store: Optional[LedgerStoreInterface] = None,
        page_size: int = 25,
    ):
        self._ledger = ledger
        self._cache = cache
        self._audit = audit_logger
        self._store = store
        self.page_size = page_size
        self.has_more = False
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def _map_page(
        self,
        source: str,
        records: Sequence,
        mapper: Callable[..., Transaction],
        errors: list[str],
        correlation_id,
    ) -> list[Transaction]:
        mapped = []
        for record in records:
            try:
                mapped.append(mapper(record))
            except ValidationError as e:
                message = f"{source}: skipped record {getattr(record, 'id', '?')}: {e.error_count()} errors"
                errors.append(message)
                self._audit.log(AuditEventBuilder.source_fetch_failed(source, message, correlation_id))
        return mapped

    async def load_page(self, owner_id: str, reset: bool = False) -> LoadResult:
        """
        Load the next page (or the first, when reset) from both sources.

        A call made while another is in flight returns skipped=True and
        fetches nothing.
        """
        if self._store is None:
            return LoadResult(success=False, errors=[NOT_CONFIGURED])
        if self._in_flight:
            return LoadResult(success=True, skipped=True, has_more=self.has_more)

        self._in_flight = True
        correlation_id = create_correlation_id()
        try:
            offset = 0 if reset else len(self._ledger)
            count = self.page_size

            results = await asyncio.gather(
                self._store.fetch_manual_page(owner_id, offset, count),
                self._store.fetch_message_page(owner_id, offset, count),
                return_exceptions=True,
            )

            errors: list[str] = []
            fresh: list[Transaction] = []
            full_page = False
            failures = 0

            sources = (
                ("manual", map_manual_record),
                ("message", map_message_record),
            )
            for (source, mapper), result in zip(sources, results):
                if isinstance(result, Exception):
                    failures += 1
                    errors.append(f"{source}: {result}")
                    self._audit.log(AuditEventBuilder.source_fetch_failed(
                        source=source,
                        error_message=str(result),
                        correlation_id=correlation_id,
                    ))
                    continue
                if isinstance(result, BaseException):
                    raise result
                full_page = full_page or len(result) >= count
                fresh.extend(self._map_page(source, result, mapper, errors, correlation_id))

            if failures == len(sources):
                self._audit.log(AuditEventBuilder.load_failed(errors, correlation_id))
                return LoadResult(success=False, has_more=self.has_more, errors=errors)

            if reset:
                added = self._ledger.replace_confirmed(fresh)
            else:
                added = self._ledger.merge(fresh)
            self.has_more = full_page
            self._cache.save_snapshot(self._ledger.snapshot())

            self._audit.log(AuditEventBuilder.ledger_loaded(
                added=added,
                has_more=self.has_more,
                reset=reset,
                correlation_id=correlation_id,
            ))
            return LoadResult(success=True, added=added, has_more=self.has_more, errors=errors)
        finally:
            self._in_flight = False
