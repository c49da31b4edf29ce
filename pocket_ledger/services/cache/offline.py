"""
Offline Cache

DESIGN DECISION: The whole ledger is written on every mutation.
- No partial writes and no merge with what was cached before
- Reads tolerate anything: corrupt data is treated as absent
- Writes are fire-and-forget: a failed write is logged, never raised

Two sessions writing the same key can race and drop data. That is
accepted; the remote store is the source of truth.
"""

import json
from typing import Iterable, Optional

from pydantic import TypeAdapter, ValidationError

from pocket_ledger.audit import AuditLogger
from pocket_ledger.models.audit import AuditEventBuilder
from pocket_ledger.models.transaction import Transaction
from pocket_ledger.services.cache.store import KeyValueStore


_SNAPSHOT = TypeAdapter(list[Transaction])


class OfflineCache:
    """Ledger snapshot and OCR credential cache on top of a KeyValueStore."""

    def __init__(
        self,
        store: KeyValueStore,
        audit_logger: AuditLogger,
        ledger_key: str = "pf_transactions_v1",
        credential_key: str = "pf_gemini_api_key",
    ):
        self._store = store
        self._audit = audit_logger
        self.ledger_key = ledger_key
        self.credential_key = credential_key

    def load_snapshot(self) -> Optional[list[Transaction]]:
        """
        Read the cached ledger.

        Returns:
            The cached transactions, or None when nothing usable is stored
        """
        try:
            raw = self._store.get(self.ledger_key)
        except OSError as e:
            self._audit.log(AuditEventBuilder.cache_discarded(self.ledger_key, str(e)))
            return None
        if raw is None:
            return None

        try:
            return _SNAPSHOT.validate_json(raw)
        except ValidationError as e:
            self._audit.log(AuditEventBuilder.cache_discarded(
                self.ledger_key,
                f"invalid snapshot: {e.error_count()} errors",
            ))
            return None

    def save_snapshot(self, transactions: Iterable[Transaction]) -> None:
        """Overwrite the cached ledger with the full list."""
        try:
            payload = _SNAPSHOT.dump_json(list(transactions)).decode("utf-8")
            self._store.set(self.ledger_key, payload)
        except (OSError, ValueError) as e:
            self._audit.log(AuditEventBuilder.cache_write_failed(self.ledger_key, str(e)))

    def get_credential(self) -> Optional[str]:
        try:
            raw = self._store.get(self.credential_key)
        except OSError:
            return None
        if not raw:
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            return None
        return value if isinstance(value, str) and value else None

    def set_credential(self, value: str) -> None:
        try:
            self._store.set(self.credential_key, json.dumps(value))
        except OSError as e:
            self._audit.log(AuditEventBuilder.cache_write_failed(self.credential_key, str(e)))

    def remove_credential(self) -> None:
        try:
            self._store.remove(self.credential_key)
        except OSError as e:
            self._audit.log(AuditEventBuilder.cache_write_failed(self.credential_key, str(e)))
