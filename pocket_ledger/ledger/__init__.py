"""Ledger: source mapping, in-memory store, page loader and service."""

from pocket_ledger.ledger.loader import LedgerLoader
from pocket_ledger.ledger.mapping import map_manual_record, map_message_record
from pocket_ledger.ledger.service import LedgerService, LedgerValidationError
from pocket_ledger.ledger.store import Ledger

__all__ = [
    "Ledger",
    "LedgerLoader",
    "LedgerService",
    "LedgerValidationError",
    "map_manual_record",
    "map_message_record",
]
