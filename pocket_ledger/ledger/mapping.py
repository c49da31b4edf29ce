"""
Source record mapping.

Every raw record becomes a canonical Transaction here, and only here.

Manual expenses are trusted: label, amount and icon are copied as stored.

Message-derived records are NOT trusted. The upstream parser reads
forwarded payment e-mails and its stored amount sign is unreliable, so
the sign is forced from a best-effort direction classification:
1. the exact transaction type
2. keywords in the type
3. keywords in the message subject
Anything still unclassified is treated as outgoing (an expense).

The rule tables are heuristics. Extend them; do not try to make them
exhaustive.
"""

import re
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from pocket_ledger.models.category import (
    CATEGORIES,
    DEFAULT_ICON,
)
from pocket_ledger.models.transaction import (
    ConfirmationStatus,
    ManualExpenseRecord,
    MessageTransactionRecord,
    Transaction,
    TransactionSource,
)


MESSAGE_ID_PREFIX = "mp_"
FALLBACK_LABEL = "Transaction"


class Direction(str, Enum):
    OUTGOING = "outgoing"
    INCOMING = "incoming"


DIRECTION_ICONS: Mapping[Direction, str] = MappingProxyType({
    Direction.OUTGOING: "ArrowUpRight",
    Direction.INCOMING: "ArrowDownLeft",
})

# Exact transaction types emitted by the message parser
TYPE_DIRECTIONS: Mapping[str, Direction] = MappingProxyType({
    "payment_sent": Direction.OUTGOING,
    "payment": Direction.OUTGOING,
    "purchase": Direction.OUTGOING,
    "transfer_sent": Direction.OUTGOING,
    "transfer_out": Direction.OUTGOING,
    "withdrawal": Direction.OUTGOING,
    "bill_payment": Direction.OUTGOING,
    "subscription": Direction.OUTGOING,
    "debit": Direction.OUTGOING,
    "payment_received": Direction.INCOMING,
    "transfer_received": Direction.INCOMING,
    "transfer_in": Direction.INCOMING,
    "deposit": Direction.INCOMING,
    "refund": Direction.INCOMING,
    "cashback": Direction.INCOMING,
    "salary": Direction.INCOMING,
    "credit": Direction.INCOMING,
})

TYPE_LABELS: Mapping[str, str] = MappingProxyType({
    "payment_sent": "Payment sent",
    "payment_received": "Payment received",
    "transfer_sent": "Transfer sent",
    "transfer_out": "Transfer sent",
    "transfer_received": "Transfer received",
    "transfer_in": "Transfer received",
    "purchase": "Purchase",
    "withdrawal": "Withdrawal",
    "bill_payment": "Bill payment",
    "subscription": "Subscription",
    "deposit": "Deposit",
    "refund": "Refund",
    "cashback": "Cashback",
    "salary": "Salary",
})

# Checked in order: incoming first, "payment received" must not hit "payment"
INCOMING_KEYWORDS = (
    "received", "recibiste", "recibido", "refund", "reembolso", "devolucion",
    "deposit", "credited", "acreditado", "cashback", "salary", "income",
    "transfer in", "ingreso",
)
OUTGOING_KEYWORDS = (
    "sent", "enviaste", "paid", "pagaste", "pago", "payment", "purchase",
    "compra", "withdrawal", "retiro", "debit", "charge", "transfer out",
    "subscription",
)

# Free-text categories from the message parser. Catalog ids resolve
# through the catalog itself.
MESSAGE_CATEGORY_ICONS: Mapping[str, str] = MappingProxyType({
    "food": "Coffee",
    "restaurant": "Coffee",
    "groceries": "Coffee",
    "supermarket": "Coffee",
    "transport": "Truck",
    "transportation": "Truck",
    "fuel": "Truck",
    "utilities": "Zap",
    "bills": "Zap",
    "services": "Zap",
    "shopping": "ShoppingBag",
    "clothing": "ShoppingBag",
    "health": "Heart",
    "pharmacy": "Heart",
    "entertainment": "Film",
    "streaming": "Film",
    "loan": "CreditCard",
    "credit card": "CreditCard",
    "insurance": "CreditCard",
    "savings": "TrendingUp",
    "investment": "TrendingUp",
})

_SUBJECT_PREFIX = re.compile(r"^\s*(?:(?:fwd?|re)\s*:\s*)+", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def normalize_subject(subject: Optional[str]) -> str:
    """Strip Fwd:/Fw:/Re: prefixes and collapse whitespace."""
    stripped = _SUBJECT_PREFIX.sub("", subject or "")
    return _WHITESPACE.sub(" ", stripped).strip()


def _keyword_direction(text: str) -> Optional[Direction]:
    text = text.lower().replace("_", " ")
    if not text:
        return None
    if any(kw in text for kw in INCOMING_KEYWORDS):
        return Direction.INCOMING
    if any(kw in text for kw in OUTGOING_KEYWORDS):
        return Direction.OUTGOING
    return None


def classify_direction(record: MessageTransactionRecord) -> Direction:
    kind = _clean(record.type).lower()
    if kind in TYPE_DIRECTIONS:
        return TYPE_DIRECTIONS[kind]
    return (
        _keyword_direction(kind)
        or _keyword_direction(_clean(record.subject))
        or Direction.OUTGOING
    )


def category_label(category: Optional[str]) -> str:
    category = _clean(category)
    if category in CATEGORIES:
        return CATEGORIES[category].label
    return category


def type_label(kind: Optional[str]) -> str:
    kind = _clean(kind)
    if not kind:
        return ""
    return TYPE_LABELS.get(kind.lower(), kind.replace("_", " ").capitalize())


def message_label(record: MessageTransactionRecord) -> str:
    return (
        _clean(record.description)
        or category_label(record.category)
        or type_label(record.type)
        or normalize_subject(record.subject)
        or FALLBACK_LABEL
    )


def message_icon(record: MessageTransactionRecord, direction: Direction) -> str:
    category = _clean(record.category)
    if category in CATEGORIES:
        return CATEGORIES[category].icon
    icon = MESSAGE_CATEGORY_ICONS.get(category.lower())
    if icon:
        return icon
    return DIRECTION_ICONS[direction]


def message_transaction_id(raw_id: str) -> str:
    """
    Ledger id for a message-derived record.

    A raw id that already starts with mp_ is kept as is, so raw ids "1"
    and "mp_1" both become "mp_1". The merge keeps whichever arrives
    first and drops the other as a duplicate.
    """
    raw_id = str(raw_id)
    if raw_id.startswith(MESSAGE_ID_PREFIX):
        return raw_id
    return f"{MESSAGE_ID_PREFIX}{raw_id}"


def map_manual_record(record: ManualExpenseRecord) -> Transaction:
    return Transaction(
        id=record.id,
        source=TransactionSource.MANUAL,
        icon=_clean(record.icon) or DEFAULT_ICON,
        label=_clean(record.label) or FALLBACK_LABEL,
        amount=record.amount,
        timestamp=record.transaction_at,
        confirmation=ConfirmationStatus.CONFIRMED,
    )


def map_message_record(record: MessageTransactionRecord) -> Transaction:
    """Map a message-derived record; the stored amount sign is ignored."""
    direction = classify_direction(record)
    magnitude = abs(record.amount)
    amount = -magnitude if direction == Direction.OUTGOING else magnitude

    return Transaction(
        id=message_transaction_id(record.id),
        source=TransactionSource.MESSAGE,
        icon=message_icon(record, direction),
        label=message_label(record),
        amount=amount,
        timestamp=record.transaction_at,
        confirmation=ConfirmationStatus.CONFIRMED,
    )
