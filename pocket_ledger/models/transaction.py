"""
Transaction Models

The canonical Transaction is the single record shape every source maps into.
Raw records are the shapes the remote store hands back for each source.

DESIGN DECISION: Transactions are frozen. The amount sign is decided once,
when a raw record is mapped, and is never re-derived afterwards.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pocket_ledger.models.category import DEFAULT_ICON


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class TransactionSource(str, Enum):
    """Origin system of a transaction."""
    MANUAL = "manual"
    MESSAGE = "message"


class ConfirmationStatus(str, Enum):
    """
    Whether the remote store has acknowledged a record.

    Records created by the local fallback (remote insert failed) are
    PENDING_CONFIRMATION. Nothing retries them yet; the tag exists so a
    reconciliation pass can find them.
    """
    CONFIRMED = "confirmed"
    PENDING_CONFIRMATION = "pending_confirmation"


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Transaction(BaseModel):
    """A canonical ledger entry."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    source: TransactionSource = TransactionSource.MANUAL
    icon: str = Field(default=DEFAULT_ICON)
    label: str = Field(default="Transaction")
    amount: Decimal = Field(
        ...,
        allow_inf_nan=False,
        description="Negative = expense, positive = income"
    )
    timestamp: Optional[datetime] = Field(
        default=None,
        description="None means undated"
    )
    confirmation: ConfirmationStatus = ConfirmationStatus.CONFIRMED

    @field_validator("timestamp")
    @classmethod
    def ensure_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Naive timestamps are stored as UTC."""
        return _as_aware(v)

    @property
    def is_expense(self) -> bool:
        return self.amount < 0

    @property
    def is_income(self) -> bool:
        return self.amount > 0

    @property
    def sort_key(self) -> datetime:
        """Undated transactions sort as the oldest possible entry."""
        return self.timestamp or EPOCH


# =============================================================================
# RAW SOURCE RECORDS
# =============================================================================

class ManualExpenseRecord(BaseModel):
    """A row of the manual expenses collection."""

    id: str
    label: Optional[str] = None
    amount: Decimal = Field(..., allow_inf_nan=False)
    icon: Optional[str] = None
    category_id: Optional[str] = None
    transaction_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v) -> str:
        return str(v)

    @field_validator("transaction_at")
    @classmethod
    def ensure_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_aware(v)


class MessageTransactionRecord(BaseModel):
    """
    A row of the message-derived collection.

    Built by an upstream parser from forwarded e-mails. The stored amount
    sign is NOT trusted; see pocket_ledger.ledger.mapping.
    """

    id: str
    description: Optional[str] = None
    category: Optional[str] = None
    type: Optional[str] = None
    subject: Optional[str] = None
    amount: Decimal = Field(default=Decimal("0"), allow_inf_nan=False)
    transaction_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v) -> str:
        return str(v)

    @field_validator("transaction_at")
    @classmethod
    def ensure_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_aware(v)


class ExpenseDraft(BaseModel):
    """An expense about to be inserted (manual entry or receipt commit)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    label: str = Field(default="Transaction", min_length=1)
    amount: Decimal = Field(..., allow_inf_nan=False)
    icon: str = Field(default=DEFAULT_ICON)
    category_id: Optional[str] = None
    transaction_at: Optional[datetime] = None

    @field_validator("transaction_at")
    @classmethod
    def ensure_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_aware(v)


# =============================================================================
# LOAD RESULTS
# =============================================================================

class LoadResult(BaseModel):
    """Outcome of one page load. Failures are reported, never raised."""

    success: bool
    skipped: bool = Field(
        default=False,
        description="True when another load was already in flight"
    )
    added: int = Field(default=0, ge=0)
    has_more: bool = False
    errors: list[str] = Field(default_factory=list)
