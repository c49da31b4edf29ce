"""
Receipt Models

CRITICAL: Extracted items are PROPOSED data, NOT ledger entries.
They are staged as PendingItems, the user reviews and edits them,
and only an explicit commit turns them into transactions.

The review workflow is a single tagged state (ReceiptState) instead of
a handful of independent flags.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pocket_ledger.models.category import (
    DEFAULT_CATEGORY_ID,
    category_icon,
    is_known_category,
)


class ReceiptImage(BaseModel):
    """A normalized image ready to be sent to the OCR provider."""

    mime_type: str = Field(default="image/jpeg")
    data: bytes = Field(..., min_length=1)
    width: int = Field(ge=1)
    height: int = Field(ge=1)


class ExtractedItem(BaseModel):
    """One line item as read from the provider response."""

    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(default="Item")
    price: Decimal = Field(..., gt=0, allow_inf_nan=False)
    category_id: str = Field(default=DEFAULT_CATEGORY_ID)


class ReceiptExtraction(BaseModel):
    """Parsed provider response: {date, items}."""

    receipt_date: Optional[date] = None
    items: list[ExtractedItem] = Field(default_factory=list)


class PendingItem(BaseModel):
    """
    An editable staged item.

    The icon is always derived from the category; changing the category
    re-derives it (see model validator).
    """

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    id: str = Field(default_factory=lambda: f"ocr-{uuid4().hex[:12]}")
    description: str = Field(default="Item", min_length=1, max_length=200)
    price: Decimal = Field(..., gt=0, allow_inf_nan=False)
    category_id: str = Field(default=DEFAULT_CATEGORY_ID)
    icon: str = Field(default="")
    receipt_date: Optional[date] = None

    @model_validator(mode="after")
    def derive_icon(self) -> "PendingItem":
        if not is_known_category(self.category_id):
            object.__setattr__(self, "category_id", DEFAULT_CATEGORY_ID)
        object.__setattr__(self, "icon", category_icon(self.category_id))
        return self

    @classmethod
    def from_extracted(
        cls,
        item: ExtractedItem,
        receipt_date: Optional[date],
    ) -> "PendingItem":
        return cls(
            description=item.description or "Item",
            price=item.price,
            category_id=item.category_id,
            receipt_date=receipt_date,
        )


# =============================================================================
# PIPELINE STATES
# =============================================================================

class ReceiptStage(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    EXTRACTING = "extracting"
    REVIEWING = "reviewing"
    COMMITTING = "committing"


class Idle(BaseModel):
    stage: ReceiptStage = ReceiptStage.IDLE


class Capturing(BaseModel):
    stage: ReceiptStage = ReceiptStage.CAPTURING


class Extracting(BaseModel):
    stage: ReceiptStage = ReceiptStage.EXTRACTING
    image: ReceiptImage


class Reviewing(BaseModel):
    """
    Staged items under review.

    error is set (and items empty) when extraction produced nothing usable.
    The user may select another image to retry.
    """
    stage: ReceiptStage = ReceiptStage.REVIEWING
    items: list[PendingItem] = Field(default_factory=list)
    error: Optional[str] = None


class Committing(BaseModel):
    stage: ReceiptStage = ReceiptStage.COMMITTING
    items: list[PendingItem] = Field(default_factory=list)


ReceiptState = Union[Idle, Capturing, Extracting, Reviewing, Committing]


class CommitResult(BaseModel):
    """What happened when staged items were committed."""

    inserted: int = Field(ge=0)
    confirmed: bool = Field(
        ...,
        description="False when the remote insert failed and items were kept locally"
    )
    transaction_ids: list[str] = Field(default_factory=list)
