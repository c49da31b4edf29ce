"""
Receipt Review Pipeline

State machine: Idle -> Capturing -> Extracting -> Reviewing -> Committing -> Idle

CRITICAL: Nothing extracted from a receipt reaches the ledger without an
explicit commit. The user can edit, remove or dismiss every item first.

Failure policy:
- No OCR key: stay Idle, no network call, MissingCredentialError raised
- Bad image, provider failure, unparsable or empty response: Reviewing
  with no items and an error message. No automatic retry; selecting an
  image again is the retry
- Commit: remote insert with local fallback (LedgerService.insert_many).
  Staged items are cleared whatever happens
"""

import asyncio
from datetime import date, datetime, time
from decimal import Decimal
from typing import Callable, Optional, Union

from pocket_ledger.audit import AuditLogger, create_correlation_id
from pocket_ledger.ledger.service import LedgerService
from pocket_ledger.models.audit import AuditEventBuilder
from pocket_ledger.models.receipt import (
    Capturing,
    CommitResult,
    Committing,
    Extracting,
    Idle,
    PendingItem,
    ReceiptExtraction,
    ReceiptImage,
    ReceiptState,
    Reviewing,
)
from pocket_ledger.models.transaction import ConfirmationStatus, ExpenseDraft
from pocket_ledger.services.credentials import CredentialManager
from pocket_ledger.services.ocr import (
    MissingCredentialError,
    OCRError,
    ReceiptOCRProvider,
    build_instructions,
    parse_receipt_response,
    prepare_image,
)


NO_ITEMS_MESSAGE = "No items found on this receipt. Try another photo."


class PipelineStateError(Exception):
    """Operation not allowed in the current state."""

    def __init__(self, operation: str, state: ReceiptState):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while {state.stage.value}")


def receipt_timestamp(receipt_date: Optional[date]) -> datetime:
    """Noon local time on the receipt date, or now when undated."""
    if receipt_date is None:
        return datetime.now().astimezone()
    return datetime.combine(receipt_date, time(12, 0)).astimezone()


class ReceiptPipeline:
    """
    One capture -> review -> commit cycle at a time.

    Usage:
        state = await pipeline.select_image(photo_bytes)
        pipeline.edit_item(item_id, price="3.90")
        result = await pipeline.commit()
    """

    def __init__(
        self,
        ledger_service: LedgerService,
        credentials: CredentialManager,
        provider: ReceiptOCRProvider,
        audit_logger: AuditLogger,
        image_preparer: Callable[[bytes], ReceiptImage] = prepare_image,
    ):
        self._ledger = ledger_service
        self._credentials = credentials
        self._provider = provider
        self._audit = audit_logger
        self._prepare = image_preparer
        self.state: ReceiptState = Idle()
        self._task: Optional[asyncio.Task] = None
        # Extraction tasks stopped through cancel(), not by the caller
        self._cancelled_tasks: set[asyncio.Task] = set()
        self._correlation_id = None

    @property
    def items(self) -> list[PendingItem]:
        if isinstance(self.state, (Reviewing, Committing)):
            return list(self.state.items)
        return []

    @property
    def error(self) -> Optional[str]:
        if isinstance(self.state, Reviewing):
            return self.state.error
        return None

    def _require_reviewing(self, operation: str) -> Reviewing:
        if not isinstance(self.state, Reviewing):
            raise PipelineStateError(operation, self.state)
        return self.state

    def _fail(self, message: str) -> ReceiptState:
        self.state = Reviewing(items=[], error=message)
        self._audit.log(AuditEventBuilder.ocr_failed(message, self._correlation_id))
        return self.state

    # =========================================================================
    # CAPTURE AND EXTRACTION
    # =========================================================================

    async def _extract(self, image: ReceiptImage, api_key: str) -> ReceiptExtraction:
        text = await self._provider.extract_text(image, build_instructions(), api_key)
        return parse_receipt_response(text)

    async def select_image(self, image_bytes: bytes) -> ReceiptState:
        """
        Start a new extraction. Replaces any items under review.

        Raises:
            MissingCredentialError: If no OCR key is configured
            PipelineStateError: If an extraction or commit is in progress
        """
        if not isinstance(self.state, (Idle, Reviewing)):
            raise PipelineStateError("select an image", self.state)

        api_key = self._credentials.current
        if not api_key:
            self.state = Idle()
            raise MissingCredentialError("Please add your Gemini API key in Settings first")

        self._correlation_id = create_correlation_id()
        self.state = Capturing()

        try:
            image = self._prepare(image_bytes)
        except OCRError as e:
            return self._fail(str(e))

        self.state = Extracting(image=image)
        self._audit.log(AuditEventBuilder.ocr_started(len(image.data), self._correlation_id))

        task = asyncio.ensure_future(self._extract(image, api_key))
        self._task = task
        try:
            extraction = await task
        except asyncio.CancelledError:
            if task in self._cancelled_tasks:
                # cancel() already moved on; a newer run may own the state
                self._cancelled_tasks.discard(task)
                return Idle()
            if self._task is task:
                self.state = Idle()
            raise
        except OCRError as e:
            return self._fail(str(e))
        finally:
            if self._task is task:
                self._task = None

        if not extraction.items:
            return self._fail(NO_ITEMS_MESSAGE)

        self.state = Reviewing(items=[
            PendingItem.from_extracted(item, extraction.receipt_date)
            for item in extraction.items
        ])
        self._audit.log(AuditEventBuilder.ocr_completed(len(extraction.items), self._correlation_id))
        return self.state

    def cancel(self) -> bool:
        """Abort an in-flight extraction. Returns False when none is running."""
        if not isinstance(self.state, Extracting) or self._task is None or self._task.done():
            return False
        self._cancelled_tasks.add(self._task)
        self._task.cancel()
        self._task = None
        self.state = Idle()
        self._audit.log(AuditEventBuilder.ocr_cancelled(self._correlation_id))
        return True

    # =========================================================================
    # REVIEW
    # =========================================================================

    def edit_item(
        self,
        item_id: str,
        description: Optional[str] = None,
        price: Optional[Union[Decimal, float, str]] = None,
        category_id: Optional[str] = None,
    ) -> PendingItem:
        """
        Edit one staged item in place. A category change re-derives the icon.

        Raises:
            PipelineStateError: If not reviewing
            KeyError: If no staged item has this id
            ValueError: If the price is not positive and finite
        """
        state = self._require_reviewing("edit an item")
        for idx, item in enumerate(state.items):
            if item.id != item_id:
                continue
            edited = PendingItem(
                id=item.id,
                description=item.description if description is None else description,
                price=item.price if price is None else price,
                category_id=item.category_id if category_id is None else category_id,
                receipt_date=item.receipt_date,
            )
            items = list(state.items)
            items[idx] = edited
            self.state = Reviewing(items=items, error=state.error)
            return edited
        raise KeyError(item_id)

    def remove_item(self, item_id: str) -> bool:
        state = self._require_reviewing("remove an item")
        items = [i for i in state.items if i.id != item_id]
        if len(items) == len(state.items):
            return False
        self.state = Reviewing(items=items, error=state.error)
        return True

    def dismiss(self) -> None:
        """Discard staged items (or a running extraction) and go back to Idle."""
        if isinstance(self.state, Extracting):
            self.cancel()
        if isinstance(self.state, Committing):
            raise PipelineStateError("dismiss", self.state)
        self.state = Idle()

    # =========================================================================
    # COMMIT
    # =========================================================================

    async def commit(self) -> CommitResult:
        """
        Insert every staged item as an expense.

        Amounts are forced negative. The pipeline is Idle afterwards on
        every path.
        """
        state = self._require_reviewing("commit")
        items = list(state.items)
        self.state = Committing(items=items)

        correlation_id = self._correlation_id or create_correlation_id()
        drafts = [
            ExpenseDraft(
                label=item.description,
                amount=-abs(item.price),
                icon=item.icon,
                category_id=item.category_id,
                transaction_at=receipt_timestamp(item.receipt_date),
            )
            for item in items
        ]

        try:
            inserted = await self._ledger.insert_many(drafts)
        finally:
            self.state = Idle()
            self._correlation_id = None

        confirmed = all(t.confirmation == ConfirmationStatus.CONFIRMED for t in inserted)
        self._audit.log(AuditEventBuilder.receipt_committed(
            count=len(inserted),
            confirmed=confirmed,
            correlation_id=correlation_id,
        ))
        return CommitResult(
            inserted=len(inserted),
            confirmed=confirmed,
            transaction_ids=[t.id for t in inserted],
        )
