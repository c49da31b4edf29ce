"""Receipt capture, review and commit."""

from pocket_ledger.receipts.pipeline import (
    PipelineStateError,
    ReceiptPipeline,
    receipt_timestamp,
)

__all__ = ["PipelineStateError", "ReceiptPipeline", "receipt_timestamp"]
