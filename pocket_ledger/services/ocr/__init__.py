"""OCR services: provider, image preparation, response parsing."""

from pocket_ledger.services.ocr.gemini_service import (
    ExtractionFailedError,
    GeminiReceiptProvider,
    InvalidImageError,
    MissingCredentialError,
    OCRError,
    ReceiptOCRProvider,
    ReceiptParseError,
    build_instructions,
)
from pocket_ledger.services.ocr.image import prepare_image
from pocket_ledger.services.ocr.parser import locate_json_object, parse_receipt_response

__all__ = [
    "ExtractionFailedError",
    "GeminiReceiptProvider",
    "InvalidImageError",
    "MissingCredentialError",
    "OCRError",
    "ReceiptOCRProvider",
    "ReceiptParseError",
    "build_instructions",
    "locate_json_object",
    "parse_receipt_response",
    "prepare_image",
]
