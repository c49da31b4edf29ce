"""
Receipt response parser.

The model is asked for bare JSON but often wraps it in prose or code
fences. We scan for the first balanced {...} that actually parses,
honoring braces inside string literals.
"""

import json
import math
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterator, Optional

from pocket_ledger.models.category import DEFAULT_CATEGORY_ID, is_known_category
from pocket_ledger.models.receipt import ExtractedItem, ReceiptExtraction
from pocket_ledger.services.ocr.gemini_service import ReceiptParseError


def _balanced_objects(text: str) -> Iterator[str]:
    """Yield each top-level balanced {...} span, left to right."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        end = None
        for idx in range(start, len(text)):
            ch = text[idx]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    end = idx
                    break
        if end is None:
            # Stray opening brace, retry from the next one
            start = text.find("{", start + 1)
            continue
        yield text[start:end + 1]
        start = text.find("{", end + 1)


def locate_json_object(text: str) -> Optional[dict]:
    """
    Return the first balanced JSON object in text that parses.

    Raises:
        ReceiptParseError: If candidates exist but none is valid JSON
    """
    saw_candidate = False
    for candidate in _balanced_objects(text or ""):
        saw_candidate = True
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value
    if saw_candidate:
        raise ReceiptParseError("Could not parse receipt items. Please try again.")
    return None


def _price(value) -> Optional[Decimal]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price


def _receipt_date(value) -> Optional[date]:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def parse_receipt_response(text: str) -> ReceiptExtraction:
    """
    Turn raw provider text into a ReceiptExtraction.

    Items with a missing, non-numeric or non-positive price are dropped.
    Unknown or missing categories become miscellaneous-other.

    Raises:
        ReceiptParseError: If the text holds no usable JSON object
    """
    parsed = locate_json_object(text)
    if parsed is None:
        raise ReceiptParseError("No receipt data found in the response.")

    raw_items = parsed.get("items")
    if not isinstance(raw_items, list):
        raw_items = []

    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        price = _price(raw.get("price"))
        if price is None:
            continue
        category = raw.get("category")
        description = str(raw.get("description") or "").strip()[:200]
        items.append(ExtractedItem(
            description=description or "Item",
            price=price,
            category_id=category if is_known_category(category) else DEFAULT_CATEGORY_ID,
        ))

    return ReceiptExtraction(
        receipt_date=_receipt_date(parsed.get("date")),
        items=items,
    )
