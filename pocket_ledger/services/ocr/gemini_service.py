"""
Receipt OCR using Gemini

DESIGN DECISION: We use a general multimodal model instead of a
receipt-specific OCR API because:
1. One call returns both the line items and a category guess per item
2. The category list is ours (the static catalog), passed in the prompt
3. The key belongs to the user, so there is no server-side quota to share

This service ONLY returns the model's raw text. Locating and validating
the JSON inside it is pocket_ledger.services.ocr.parser's job.

There is NO automatic retry. A failed extraction is surfaced to the user,
who retries by selecting the image again.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

import google.generativeai as genai

from pocket_ledger.config import GeminiSettings, get_settings
from pocket_ledger.models.category import DEFAULT_CATEGORY_ID, Category, all_categories
from pocket_ledger.models.receipt import ReceiptImage


class OCRError(Exception):
    """Base exception for OCR errors."""
    pass


class MissingCredentialError(OCRError):
    """No OCR API key configured for the user."""
    pass


class ExtractionFailedError(OCRError):
    """The provider call failed or returned nothing."""
    pass


class ReceiptParseError(OCRError):
    """The provider response held no usable JSON object."""
    pass


class InvalidImageError(OCRError):
    """The uploaded file is not an image we can send."""
    pass


_CATEGORY_GUIDELINES = """Category guidelines:
- Food, groceries, restaurants, snacks, drinks -> food-dining
- Gas, uber, taxi, parking, car services -> transportation
- Electricity, water, internet, phone bills -> utilities-bills
- Clothes, shoes, accessories, electronics -> shopping-clothing
- Gym, medicine, pharmacy, doctor -> health-wellness
- Movies, games, streaming, hobbies -> recreation-entertainment
- Bank fees, loans, insurance payments -> financial-obligations
- Anything else -> miscellaneous-other"""


def build_instructions(categories: Optional[Iterable[Category]] = None) -> str:
    """
    Build the extraction prompt.

    The category enumeration is rendered from the catalog so the model can
    only answer with ids we know.
    """
    category_list = "\n".join(
        f"- {c.id}: {c.label}" for c in (categories or all_categories())
    )

    return f"""Analyze this receipt image and extract all purchased items.

For each item, classify it into ONE of these expense categories:
{category_list}

Return ONLY a valid JSON object with this format:
{{
  "date": "YYYY-MM-DD",
  "items": [
    {{"description": "Coffee", "price": 4.50, "category": "food-dining"}},
    {{"description": "Gas", "price": 45.00, "category": "transportation"}}
  ]
}}

Rules:
- "date": Extract receipt date (YYYY-MM-DD format). Use null if not found.
- "description": Short item name from receipt
- "price": Numeric price (no currency symbol)
- "category": Must be one of the category IDs listed above. Use "{DEFAULT_CATEGORY_ID}" if unsure.

{_CATEGORY_GUIDELINES}"""


class ReceiptOCRProvider(ABC):
    """Abstract OCR provider: image plus instructions in, raw text out."""

    @abstractmethod
    async def extract_text(
        self,
        image: ReceiptImage,
        instructions: str,
        api_key: str,
    ) -> str:
        """
        Run extraction on one image.

        Raises:
            ExtractionFailedError: If the provider call fails
        """
        pass


class GeminiReceiptProvider(ReceiptOCRProvider):
    """
    Gemini implementation.

    The image bytes go inline; the SDK base64-encodes them on the wire.
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini

    def _build_model(self, api_key: str) -> genai.GenerativeModel:
        genai.configure(api_key=api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def extract_text(self, image, instructions, api_key):
        if not api_key:
            raise MissingCredentialError("Add your Gemini API key in Settings first")

        model = self._build_model(api_key)
        try:
            response = await model.generate_content_async([
                instructions,
                {"mime_type": image.mime_type, "data": image.data},
            ])
            text = response.text
        except Exception as e:
            raise ExtractionFailedError(f"Receipt extraction failed: {e}")

        if not text or not text.strip():
            raise ExtractionFailedError("The model returned an empty response")
        return text
