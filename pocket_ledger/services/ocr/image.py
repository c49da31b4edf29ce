"""
Receipt image preparation using Pillow.

Every upload is decoded, checked against the accepted formats, rotated
per its EXIF orientation, downscaled, and re-encoded as JPEG. The OCR
provider only ever sees JPEG.
"""

from io import BytesIO
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from pocket_ledger.config import get_settings
from pocket_ledger.models.receipt import ReceiptImage
from pocket_ledger.services.ocr.gemini_service import InvalidImageError


MAX_DIMENSION = 2048
JPEG_QUALITY = 85


def prepare_image(
    image_bytes: bytes,
    max_size_bytes: Optional[int] = None,
    supported_formats: Optional[list[str]] = None,
) -> ReceiptImage:
    """
    Validate and normalize an uploaded receipt photo.

    Raises:
        InvalidImageError: If the bytes are empty, too large, undecodable,
            or in an unsupported format
    """
    if max_size_bytes is None or supported_formats is None:
        app_settings = get_settings().app
        max_size_bytes = max_size_bytes or app_settings.max_upload_size_bytes
        supported_formats = supported_formats or app_settings.supported_formats_list

    if not image_bytes:
        raise InvalidImageError("The selected file is empty")
    if len(image_bytes) > max_size_bytes:
        raise InvalidImageError(
            f"Image is too large ({len(image_bytes) // 1024} KB). "
            f"Maximum is {max_size_bytes // (1024 * 1024)} MB."
        )

    try:
        img = Image.open(BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImageError(f"Could not read image: {e}")

    fmt = (img.format or "").lower()
    if fmt not in supported_formats:
        raise InvalidImageError(
            f"Unsupported image format: {fmt or 'unknown'}. "
            f"Use one of: {', '.join(supported_formats)}"
        )

    img = ImageOps.exif_transpose(img)
    if img.mode != "RGB":
        img = img.convert("RGB")
    img.thumbnail((MAX_DIMENSION, MAX_DIMENSION))

    buffer = BytesIO()
    img.save(buffer, format="JPEG", quality=JPEG_QUALITY)
    width, height = img.size

    return ReceiptImage(
        mime_type="image/jpeg",
        data=buffer.getvalue(),
        width=width,
        height=height,
    )
