import base64
import binascii
import json
import logging
import re
import time

import google.generativeai as genai
from pydantic import ValidationError

from spliteasy.core.config import settings
from spliteasy.schemas.receipt import ParsedReceipt
from spliteasy.utils.allocation import calculate_totals

logger = logging.getLogger(__name__)

SUPPORTED_MIME_TYPES = {"image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"}

EXTRACTION_PROMPT = """You are a highly accurate receipt parser. Given the image of a retail or restaurant receipt,
extract every line-item and the subtotal, tax, tip, and total. Return ONLY valid JSON with this schema:

{
  "items": [
    { "description": string, "quantity": number, "price": number }
  ],
  "subtotal": number,
  "tax": number,
  "tip": number,
  "total": number
}

For line items, extract the item description, quantity (default to 1 if not specified), and price.
If the receipt is unclear or you cannot identify certain values:
- For missing line items, provide an empty array
- For missing subtotal, tax, or tip, use 0
- For missing total, calculate from available values or use 0
"""

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


class ImageTooLargeError(ValueError):
    pass


class ReceiptParseError(Exception):
    """The vision model call failed or returned something that isn't receipt JSON."""

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


def decode_image(image_b64: str, max_bytes: int) -> bytes:
    """Decode the uploaded base64 image. Raises ValueError for bad input, ImageTooLargeError past max_bytes."""
    if "," in image_b64 and image_b64.lstrip().startswith("data:"):
        image_b64 = image_b64.split(",", 1)[1]
    try:
        data = base64.b64decode(image_b64, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("Image is not valid base64")
    if not data:
        raise ValueError("Image is empty")
    if len(data) > max_bytes:
        raise ImageTooLargeError(f"Image exceeds {max_bytes} bytes")
    return data


def extract_json_text(raw_text: str) -> str:
    """Strip Markdown code fences the model sometimes wraps its JSON in."""
    match = _FENCE_RE.search(raw_text)
    if match:
        return match.group(1).strip()
    return raw_text.strip()


def to_parsed_receipt(raw_text: str) -> ParsedReceipt:
    cleaned = extract_json_text(raw_text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        raise ReceiptParseError("Invalid JSON from model", details=cleaned)
    if not isinstance(data, dict):
        raise ReceiptParseError("Invalid JSON from model", details=cleaned)

    try:
        parsed = ParsedReceipt.model_validate(data)
    except ValidationError as e:
        raise ReceiptParseError("Unexpected receipt structure from model", details=str(e))

    if parsed.subtotal == 0 and parsed.items:
        parsed.subtotal = calculate_totals(parsed.items)["subtotal"]
    if parsed.total == 0 and parsed.subtotal > 0:
        parsed.total = parsed.subtotal + parsed.tax + parsed.tip
    return parsed


async def parse_receipt_image(image_data: bytes, mime_type: str) -> ParsedReceipt:
    genai.configure(api_key=settings.google_api_key)
    model = genai.GenerativeModel(settings.gemini_model_name)

    start = time.perf_counter()
    try:
        response = await model.generate_content_async([
            {"mime_type": mime_type, "data": image_data},
            EXTRACTION_PROMPT,
        ])
        raw_text = response.text
    except Exception as e:
        logger.exception("Receipt extraction call failed")
        raise ReceiptParseError("Failed to process receipt", details=str(e)) from e
    logger.info(
        "Receipt extracted by %s in %.2fs (%d bytes)",
        settings.gemini_model_name, time.perf_counter() - start, len(image_data),
    )

    parsed = to_parsed_receipt(raw_text)
    logger.info("Parsed %d items, subtotal %s", len(parsed.items), parsed.subtotal)
    return parsed
