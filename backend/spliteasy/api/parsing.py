from fastapi import APIRouter, Depends, HTTPException

from spliteasy.core.auth import get_current_user
from spliteasy.core.config import settings
from spliteasy.models.user import User
from spliteasy.schemas.receipt import ParsedReceipt, ProcessReceiptRequest
from spliteasy.services.parsing_service import (
    SUPPORTED_MIME_TYPES, ImageTooLargeError, ReceiptParseError, decode_image, parse_receipt_image,
)

router = APIRouter(tags=["parsing"])


@router.post("/api/receipt/process", response_model=ParsedReceipt)
async def process_receipt(
    body: ProcessReceiptRequest,
    user: User = Depends(get_current_user),
):
    """Extract items and totals from a receipt photo. Nothing is saved."""
    if not body.image or not body.mime_type:
        raise HTTPException(status_code=400, detail="Missing image data or MIME type")
    if body.mime_type not in SUPPORTED_MIME_TYPES:
        raise HTTPException(status_code=400, detail=f"Unsupported image type: {body.mime_type}")
    if not settings.google_api_key:
        raise HTTPException(status_code=500, detail="Google API key is not configured")

    try:
        image = decode_image(body.image, settings.max_upload_bytes)
    except ImageTooLargeError as e:
        raise HTTPException(status_code=413, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        return await parse_receipt_image(image, body.mime_type)
    except ReceiptParseError as e:
        raise HTTPException(status_code=502, detail={"error": e.message, "details": e.details})
