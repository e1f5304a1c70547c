import uuid

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from spliteasy.core.auth import get_current_user
from spliteasy.core.database import get_db
from spliteasy.models.user import User
from spliteasy.schemas.receipt import (
    ReceiptCreate, ReceiptUpdate, ReceiptResponse, ReceiptCreateResponse, BreakdownResponse,
)
from spliteasy.services.calculation_service import get_receipt_breakdown
from spliteasy.services.pdf_service import build_receipt_pdf
from spliteasy.services.receipt_service import (
    ReceiptValidationError, create_receipt, list_receipts, get_receipt, update_receipt, delete_receipt,
)

router = APIRouter(tags=["receipts"])


@router.post("/api/receipts", response_model=ReceiptCreateResponse, status_code=201)
async def save_receipt(
    body: ReceiptCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        receipt = await create_receipt(db, user, body)
    except ReceiptValidationError as e:
        raise HTTPException(status_code=422, detail=e.to_detail())
    return ReceiptCreateResponse(receipt_id=receipt.id, is_fully_assigned=receipt.is_fully_assigned)


@router.get("/api/receipts", response_model=list[ReceiptResponse])
async def list_user_receipts(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await list_receipts(db, user.id)


@router.get("/api/receipts/{receipt_id}", response_model=ReceiptResponse)
async def get_receipt_detail(
    receipt_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    receipt = await get_receipt(db, receipt_id, user.id)
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return receipt


@router.put("/api/receipts/{receipt_id}", response_model=ReceiptResponse)
async def edit_receipt(
    receipt_id: uuid.UUID,
    body: ReceiptUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        updated = await update_receipt(db, receipt_id, user, body)
    except ReceiptValidationError as e:
        raise HTTPException(status_code=422, detail=e.to_detail())
    if not updated:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return updated


@router.delete("/api/receipts/{receipt_id}", status_code=204)
async def remove_receipt(
    receipt_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    deleted = await delete_receipt(db, receipt_id, user.id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Receipt not found")


@router.get("/api/receipts/{receipt_id}/breakdown", response_model=BreakdownResponse)
async def receipt_breakdown(
    receipt_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    receipt = await get_receipt(db, receipt_id, user.id)
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return get_receipt_breakdown(receipt)


@router.get("/api/receipts/{receipt_id}/pdf")
async def export_receipt_pdf(
    receipt_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    receipt = await get_receipt(db, receipt_id, user.id)
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    pdf = build_receipt_pdf(receipt)
    filename = f"receipt-{str(receipt.id)[:8]}.pdf"
    return StreamingResponse(
        pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
