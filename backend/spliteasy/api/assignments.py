import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from spliteasy.core.auth import get_current_user
from spliteasy.core.database import get_db
from spliteasy.models.user import User
from spliteasy.schemas.receipt import ReceiptResponse
from spliteasy.services.receipt_service import ReceiptValidationError, remove_participant, split_item_equally

router = APIRouter(tags=["assignments"])


@router.delete("/api/receipts/{receipt_id}/participants/{participant_id}", response_model=ReceiptResponse)
async def delete_participant(
    receipt_id: uuid.UUID,
    participant_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Remove a participant; their assignments on every item go with them."""
    try:
        receipt = await remove_participant(db, receipt_id, participant_id, user.id)
    except ReceiptValidationError as e:
        raise HTTPException(status_code=422, detail=e.to_detail())
    if receipt is None:
        raise HTTPException(status_code=404, detail="Participant not found")
    return receipt


@router.post("/api/receipts/{receipt_id}/items/{item_id}/split-equally", response_model=ReceiptResponse)
async def split_item(
    receipt_id: uuid.UUID,
    item_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    receipt = await split_item_equally(db, receipt_id, item_id, user.id)
    if receipt is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return receipt
