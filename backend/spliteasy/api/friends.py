import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from spliteasy.core.auth import get_current_user
from spliteasy.core.database import get_db
from spliteasy.models.user import User
from spliteasy.schemas.user import FriendCreate, FriendResponse
from spliteasy.services.user_service import list_friends, add_friend, delete_friend

router = APIRouter(prefix="/api/friends", tags=["friends"])


@router.get("", response_model=list[FriendResponse])
async def get_friends(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await list_friends(db, user.id)


@router.post("", response_model=FriendResponse, status_code=201)
async def create_friend(
    body: FriendCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await add_friend(db, user.id, body.name)


@router.delete("/{friend_id}", status_code=204)
async def remove_friend(
    friend_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not await delete_friend(db, user.id, friend_id):
        raise HTTPException(status_code=404, detail="Friend not found")
