from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from spliteasy.core.auth import get_current_user, verify_firebase_token
from spliteasy.core.database import get_db
from spliteasy.models.user import User
from spliteasy.schemas.user import SaveUserRequest, UserResponse
from spliteasy.services.user_service import upsert_user

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/save-user", response_model=UserResponse)
async def save_user(
    body: SaveUserRequest,
    claims: dict = Depends(verify_firebase_token),
    db: AsyncSession = Depends(get_db),
):
    """Sync the signed-in Firebase account to the local users table."""
    email = body.email or claims.get("email")
    if body.uid != claims["sub"] or not email:
        raise HTTPException(status_code=400, detail="UID mismatch or missing email")
    return await upsert_user(db, body.uid, email, body.name or claims.get("name"))


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    return user
