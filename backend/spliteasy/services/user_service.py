import logging
import uuid

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from spliteasy.models.friend import Friend
from spliteasy.models.user import User

logger = logging.getLogger(__name__)


async def upsert_user(db: AsyncSession, firebase_uid: str, email: str, name: str | None) -> User:
    """Create the local user for a Firebase account, or refresh its email/name.

    A Firebase account recreated with an email we already know gets the
    existing row, re-linked to the new uid.
    """
    result = await db.execute(select(User).where(User.firebase_uid == firebase_uid))
    user = result.scalar_one_or_none()
    if not user:
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user:
            logger.info("Re-linking user %s from firebase uid %s to %s", user.id, user.firebase_uid, firebase_uid)
            user.firebase_uid = firebase_uid

    if user:
        user.email = email
        if name:
            user.name = name
    else:
        user = User(firebase_uid=firebase_uid, email=email, name=name)
        db.add(user)
        logger.info("Registered user for firebase uid %s", firebase_uid)

    await db.commit()
    return user


async def list_friends(db: AsyncSession, user_id: uuid.UUID) -> list[Friend]:
    result = await db.execute(
        select(Friend).where(Friend.user_id == user_id).order_by(Friend.name)
    )
    return list(result.scalars().all())


async def add_friend(db: AsyncSession, user_id: uuid.UUID, name: str) -> Friend:
    """Idempotent: adding a name that is already saved returns the existing row."""
    name = name.strip()
    result = await db.execute(
        select(Friend).where(Friend.user_id == user_id, Friend.name == name)
    )
    friend = result.scalar_one_or_none()
    if friend:
        return friend
    friend = Friend(user_id=user_id, name=name)
    db.add(friend)
    await db.commit()
    return friend


async def delete_friend(db: AsyncSession, user_id: uuid.UUID, friend_id: uuid.UUID) -> bool:
    result = await db.execute(
        delete(Friend).where(Friend.id == friend_id, Friend.user_id == user_id)
    )
    if result.rowcount == 0:
        return False
    await db.commit()
    return True
