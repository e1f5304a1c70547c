import logging
import time

import httpx
import jwt as pyjwt
from jwt import PyJWK
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from spliteasy.core.config import settings
from spliteasy.core.database import get_db
from spliteasy.models.user import User

logger = logging.getLogger(__name__)

FIREBASE_JWKS_URL = (
    "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"
)

security = HTTPBearer()

_jwks_cache: tuple[list[PyJWK], float] | None = None


async def _get_jwks() -> list[PyJWK]:
    global _jwks_cache
    now = time.time()
    if _jwks_cache is not None and now - _jwks_cache[1] < settings.jwks_cache_ttl:
        return _jwks_cache[0]
    async with httpx.AsyncClient(timeout=10) as client:
        resp = await client.get(FIREBASE_JWKS_URL)
        resp.raise_for_status()
        keys = resp.json().get("keys", [])
    jwks = [PyJWK(k) for k in keys]
    _jwks_cache = (jwks, now)
    return jwks


async def verify_firebase_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """Verify a Firebase ID token and return its claims. The uid is in "sub"."""
    token = credentials.credentials
    try:
        jwks = await _get_jwks()
        kid = pyjwt.get_unverified_header(token).get("kid")
        key = next((k for k in jwks if k.key_id == kid), None)
        if key is None:
            raise pyjwt.InvalidTokenError("No matching key found")

        claims = pyjwt.decode(
            token,
            key,
            algorithms=["RS256"],
            audience=settings.firebase_project_id,
            issuer=f"https://securetoken.google.com/{settings.firebase_project_id}",
        )
    except pyjwt.InvalidTokenError as e:
        logger.info("Rejected ID token: %s", e)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    except httpx.HTTPError:
        logger.exception("Could not fetch Firebase signing keys")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Auth provider unavailable")

    if not claims.get("sub"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return claims


async def get_current_user(
    claims: dict = Depends(verify_firebase_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    result = await db.execute(select(User).where(User.firebase_uid == claims["sub"]))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user
