from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from surveyhub.core.security import decode_access_token
from surveyhub.database import get_db
from surveyhub.models.user import User
from surveyhub.services.user_service import get_role_keys, get_user_by_email


async def get_token_claims(request: Request) -> dict:
    """Verified claims of the bearer token; also stored on ``request.state.jwt``."""
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    claims = decode_access_token(auth[7:])
    if claims is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    request.state.jwt = claims
    return claims


async def get_current_user(
    claims: dict = Depends(get_token_claims), db: AsyncSession = Depends(get_db)
) -> User:
    user = await get_user_by_email(db, claims["email"])
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user


async def get_respondent(
    claims: dict = Depends(get_token_claims), db: AsyncSession = Depends(get_db)
) -> User:
    """Like ``get_current_user``, but a token for an unknown account is a 404."""
    user = await get_user_by_email(db, claims["email"])
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user


def require_role(role_key: str):
    """Dependency factory: the current user, or 403 unless they hold ``role_key``."""

    async def _check(
        user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> User:
        if role_key not in await get_role_keys(db, user.id):
            raise HTTPException(403, f"Forbidden: {role_key} role required")
        return user

    return _check
