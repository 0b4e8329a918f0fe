from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from surveyhub.api.deps import get_current_user
from surveyhub.core.errors import envelope
from surveyhub.core.rate_limit import LOGIN_LIMIT, REGISTER_LIMIT, limiter
from surveyhub.core.roles import ADMIN, USER
from surveyhub.core.security import create_access_token, verify_password
from surveyhub.database import get_db
from surveyhub.models.user import User
from surveyhub.schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from surveyhub.services.user_service import (
    create_user_with_roles,
    get_role_keys,
    get_user_by_email,
)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/register", status_code=201)
@limiter.limit(REGISTER_LIMIT)
async def register(request: Request, body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    count_result = await db.execute(select(func.count(User.id)))
    is_first_user = (count_result.scalar() or 0) == 0
    # The very first account bootstraps the installation as an administrator
    roles = [ADMIN, USER] if is_first_user else [USER]

    user = await create_user_with_roles(
        db,
        email=body.email,
        display_name=body.display_name,
        password=body.password,
        roles=roles,
    )
    token = TokenResponse(access_token=create_access_token(user.id, user.email))
    return envelope("User registered successfully", token.model_dump())


@router.post("/login")
@limiter.limit(LOGIN_LIMIT)
async def login(request: Request, body: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await get_user_by_email(db, body.email)
    if user is None or not verify_password(body.password, user.password_hash):
        logger.warning("Failed login attempt for %s", body.email)
        raise HTTPException(401, "Invalid credentials")
    if not user.is_active:
        raise HTTPException(403, "Account disabled")

    token = TokenResponse(access_token=create_access_token(user.id, user.email))
    return envelope("Login successful", token.model_dump())


@router.get("/me")
async def me(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    profile = UserResponse(
        id=str(user.id),
        email=user.email,
        display_name=user.display_name,
        is_active=user.is_active,
        roles=await get_role_keys(db, user.id),
    )
    return envelope("Current user", profile.model_dump())
