from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from surveyhub.api.deps import require_role
from surveyhub.core.errors import envelope
from surveyhub.core.roles import ADMIN
from surveyhub.database import get_db
from surveyhub.models.role import Role, UserRole
from surveyhub.models.user import User
from surveyhub.schemas.auth import UserCreate
from surveyhub.services.user_service import create_user_with_roles

router = APIRouter(prefix="/users", tags=["users"])


def _user_response(u: User, roles: list[str]) -> dict:
    return {
        "id": str(u.id),
        "email": u.email,
        "display_name": u.display_name,
        "is_active": u.is_active,
        "roles": roles,
        "created_at": u.created_at.isoformat() if u.created_at else None,
    }


@router.get("")
async def list_users(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_role(ADMIN)),
):
    users = (await db.execute(select(User).order_by(User.display_name))).scalars().all()
    grants = await db.execute(
        select(UserRole.user_id, Role.key).join(Role, Role.id == UserRole.role_id)
    )
    roles_by_user: dict = {}
    for user_id, key in grants.all():
        roles_by_user.setdefault(user_id, []).append(key)
    return envelope(
        "Users retrieved",
        [_user_response(u, sorted(roles_by_user.get(u.id, []))) for u in users],
    )


@router.post("", status_code=201)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_role(ADMIN)),
):
    user = await create_user_with_roles(
        db,
        email=body.email,
        display_name=body.display_name,
        password=body.password,
        roles=body.roles,
    )
    return envelope("User created successfully", _user_response(user, sorted(body.roles)))
