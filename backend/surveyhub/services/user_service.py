"""User accounts and role assignment."""

from __future__ import annotations

import logging
import uuid

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from surveyhub.core.roles import DEFAULT_ROLES
from surveyhub.core.security import hash_password
from surveyhub.database import unit_of_work
from surveyhub.models.role import Role, UserRole
from surveyhub.models.user import User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def get_role_keys(db: AsyncSession, user_id: uuid.UUID) -> list[str]:
    result = await db.execute(
        select(Role.key)
        .join(UserRole, UserRole.role_id == Role.id)
        .where(UserRole.user_id == user_id)
        .order_by(Role.key)
    )
    return list(result.scalars().all())


async def seed_roles(db: AsyncSession) -> int:
    """Insert any missing default roles. Returns how many were created."""
    result = await db.execute(select(Role.key))
    existing = set(result.scalars().all())
    created = 0
    async with unit_of_work(db):
        for key, label in DEFAULT_ROLES.items():
            if key not in existing:
                db.add(Role(key=key, label=label))
                created += 1
    if created:
        logger.info("Seeded %d default role(s)", created)
    return created


async def create_user_with_roles(
    db: AsyncSession,
    *,
    email: str,
    display_name: str,
    password: str,
    roles: list[str],
) -> User:
    """Create a user and grant ``roles`` in one transaction.

    Raises 400 for a taken email or a role key that is not in the roles table.
    """
    email = normalize_email(email)
    async with unit_of_work(db):
        if await get_user_by_email(db, email) is not None:
            raise HTTPException(400, "Email already registered")

        role_result = await db.execute(select(Role).where(Role.key.in_(roles)))
        role_rows = role_result.scalars().all()
        if len(role_rows) != len(set(roles)):
            missing = sorted(set(roles) - {r.key for r in role_rows})
            raise HTTPException(400, f"Unknown role(s): {', '.join(missing)}")

        user = User(
            email=email,
            display_name=display_name,
            password_hash=hash_password(password),
            is_active=True,
        )
        db.add(user)
        await db.flush()
        for role in role_rows:
            db.add(UserRole(user_id=user.id, role_id=role.id))

    logger.info(
        "Created user %s with roles %s", user.email, sorted(roles), extra={"user_id": user.id}
    )
    return user
