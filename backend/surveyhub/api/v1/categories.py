from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from surveyhub.api.deps import get_current_user, get_respondent, require_role
from surveyhub.core.errors import envelope
from surveyhub.core.roles import ADMIN
from surveyhub.database import get_db, unit_of_work
from surveyhub.models.category import Category
from surveyhub.models.user import User
from surveyhub.schemas.category import CategoryCreate
from surveyhub.services.survey_service import category_to_dict, get_survey_for_respondent

router = APIRouter(tags=["categories"])
logger = logging.getLogger(__name__)


@router.post("/category", status_code=201)
async def create_category(
    body: CategoryCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_role(ADMIN)),
):
    name = (body.name or "").strip()
    if not name:
        raise HTTPException(400, "Category name is required")

    async with unit_of_work(db):
        existing = await db.execute(select(Category.id).where(Category.name == name))
        if existing.scalar_one_or_none() is not None:
            raise HTTPException(400, "Category already exists")
        category = Category(name=name, description=body.description, status=body.status)
        db.add(category)
        await db.flush()

    logger.info("Category %r created", name)
    return envelope("Category created successfully", category_to_dict(category))


@router.get("/category")
async def list_categories(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = await db.execute(select(Category).order_by(Category.name))
    return envelope("Categories retrieved", [category_to_dict(c) for c in result.scalars().all()])


# Despite the path this reads a survey: its questions plus the caller's answers
@router.get("/category/{survey_id}")
async def get_survey_questions(
    survey_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_respondent),
):
    data = await get_survey_for_respondent(db, survey_id=survey_id, user_id=user.id)
    return envelope("Survey retrieved", data)
