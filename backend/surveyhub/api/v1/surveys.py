from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from surveyhub.api.deps import get_current_user, get_respondent, require_role
from surveyhub.core.errors import envelope
from surveyhub.core.roles import ADMIN
from surveyhub.database import get_db
from surveyhub.models.user import User
from surveyhub.schemas.survey import (
    BulkAnswersRequest,
    FillSurveyRequest,
    InviteRequest,
    SurveyCreate,
    SurveyUpdate,
)
from surveyhub.services import survey_service

router = APIRouter(tags=["surveys"])


# ── Admin endpoints ──────────────────────────────────────────────────────────


@router.get("/survey")
async def list_surveys(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_role(ADMIN)),
):
    return envelope("Surveys retrieved", await survey_service.list_surveys(db))


@router.post("/survey")
async def create_survey(
    body: SurveyCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_role(ADMIN)),
):
    """Create a draft survey with questions and categories (admin only)."""
    data = await survey_service.create_survey(
        db,
        title=body.title,
        questions=body.questions,
        categories=body.categories,
        creator_id=admin.id,
    )
    return envelope("Survey created successfully", data)


@router.post("/survey/{survey_id}/invite")
async def invite_to_survey(
    survey_id: uuid.UUID,
    body: InviteRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_role(ADMIN)),
):
    """Assign a user to a published survey (admin only)."""
    user_survey = await survey_service.invite_user(
        db, survey_id=survey_id, invitee_email=body.invitee_email
    )
    return envelope(
        "User invited to the survey successfully",
        survey_service.user_survey_to_dict(user_survey),
    )


@router.put("/admin/survey/{survey_id}")
async def update_survey(
    survey_id: uuid.UUID,
    body: SurveyUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_role(ADMIN)),
):
    """Edit a survey that has not been published yet (admin only)."""
    survey = await survey_service.update_survey(db, survey_id=survey_id, body=body)
    return envelope("Survey updated successfully", await survey_service.survey_detail(db, survey))


# ── Respondent endpoints ─────────────────────────────────────────────────────


@router.get("/survey/my")
async def my_surveys(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """The caller's survey assignments and their progress."""
    return envelope("Assigned surveys", await survey_service.list_user_surveys(db, user.id))


@router.put("/survey/{survey_id}/answers")
async def replace_survey_answers(
    survey_id: uuid.UUID,
    body: BulkAnswersRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_respondent),
):
    """Answer every question of the survey in one go and complete it."""
    data = await survey_service.bulk_update_answers(
        db, survey_id=survey_id, user_id=user.id, answers=body.answers
    )
    return envelope("Survey answers updated successfully", data)


@router.put("/survey/{user_survey_id}")
async def fill_survey(
    user_survey_id: uuid.UUID,
    body: FillSurveyRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Save answers on the caller's assignment, or submit it."""
    user_survey, message = await survey_service.fill_user_survey(
        db,
        user_survey_id=user_survey_id,
        user_id=user.id,
        answers=body.answers,
        submit=body.wants_submit,
    )
    return envelope(message, survey_service.user_survey_to_dict(user_survey))
