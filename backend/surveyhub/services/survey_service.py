"""Survey domain operations.

Each write operation is one unit of work on the caller's session: every
sub-write goes through the same ``AsyncSession`` and nothing is committed
unless the whole operation succeeds.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from surveyhub.core.metrics import (
    survey_invitations_total,
    surveys_created_total,
    user_surveys_submitted_total,
)
from surveyhub.database import unit_of_work
from surveyhub.models.category import Category, SurveyCategory
from surveyhub.models.survey import (
    Answer,
    Question,
    Survey,
    SurveyStatus,
    UserSurvey,
    UserSurveyStatus,
)
from surveyhub.models.user import User
from surveyhub.schemas.survey import AnswerIn, SurveyUpdate
from surveyhub.services.user_service import get_user_by_email

logger = logging.getLogger(__name__)


# ── Lookups ───────────────────────────────────────────────────────────────────


async def get_survey(db: AsyncSession, survey_id: uuid.UUID) -> Survey | None:
    result = await db.execute(select(Survey).where(Survey.id == survey_id))
    return result.scalar_one_or_none()


async def get_questions(db: AsyncSession, survey_id: uuid.UUID) -> list[Question]:
    result = await db.execute(
        select(Question)
        .where(Question.survey_id == survey_id)
        .order_by(Question.position, Question.created_at)
    )
    return list(result.scalars().all())


async def get_categories(db: AsyncSession, survey_id: uuid.UUID) -> list[Category]:
    result = await db.execute(
        select(Category)
        .join(SurveyCategory, SurveyCategory.category_id == Category.id)
        .where(SurveyCategory.survey_id == survey_id)
        .order_by(Category.name)
    )
    return list(result.scalars().all())


async def get_answers(db: AsyncSession, user_survey_id: uuid.UUID) -> list[Answer]:
    result = await db.execute(select(Answer).where(Answer.user_survey_id == user_survey_id))
    return list(result.scalars().all())


async def get_user_survey_for(
    db: AsyncSession, survey_id: uuid.UUID, user_id: uuid.UUID
) -> UserSurvey | None:
    result = await db.execute(
        select(UserSurvey).where(
            UserSurvey.survey_id == survey_id,
            UserSurvey.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def _resolve_categories(db: AsyncSession, names: Iterable[str]) -> list[Category]:
    """Look up categories by name; 400 if any name is unknown or blank."""
    wanted = {(n or "").strip() for n in names}
    if not wanted:
        return []
    if "" in wanted:
        logger.warning("Blank category name requested")
        raise HTTPException(400, "Some categories do not exist")
    result = await db.execute(select(Category).where(Category.name.in_(wanted)))
    found = list(result.scalars().all())
    if len(found) != len(wanted):
        missing = sorted(wanted - {c.name for c in found})
        logger.warning("Unknown categories requested: %s", missing)
        raise HTTPException(400, "Some categories do not exist")
    return found


# ── Serialisation ─────────────────────────────────────────────────────────────


def question_to_dict(q: Question, answer: str | None = None, with_answer: bool = False) -> dict:
    d = {"id": str(q.id), "question": q.question, "position": q.position}
    if with_answer:
        d["answer"] = answer
    return d


def category_to_dict(c: Category) -> dict:
    return {
        "id": str(c.id),
        "name": c.name,
        "description": c.description,
        "status": c.status,
    }


def user_survey_to_dict(us: UserSurvey) -> dict:
    return {
        "id": str(us.id),
        "user_id": str(us.user_id),
        "survey_id": str(us.survey_id),
        "status": us.status,
        "submitted_at": us.submitted_at.isoformat() if us.submitted_at else None,
    }


async def survey_detail(db: AsyncSession, survey: Survey) -> dict:
    questions = await get_questions(db, survey.id)
    categories = await get_categories(db, survey.id)
    return {
        "id": str(survey.id),
        "title": survey.title,
        "status": survey.status,
        "created_by": str(survey.created_by) if survey.created_by else None,
        "questions": [question_to_dict(q) for q in questions],
        "categories": [category_to_dict(c) for c in categories],
    }


# ── Creation ──────────────────────────────────────────────────────────────────


async def create_survey(
    db: AsyncSession,
    *,
    title: str,
    questions: list[str],
    categories: list[str],
    creator_id: uuid.UUID,
) -> dict:
    """Create a draft survey with its questions and category links.

    The creator is assigned to the survey with an ``initial`` user-survey.
    If any category name is unknown nothing is persisted.
    """
    async with unit_of_work(db):
        creator = await db.get(User, creator_id)
        if creator is None:
            raise HTTPException(400, "Survey must be associated with a user")

        survey = Survey(title=title, status=SurveyStatus.DRAFT, created_by=creator.id)
        db.add(survey)
        await db.flush()

        user_survey = UserSurvey(
            user_id=creator.id,
            survey_id=survey.id,
            status=UserSurveyStatus.INITIAL,
        )
        created_questions = [
            Question(survey_id=survey.id, question=text, position=i)
            for i, text in enumerate(questions)
        ]
        db.add(user_survey)
        db.add_all(created_questions)

        category_rows = await _resolve_categories(db, categories)
        db.add_all(
            SurveyCategory(survey_id=survey.id, category_id=c.id) for c in category_rows
        )
        await db.flush()

    surveys_created_total.inc()
    logger.info(
        "Survey created with %d question(s) and %d categor(ies)",
        len(created_questions),
        len(category_rows),
        extra={"survey_id": survey.id, "user_id": creator_id},
    )
    return {
        "survey_id": str(survey.id),
        "title": survey.title,
        "user_survey_id": str(user_survey.id),
        "status": user_survey.status,
        "questions": [question_to_dict(q) for q in created_questions],
        "categories": [{"id": str(c.id), "name": c.name} for c in category_rows],
    }


# ── Invitation ────────────────────────────────────────────────────────────────


async def invite_user(
    db: AsyncSession, *, survey_id: uuid.UUID, invitee_email: str
) -> UserSurvey:
    """Assign ``invitee_email`` to a published survey."""
    async with unit_of_work(db):
        invitee = await get_user_by_email(db, invitee_email)
        if invitee is None:
            raise HTTPException(404, "Invitee user not found")

        survey = await get_survey(db, survey_id)
        if survey is None:
            raise HTTPException(404, "Survey not found")

        if survey.status != SurveyStatus.PUBLISHED:
            logger.warning("Invite to unpublished survey rejected", extra={"survey_id": survey_id})
            raise HTTPException(403, "Survey has not been published yet")

        if await get_user_survey_for(db, survey.id, invitee.id) is not None:
            raise HTTPException(400, "User is already invited to this survey")

        user_survey = UserSurvey(
            user_id=invitee.id,
            survey_id=survey.id,
            status=UserSurveyStatus.INITIAL,
        )
        db.add(user_survey)
        await db.flush()

    survey_invitations_total.inc()
    logger.info(
        "User invited to survey",
        extra={"survey_id": survey_id, "user_id": invitee.id, "user_survey_id": user_survey.id},
    )
    return user_survey


# ── Answers ───────────────────────────────────────────────────────────────────


def _dedupe_answers(answers: Iterable[AnswerIn]) -> dict[uuid.UUID, str]:
    """question_id -> answer text; a later entry for the same question wins."""
    return {a.question_id: a.answer for a in answers}


def _check_question_ids(incoming: Iterable[uuid.UUID], required: set[uuid.UUID]) -> None:
    if any(qid not in required for qid in incoming):
        raise HTTPException(
            400,
            "Some answers contain invalid question IDs that do not belong to this survey.",
        )


async def _upsert_answers(
    db: AsyncSession, user_survey_id: uuid.UUID, answers: dict[uuid.UUID, str]
) -> None:
    """Update the existing row per (question, user-survey) or insert one."""
    existing = {a.question_id: a for a in await get_answers(db, user_survey_id)}
    for question_id, text in answers.items():
        row = existing.get(question_id)
        if row is not None:
            row.answer = text
        else:
            db.add(Answer(question_id=question_id, user_survey_id=user_survey_id, answer=text))
    await db.flush()


async def _has_submissions(db: AsyncSession, survey_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(UserSurvey.id)
        .where(
            UserSurvey.survey_id == survey_id,
            UserSurvey.status == UserSurveyStatus.SUBMITTED,
        )
        .limit(1)
    )
    return result.first() is not None


def _ensure_editable(user_survey: UserSurvey) -> None:
    if user_survey.status == UserSurveyStatus.SUBMITTED:
        raise HTTPException(403, "This survey cannot be edited anymore")


def _mark_submitted(user_survey: UserSurvey) -> None:
    user_survey.status = UserSurveyStatus.SUBMITTED
    user_survey.submitted_at = datetime.now(timezone.utc)


async def fill_user_survey(
    db: AsyncSession,
    *,
    user_survey_id: uuid.UUID,
    user_id: uuid.UUID,
    answers: list[AnswerIn],
    submit: bool,
) -> tuple[UserSurvey, str]:
    """Save answers on the caller's user-survey and optionally submit it.

    Submission requires that the questions answered before plus the ones in
    this request cover every question of the survey. Returns the user-survey
    and a message describing what happened.
    """
    async with unit_of_work(db):
        user_survey = await db.get(UserSurvey, user_survey_id)
        if user_survey is None or user_survey.user_id != user_id:
            raise HTTPException(403, "You are not assigned to this survey")
        _ensure_editable(user_survey)

        required = {q.id for q in await get_questions(db, user_survey.survey_id)}
        incoming = _dedupe_answers(answers)
        _check_question_ids(incoming, required)

        answered = {a.question_id for a in await get_answers(db, user_survey.id)}
        answered.update(incoming)
        if submit and not required <= answered:
            raise HTTPException(400, "All questions must be answered before submitting.")

        await _upsert_answers(db, user_survey.id, incoming)

        if submit:
            _mark_submitted(user_survey)
            message = "User survey submitted successfully"
        else:
            user_survey.status = UserSurveyStatus.DRAFT
            message = "Answers updated successfully"
        await db.flush()

    if submit:
        user_surveys_submitted_total.labels(path="fill").inc()
        logger.info(
            "User survey submitted",
            extra={"user_survey_id": user_survey.id, "user_id": user_id},
        )
    return user_survey, message


async def bulk_update_answers(
    db: AsyncSession,
    *,
    survey_id: uuid.UUID,
    user_id: uuid.UUID,
    answers: list[AnswerIn],
) -> dict:
    """Answer every question of a survey at once and complete it.

    Each question needs a non-blank answer in this batch.
    """
    async with unit_of_work(db):
        user_survey = await get_user_survey_for(db, survey_id, user_id)
        if user_survey is None:
            raise HTTPException(403, "You are not assigned to this survey")
        _ensure_editable(user_survey)

        questions = await get_questions(db, survey_id)
        incoming = {qid: text.strip() for qid, text in _dedupe_answers(answers).items()}
        _check_question_ids(incoming, {q.id for q in questions})

        for question in questions:
            if not incoming.get(question.id):
                raise HTTPException(
                    400, f"Answer for question ID {question.id} is missing or empty"
                )

        await _upsert_answers(db, user_survey.id, incoming)
        _mark_submitted(user_survey)
        await db.flush()

    user_surveys_submitted_total.labels(path="bulk").inc()
    logger.info(
        "Survey answers replaced and submitted",
        extra={"user_survey_id": user_survey.id, "survey_id": survey_id},
    )
    return {
        "user_survey_id": str(user_survey.id),
        "status": user_survey.status,
        "answers": [{"question_id": str(qid), "answer": text} for qid, text in incoming.items()],
    }


async def get_survey_for_respondent(
    db: AsyncSession, *, survey_id: uuid.UUID, user_id: uuid.UUID
) -> dict:
    """Title and questions of a survey with the caller's own answers."""
    survey = await get_survey(db, survey_id)
    user_survey = await get_user_survey_for(db, survey_id, user_id) if survey else None
    if survey is None or user_survey is None:
        raise HTTPException(404, "Survey not found")

    answers = {a.question_id: a.answer for a in await get_answers(db, user_survey.id)}
    questions = await get_questions(db, survey_id)
    return {
        "survey": {
            "id": str(survey.id),
            "title": survey.title,
            "user_survey_id": str(user_survey.id),
            "status": user_survey.status,
            "questions": [
                question_to_dict(q, answers.get(q.id), with_answer=True) for q in questions
            ],
        }
    }


# ── Admin update ──────────────────────────────────────────────────────────────


async def update_survey(db: AsyncSession, *, survey_id: uuid.UUID, body: SurveyUpdate) -> Survey:
    """Apply a partial admin edit to a survey that is not yet published.

    Categories are merged into the existing links, never removed. A question
    with an ``id`` that exists on this survey is rewritten; any other entry
    becomes a new question, which is refused once any assignment has been
    submitted.
    """
    async with unit_of_work(db):
        survey = await get_survey(db, survey_id)
        if survey is None:
            raise HTTPException(404, "Survey not found")
        if survey.status == SurveyStatus.PUBLISHED:
            raise HTTPException(400, "Cannot update a published survey")

        if body.title:
            survey.title = body.title

        if body.status == SurveyStatus.PUBLISHED:
            survey.status = SurveyStatus.PUBLISHED

        if body.categories:
            wanted = await _resolve_categories(db, body.categories)
            linked = {c.id for c in await get_categories(db, survey.id)}
            db.add_all(
                SurveyCategory(survey_id=survey.id, category_id=c.id)
                for c in wanted
                if c.id not in linked
            )

        if body.questions:
            current = {q.id: q for q in await get_questions(db, survey.id)}
            next_position = max((q.position for q in current.values()), default=-1) + 1
            adds_questions = any(current.get(item.id) is None for item in body.questions)
            if adds_questions and await _has_submissions(db, survey.id):
                raise HTTPException(400, "Cannot add questions to a survey that has submissions")
            for item in body.questions:
                existing = current.get(item.id) if item.id else None
                if existing is not None:
                    existing.question = item.question
                else:
                    db.add(
                        Question(
                            survey_id=survey.id,
                            question=item.question,
                            position=next_position,
                        )
                    )
                    next_position += 1

        await db.flush()

    logger.info("Survey updated (status=%s)", survey.status, extra={"survey_id": survey.id})
    return survey


# ── Listings ──────────────────────────────────────────────────────────────────


async def list_surveys(db: AsyncSession) -> list[dict]:
    question_counts = (
        select(Question.survey_id, func.count(Question.id).label("n"))
        .group_by(Question.survey_id)
        .subquery()
    )
    assignment_counts = (
        select(UserSurvey.survey_id, func.count(UserSurvey.id).label("n"))
        .group_by(UserSurvey.survey_id)
        .subquery()
    )
    result = await db.execute(
        select(Survey, question_counts.c.n, assignment_counts.c.n)
        .outerjoin(question_counts, question_counts.c.survey_id == Survey.id)
        .outerjoin(assignment_counts, assignment_counts.c.survey_id == Survey.id)
        .order_by(Survey.created_at.desc())
    )
    return [
        {
            "id": str(s.id),
            "title": s.title,
            "status": s.status,
            "question_count": n_questions or 0,
            "assignment_count": n_assignments or 0,
            "created_at": s.created_at.isoformat() if s.created_at else None,
        }
        for s, n_questions, n_assignments in result.all()
    ]


async def list_user_surveys(db: AsyncSession, user_id: uuid.UUID) -> list[dict]:
    result = await db.execute(
        select(UserSurvey, Survey.title)
        .join(Survey, Survey.id == UserSurvey.survey_id)
        .where(UserSurvey.user_id == user_id)
        .order_by(UserSurvey.created_at.desc())
    )
    return [
        {**user_survey_to_dict(us), "survey_title": title} for us, title in result.all()
    ]
