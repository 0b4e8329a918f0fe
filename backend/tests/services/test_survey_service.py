"""Service-level tests for surveyhub.services.survey_service.

These call the service functions directly on the test session, without the
HTTP layer.
"""

from __future__ import annotations

import uuid

import pytest
from fastapi import HTTPException
from sqlalchemy import func, select

from surveyhub.models.category import SurveyCategory
from surveyhub.models.survey import Answer, Question, Survey, UserSurvey
from surveyhub.schemas.survey import AnswerIn, QuestionUpsert, SurveyUpdate
from surveyhub.services import survey_service
from tests.conftest import assign_user, create_category, create_survey, create_user


async def _count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


class TestCreateSurvey:
    async def test_creates_everything_in_one_go(self, db):
        admin = await create_user(db, email="author@test.com")
        await create_category(db, name="Health")
        await create_category(db, name="Work")

        data = await survey_service.create_survey(
            db,
            title="Pulse",
            questions=["How are you?", "Anything else?"],
            categories=["Health", "Work"],
            creator_id=admin.id,
        )

        assert data["status"] == "initial"
        assert await _count(db, Survey) == 1
        assert await _count(db, Question) == 2
        assert await _count(db, SurveyCategory) == 2
        assert await _count(db, UserSurvey) == 1

    async def test_duplicate_category_names_link_once(self, db):
        admin = await create_user(db, email="author@test.com")
        await create_category(db, name="Health")

        data = await survey_service.create_survey(
            db,
            title="Pulse",
            questions=[],
            categories=["Health", " Health "],
            creator_id=admin.id,
        )
        assert len(data["categories"]) == 1
        assert await _count(db, SurveyCategory) == 1

    async def test_missing_category_leaves_no_rows(self, db):
        admin = await create_user(db, email="author@test.com")
        admin_id = admin.id

        with pytest.raises(HTTPException) as exc_info:
            await survey_service.create_survey(
                db,
                title="Pulse",
                questions=["Q1", "Q2"],
                categories=["Nope"],
                creator_id=admin_id,
            )

        assert exc_info.value.status_code == 400
        assert await _count(db, Survey) == 0
        assert await _count(db, Question) == 0
        assert await _count(db, UserSurvey) == 0

    async def test_unknown_creator_rejected(self, db):
        with pytest.raises(HTTPException) as exc_info:
            await survey_service.create_survey(
                db, title="Orphan", questions=[], categories=[], creator_id=uuid.uuid4()
            )
        assert exc_info.value.status_code == 400
        assert await _count(db, Survey) == 0


class TestFillUserSurvey:
    @pytest.fixture
    async def env(self, db):
        author = await create_user(db, email="author@test.com")
        respondent = await create_user(db, email="respondent@test.com")
        survey, questions = await create_survey(db, creator=author, status="published")
        user_survey = await assign_user(db, user=respondent, survey=survey)
        return {
            "user_id": respondent.id,
            "user_survey_id": user_survey.id,
            "questions": [q.id for q in questions],
        }

    async def test_last_duplicate_answer_wins(self, db, env):
        q1, _ = env["questions"]
        await survey_service.fill_user_survey(
            db,
            user_survey_id=env["user_survey_id"],
            user_id=env["user_id"],
            answers=[AnswerIn(question_id=q1, answer="a"), AnswerIn(question_id=q1, answer="b")],
            submit=False,
        )
        rows = (await db.execute(select(Answer))).scalars().all()
        assert [(r.question_id, r.answer) for r in rows] == [(q1, "b")]

    async def test_submit_sets_timestamp(self, db, env):
        q1, q2 = env["questions"]
        user_survey, message = await survey_service.fill_user_survey(
            db,
            user_survey_id=env["user_survey_id"],
            user_id=env["user_id"],
            answers=[AnswerIn(question_id=q1, answer="a"), AnswerIn(question_id=q2, answer="b")],
            submit=True,
        )
        assert message == "User survey submitted successfully"
        assert user_survey.status == "submitted"
        assert user_survey.submitted_at is not None

    async def test_failed_submit_writes_nothing(self, db, env):
        q1, _ = env["questions"]
        with pytest.raises(HTTPException) as exc_info:
            await survey_service.fill_user_survey(
                db,
                user_survey_id=env["user_survey_id"],
                user_id=env["user_id"],
                answers=[AnswerIn(question_id=q1, answer="a")],
                submit=True,
            )
        assert exc_info.value.status_code == 400
        assert await _count(db, Answer) == 0


class TestUpdateSurvey:
    async def test_upsert_is_idempotent(self, db):
        author = await create_user(db, email="author@test.com")
        survey, questions = await create_survey(db, creator=author, questions=("Q1",))
        survey_id, q1 = survey.id, questions[0].id
        body = SurveyUpdate(questions=[QuestionUpsert(id=q1, question="Reworded")])

        await survey_service.update_survey(db, survey_id=survey_id, body=body)
        await survey_service.update_survey(db, survey_id=survey_id, body=body)

        rows = (await db.execute(select(Question))).scalars().all()
        assert [(r.id, r.question) for r in rows] == [(q1, "Reworded")]

    async def test_only_publish_transition_applies(self, db):
        author = await create_user(db, email="author@test.com")
        survey, _ = await create_survey(db, creator=author)

        updated = await survey_service.update_survey(
            db, survey_id=survey.id, body=SurveyUpdate(status="archived")
        )
        assert updated.status == "draft"


class TestListings:
    async def test_list_user_surveys_includes_title(self, db):
        author = await create_user(db, email="author@test.com")
        survey, _ = await create_survey(db, creator=author, title="Quarterly")
        await assign_user(db, user=author, survey=survey, status="draft")

        [item] = await survey_service.list_user_surveys(db, author.id)
        assert item["survey_title"] == "Quarterly"
        assert item["status"] == "draft"

    async def test_list_surveys_counts_zero(self, db):
        author = await create_user(db, email="author@test.com")
        await create_survey(db, creator=author, questions=())

        [item] = await survey_service.list_surveys(db)
        assert item["question_count"] == 0
        assert item["assignment_count"] == 0
