from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from surveyhub.models.base import Base, TimestampMixin, UUIDMixin


class SurveyStatus:
    DRAFT = "draft"
    PUBLISHED = "published"


class UserSurveyStatus:
    INITIAL = "initial"
    DRAFT = "draft"
    SUBMITTED = "submitted"


class Survey(Base, UUIDMixin, TimestampMixin):
    """Admin-authored questionnaire; editable until published."""

    __tablename__ = "surveys"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=SurveyStatus.DRAFT)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )


class UserSurvey(Base, UUIDMixin, TimestampMixin):
    """One user's assignment to one survey and their progress on it."""

    __tablename__ = "user_surveys"
    __table_args__ = (UniqueConstraint("user_id", "survey_id", name="uq_user_survey"),)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    survey_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("surveys.id", ondelete="CASCADE"), index=True, nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), default=UserSurveyStatus.INITIAL)
    # Statuses: initial, draft, submitted
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Question(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "questions"

    survey_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("surveys.id", ondelete="CASCADE"), index=True, nullable=False
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0)


class Answer(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "answers"
    __table_args__ = (
        UniqueConstraint("question_id", "user_survey_id", name="uq_answer_question_user_survey"),
    )

    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    user_survey_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("user_surveys.id", ondelete="CASCADE"), index=True, nullable=False
    )
    answer: Mapped[str] = mapped_column(Text, nullable=False, default="")
