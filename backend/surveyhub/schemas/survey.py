from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator


class SurveyCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    questions: list[str] = []
    categories: list[str] = []  # category names

    @field_validator("questions")
    @classmethod
    def strip_questions(cls, v: list[str]) -> list[str]:
        cleaned = [q.strip() for q in v]
        if any(not q for q in cleaned):
            raise ValueError("Questions must not be empty")
        return cleaned


class QuestionUpsert(BaseModel):
    id: uuid.UUID | None = None
    question: str = Field(..., min_length=1)


class SurveyUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=500)
    # Only the draft -> published transition is honoured
    status: str | None = None
    categories: list[str] | None = None
    questions: list[QuestionUpsert] | None = None


class InviteRequest(BaseModel):
    invitee_email: EmailStr


class AnswerIn(BaseModel):
    question_id: uuid.UUID
    answer: str


class FillSurveyRequest(BaseModel):
    answers: list[AnswerIn] = []
    status: Literal["draft", "submitted", "completed"] | None = None

    @property
    def wants_submit(self) -> bool:
        return self.status in ("submitted", "completed")


class BulkAnswersRequest(BaseModel):
    answers: list[AnswerIn]
