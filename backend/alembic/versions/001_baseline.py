"""baseline: users, roles, categories, surveys, questions, answers

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    from sqlalchemy import inspect as sa_inspect

    conn = op.get_bind()
    inspector = sa_inspect(conn)

    if not inspector.has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Uuid(), primary_key=True),
            sa.Column("email", sa.String(320), nullable=False, unique=True),
            sa.Column("display_name", sa.String(200), nullable=False),
            sa.Column("password_hash", sa.String(200), nullable=False),
            sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
            *_timestamps(),
        )

    if not inspector.has_table("roles"):
        op.create_table(
            "roles",
            sa.Column("id", sa.Uuid(), primary_key=True),
            sa.Column("key", sa.String(50), nullable=False, unique=True),
            sa.Column("label", sa.String(200), nullable=False),
        )

    if not inspector.has_table("user_roles"):
        op.create_table(
            "user_roles",
            sa.Column("id", sa.Uuid(), primary_key=True),
            sa.Column(
                "user_id",
                sa.Uuid(),
                sa.ForeignKey("users.id", ondelete="CASCADE"),
                nullable=False,
                index=True,
            ),
            sa.Column(
                "role_id",
                sa.Uuid(),
                sa.ForeignKey("roles.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.UniqueConstraint("user_id", "role_id", name="uq_user_role"),
        )

    if not inspector.has_table("categories"):
        op.create_table(
            "categories",
            sa.Column("id", sa.Uuid(), primary_key=True),
            sa.Column("name", sa.String(200), nullable=False, unique=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(20), server_default="active"),
            *_timestamps(),
        )

    if not inspector.has_table("surveys"):
        op.create_table(
            "surveys",
            sa.Column("id", sa.Uuid(), primary_key=True),
            sa.Column("title", sa.String(500), nullable=False),
            sa.Column("status", sa.String(20), server_default="draft"),
            sa.Column(
                "created_by",
                sa.Uuid(),
                sa.ForeignKey("users.id", ondelete="SET NULL"),
                nullable=True,
            ),
            *_timestamps(),
        )

    if not inspector.has_table("survey_categories"):
        op.create_table(
            "survey_categories",
            sa.Column(
                "survey_id",
                sa.Uuid(),
                sa.ForeignKey("surveys.id", ondelete="CASCADE"),
                primary_key=True,
            ),
            sa.Column(
                "category_id",
                sa.Uuid(),
                sa.ForeignKey("categories.id", ondelete="CASCADE"),
                primary_key=True,
            ),
        )

    if not inspector.has_table("user_surveys"):
        op.create_table(
            "user_surveys",
            sa.Column("id", sa.Uuid(), primary_key=True),
            sa.Column(
                "user_id",
                sa.Uuid(),
                sa.ForeignKey("users.id", ondelete="CASCADE"),
                nullable=False,
                index=True,
            ),
            sa.Column(
                "survey_id",
                sa.Uuid(),
                sa.ForeignKey("surveys.id", ondelete="CASCADE"),
                nullable=False,
                index=True,
            ),
            sa.Column("status", sa.String(20), server_default="initial"),
            sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.UniqueConstraint("user_id", "survey_id", name="uq_user_survey"),
        )

    if not inspector.has_table("questions"):
        op.create_table(
            "questions",
            sa.Column("id", sa.Uuid(), primary_key=True),
            sa.Column(
                "survey_id",
                sa.Uuid(),
                sa.ForeignKey("surveys.id", ondelete="CASCADE"),
                nullable=False,
                index=True,
            ),
            sa.Column("question", sa.Text(), nullable=False),
            sa.Column("position", sa.Integer(), server_default="0"),
            *_timestamps(),
        )

    if not inspector.has_table("answers"):
        op.create_table(
            "answers",
            sa.Column("id", sa.Uuid(), primary_key=True),
            sa.Column(
                "question_id",
                sa.Uuid(),
                sa.ForeignKey("questions.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column(
                "user_survey_id",
                sa.Uuid(),
                sa.ForeignKey("user_surveys.id", ondelete="CASCADE"),
                nullable=False,
                index=True,
            ),
            sa.Column("answer", sa.Text(), nullable=False, server_default=""),
            *_timestamps(),
            sa.UniqueConstraint(
                "question_id", "user_survey_id", name="uq_answer_question_user_survey"
            ),
        )


def downgrade() -> None:
    for table in (
        "answers",
        "questions",
        "user_surveys",
        "survey_categories",
        "surveys",
        "categories",
        "user_roles",
        "roles",
        "users",
    ):
        op.drop_table(table)
