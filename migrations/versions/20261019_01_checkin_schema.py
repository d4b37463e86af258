"""Workout catalog and check-in history schema."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "workouts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("intensity_level", sa.String(length=20), nullable=False, server_default="medium"),
        sa.Column("workout_type", sa.String(length=50), nullable=True),
        sa.Column("youtube_url", sa.String(length=500), nullable=True),
        sa.Column("youtube_id", sa.String(length=50), nullable=True),
        sa.Column("good_for_symptoms", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )

    op.create_table(
        "user_check_ins",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("energy_level", sa.Integer(), nullable=False),
        sa.Column("symptoms", sa.JSON(), nullable=False),
        sa.Column("moods", sa.JSON(), nullable=False),
        sa.Column("preferred_workout_type", sa.String(length=50), nullable=True),
        sa.Column("recommended_workout_ids", sa.JSON(), nullable=False),
        sa.Column("gemini_reasoning", sa.Text(), nullable=True),
        sa.Column("used_fallback", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index(
        "ix_user_check_ins_user_id",
        "user_check_ins",
        ["user_id"],
        unique=False,
    )
    op.create_index(
        "ix_user_check_ins_user_created",
        "user_check_ins",
        ["user_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_user_check_ins_user_created", table_name="user_check_ins")
    op.drop_index("ix_user_check_ins_user_id", table_name="user_check_ins")
    op.drop_table("user_check_ins")
    op.drop_table("workouts")
