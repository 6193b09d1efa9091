"""Add ranked category progress table.

Revision ID: 20261019_001
Revises:
Create Date: 2026-10-19 00:00:01.000000

Creates: ranked_category_progress
"""

revision = "20261019_001"
down_revision = None

from alembic import op
import sqlalchemy as sa


def upgrade() -> None:
    op.create_table(
        "ranked_category_progress",
        sa.Column("category", sa.String(64), primary_key=True),
        sa.Column("xp", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("progress_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_run_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("runs_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("distinct_tasks_count", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint("xp >= 0 AND xp <= 1200", name="valid_xp"),
        sa.CheckConstraint("runs_count >= 0", name="valid_runs_count"),
        sa.CheckConstraint("distinct_tasks_count >= 0", name="valid_distinct_tasks_count"),
    )


def downgrade() -> None:
    op.drop_table("ranked_category_progress")
