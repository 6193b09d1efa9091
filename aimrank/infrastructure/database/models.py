"""SQLAlchemy ORM models for the ranked progress database."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""


# ===========================================
# RANKED PROGRESS TABLES
# ===========================================


class CategoryProgressModel(Base):
    """Accumulated XP and anchored progress points for one category."""

    __tablename__ = "ranked_category_progress"

    category: Mapped[str] = mapped_column(String(64), primary_key=True)
    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    progress_points: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    last_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_run_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    runs_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    distinct_tasks_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    __table_args__ = (
        CheckConstraint("xp >= 0 AND xp <= 1200", name="valid_xp"),
        CheckConstraint("runs_count >= 0", name="valid_runs_count"),
        CheckConstraint("distinct_tasks_count >= 0", name="valid_distinct_tasks_count"),
    )
