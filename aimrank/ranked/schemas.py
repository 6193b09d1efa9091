"""Pydantic v2 schemas for ranked progress."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .calculator import OVERFLOW_MAX, RECENT_RUNS_PREVIEW_LIMIT, XP_MAX
from .config import get_settings


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
    )


# Skill percentile on the 0-1 scale.
Percentile = Annotated[float, Field(ge=0.0, le=1.0)]


class RunObservation(BaseSchema):
    """One scored run, as handed over by the run-ingestion pipeline.

    Validated once here so the engine never has to re-check optional or
    out-of-range values.
    """

    category: str
    skill_tier: str = Field(min_length=1)
    skill_percentile: Percentile | None = None
    recent_percentiles: list[Percentile] = Field(default_factory=list)
    last_run_percentile: Percentile
    distinct_tasks: int = Field(default=0, ge=0)

    @field_validator("category")
    @classmethod
    def _known_category(cls, value: str) -> str:
        categories = get_settings().categories
        if value not in categories:
            raise ValueError(f"Unknown category {value!r}. Must be one of: {categories}")
        return value


class ProgressSnapshot(BaseSchema):
    """What the UI needs to draw a category's XP bar and tier meter."""

    xp: int
    xp_max: int = XP_MAX
    overflow_max: int = OVERFLOW_MAX
    xp_gain_last_run: int = 0
    progress_points: int
    progress_tier_display: str
    is_overflow: bool = False


class CategoryProgressResponse(BaseSchema):
    """A stored progress row."""

    category: str
    xp: int
    progress_points: int
    last_updated_at: datetime | None
    last_run_at: datetime | None
    runs_count: int
    distinct_tasks_count: int


class TierRangeResponse(BaseSchema):
    """One rung of the rank ladder."""

    tier: str
    min_points: int
    max_points: int
    min_percentile: float | None
    max_percentile: float | None


class RecentRunsXpRequest(BaseSchema):
    """History to score, newest first."""

    skill_tier: str = Field(min_length=1)
    recent_percentiles: list[Percentile] = Field(default_factory=list)
    limit: int = Field(default=RECENT_RUNS_PREVIEW_LIMIT, ge=1, le=30)


class RecentRunsXpResponse(BaseSchema):
    """XP earned by each of the newest runs, newest first."""

    skill_tier: str
    xp_gains: list[int]
