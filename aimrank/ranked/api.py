"""REST API endpoints for ranked category progress."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from aimrank.infrastructure.database.session import get_db
from aimrank.repositories.category_progress_repository import CategoryProgressRepository
from aimrank.repositories.exceptions import ConcurrencyError, TransactionError
from aimrank.shared.utils.logging import get_logger

from .calculator import recent_run_xp_gains
from .config import get_settings
from .locks import ProgressUpdateTimeoutError
from .schemas import (
    CategoryProgressResponse,
    ProgressSnapshot,
    RecentRunsXpRequest,
    RecentRunsXpResponse,
    RunObservation,
    TierRangeResponse,
)
from .service import ProgressService
from .tiers import all_rank_tiers

logger = get_logger(__name__)

router = APIRouter(prefix="/ranked", tags=["ranked"])


# ===========================================
# DEPENDENCIES
# ===========================================


async def get_progress_service(db: AsyncSession = Depends(get_db)) -> ProgressService:
    """Progress service bound to the request's database session."""
    return ProgressService(CategoryProgressRepository(db))


def require_known_category(category: str) -> str:
    categories = get_settings().categories
    if category not in categories:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown category '{category}'. Must be one of: {categories}",
        )
    return category


# ===========================================
# READ ENDPOINTS
# ===========================================


@router.get("/tiers", response_model=list[TierRangeResponse])
async def list_tiers():
    """Rank ladder, lowest tier first."""
    return [TierRangeResponse.model_validate(rung) for rung in all_rank_tiers()]


@router.get("/progress", response_model=list[CategoryProgressResponse])
async def list_progress(service: ProgressService = Depends(get_progress_service)):
    """Every stored category progress row."""
    rows = await service.list_category_progress()
    return [CategoryProgressResponse.model_validate(row) for row in rows]


@router.get("/categories/{category}/progress", response_model=ProgressSnapshot)
async def get_progress_display(
    category: str = Depends(require_known_category),
    skill_tier: str = Query(..., min_length=1),
    service: ProgressService = Depends(get_progress_service),
):
    """
    Display snapshot for one category.

    Never writes; a category with no runs yet reports zero XP and points.
    """
    return await service.get_progress_display_data(category, skill_tier)


@router.get("/categories/{category}/progress/raw", response_model=CategoryProgressResponse)
async def get_raw_progress(
    category: str = Depends(require_known_category),
    service: ProgressService = Depends(get_progress_service),
):
    """Stored row for one category."""
    row = await service.get_category_progress(category)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No progress recorded for category '{category}'",
        )
    return CategoryProgressResponse.model_validate(row)


@router.post("/xp-preview", response_model=RecentRunsXpResponse)
async def preview_recent_xp(body: RecentRunsXpRequest):
    """XP each of the newest runs would have earned, newest first."""
    gains = recent_run_xp_gains(body.recent_percentiles, body.skill_tier, limit=body.limit)
    return RecentRunsXpResponse(skill_tier=body.skill_tier, xp_gains=gains)


# ===========================================
# WRITE ENDPOINTS
# ===========================================


@router.post(
    "/categories/{category}/runs",
    response_model=ProgressSnapshot,
    status_code=status.HTTP_201_CREATED,
)
async def record_run(
    body: RunObservation,
    category: str = Depends(require_known_category),
    service: ProgressService = Depends(get_progress_service),
    db: AsyncSession = Depends(get_db),
):
    """Apply one scored run to the category's XP and progress points."""
    if body.category != category:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Body category '{body.category}' does not match path category '{category}'",
        )

    try:
        snapshot = await service.update_category_progress(body)
    except ConcurrencyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e
    except ProgressUpdateTimeoutError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from e

    try:
        await db.commit()
    except SQLAlchemyError as e:
        logger.error("category_progress_commit_failed", category=category, error=str(e))
        raise TransactionError("Failed to commit progress update", original_error=e) from e

    return snapshot


__all__ = ["get_progress_service", "router"]
