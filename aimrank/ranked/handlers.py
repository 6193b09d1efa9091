"""Run ingestion event handler.

Consumes ``run.recorded`` events from the run-import pipeline and feeds
eligible competitive runs into ``ProgressService.update_category_progress``.

Expected payload::

    {
        "category": "Tracking",
        "is_practice": false,
        "last_run_percentile": 0.64,
        "recent_percentiles": [0.64, 0.58, ...],   # newest first
        "skill_tier": "Platinum",                  # optional
        "category_rating": {
            "rating": 0.71,
            "is_provisional": false,
            "distinct_tasks": 4
        }
    }
"""

from typing import Any

from aimrank.shared.utils.logging import get_logger

from .schemas import RunObservation
from .service import ProgressService
from .tiers import tier_range_for_percentile

logger = get_logger(__name__)


class RunEventHandler:
    """Routes run-ingestion events to progress updates."""

    def __init__(self, service: ProgressService):
        self.service = service

    async def handle_event(self, event_type: str, data: dict[str, Any]) -> bool:
        """Route incoming event to appropriate handler.

        Returns True only when a progress update was applied.
        """
        handlers = {
            "run.recorded": self._handle_run_recorded,
        }

        handler = handlers.get(event_type)
        if handler:
            try:
                return await handler(data)
            except Exception:
                logger.exception("run_event_failed", event_type=event_type)
                return False
        logger.debug("run_event_ignored", event_type=event_type)
        return False

    async def _handle_run_recorded(self, data: dict[str, Any]) -> bool:
        if data.get("is_practice"):
            return False

        category = data.get("category")
        if category is None or category not in self.service.settings.categories:
            return False

        last_run_percentile = data.get("last_run_percentile")
        if last_run_percentile is None:
            return False

        rating = data.get("category_rating") or {}
        skill_percentile = rating.get("rating")
        if skill_percentile is None or rating.get("is_provisional", False):
            logger.debug(
                "run_event_skipped_unrated",
                category=category,
                provisional=rating.get("is_provisional", False),
            )
            return False

        skill_tier = data.get("skill_tier") or tier_range_for_percentile(skill_percentile).tier

        observation = RunObservation(
            category=category,
            skill_tier=skill_tier,
            skill_percentile=skill_percentile,
            recent_percentiles=data.get("recent_percentiles") or [],
            last_run_percentile=last_run_percentile,
            distinct_tasks=rating.get("distinct_tasks", 0),
        )
        await self.service.update_category_progress(observation)
        return True
