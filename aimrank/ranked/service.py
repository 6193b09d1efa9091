"""ProgressService: applies scored runs to per-category XP and progress points."""

from aimrank.repositories.exceptions import ConcurrencyError, RepositoryError
from aimrank.repositories.resilience import RetryConfig, with_retry
from aimrank.shared.utils.datetime_utils import utcnow
from aimrank.shared.utils.logging import get_logger

from .calculator import (
    XP_MAX,
    apply_anchor,
    clamp_xp,
    compute_run_xp_gain,
    compute_skill_target_points,
    resolve_baseline_percentile,
    round_half_up,
)
from .config import RankedSettings, get_settings
from .locks import CategoryLockRegistry, ProgressUpdateTimeoutError
from .schemas import ProgressSnapshot, RunObservation
from .store import CategoryProgressRow, CategoryProgressStore, ProgressUpdate
from .tiers import UNRANKED, TierRange, TierRangeResolver, tier_range_for_percentile

logger = get_logger(__name__)

# Shared by every service instance in the process so that requests holding
# different sessions still queue on the same category.
_category_locks = CategoryLockRegistry()


class ProgressService:
    """Reads and updates ranked category progress.

    Writes never commit; the caller owns the transaction.
    """

    def __init__(
        self,
        store: CategoryProgressStore,
        settings: RankedSettings | None = None,
        locks: CategoryLockRegistry | None = None,
        tier_range_resolver: TierRangeResolver = tier_range_for_percentile,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.locks = locks if locks is not None else _category_locks
        self.resolve_tier_range = tier_range_resolver

    async def update_category_progress(self, observation: RunObservation) -> ProgressSnapshot:
        """Apply one run to its category and return the resulting snapshot.

        Raises:
            ProgressUpdateTimeoutError: the category lock was not acquired in time
            ConcurrencyError: the row kept changing underneath us after every retry
        """
        if not self.settings.serialize_updates:
            return await self._update_with_retry(observation)

        async with self.locks.hold(
            observation.category, timeout=self.settings.lock_timeout_seconds
        ):
            return await self._update_with_retry(observation)

    async def _update_with_retry(self, observation: RunObservation) -> ProgressSnapshot:
        config = RetryConfig(
            max_retries=self.settings.max_conflict_retries,
            base_delay=self.settings.conflict_retry_base_delay,
            max_delay=self.settings.conflict_retry_max_delay,
            retryable_exceptions=(ConcurrencyError,),
        )
        return await with_retry(config)(self._apply_run)(observation)

    async def _apply_run(self, observation: RunObservation) -> ProgressSnapshot:
        category = observation.category

        # 1. Make sure a row exists, then load it (with row lock)
        await self.store.insert_if_absent(category)
        row = await self.store.get_row(category, for_update=True)
        if row is None:
            raise RepositoryError("Progress row missing after insert", {"category": category})

        # 2. XP for this run against the recent baseline
        p_now = observation.last_run_percentile
        p_base = resolve_baseline_percentile(observation.recent_percentiles, p_now)
        xp_gain = compute_run_xp_gain(p_now, p_base, observation.skill_tier)
        new_xp = clamp_xp(row.xp + xp_gain)

        # 3. Pull progress points toward the skill target, clamped to the tier
        target = compute_skill_target_points(observation.skill_percentile)
        tier_range = self.resolve_tier_range(observation.skill_percentile)
        self._check_tier_label(observation, tier_range)
        new_points = round_half_up(
            apply_anchor(row.progress_points, target, xp_gain, tier_range)
        )

        # 4. Conditional write
        now = utcnow()
        written = await self.store.update_row(
            category,
            ProgressUpdate(
                xp=new_xp,
                progress_points=new_points,
                runs_count=row.runs_count + 1,
                distinct_tasks_count=observation.distinct_tasks,
                last_updated_at=now,
                last_run_at=now,
            ),
            expected_runs_count=row.runs_count,
        )
        if not written:
            logger.info(
                "progress_update_conflict",
                category=category,
                expected_runs_count=row.runs_count,
            )
            raise ConcurrencyError(category, row.runs_count)

        logger.info(
            "category_progress_updated",
            category=category,
            xp_gain=xp_gain,
            xp=new_xp,
            progress_points=new_points,
            target_points=target,
            tier=tier_range.tier,
            runs_count=row.runs_count + 1,
        )

        return ProgressSnapshot(
            xp=new_xp,
            xp_gain_last_run=xp_gain,
            progress_points=new_points,
            progress_tier_display=observation.skill_tier,
            is_overflow=new_xp > XP_MAX,
        )

    def _check_tier_label(self, observation: RunObservation, tier_range: TierRange) -> None:
        if observation.skill_percentile is None or tier_range.tier == UNRANKED:
            return
        if observation.skill_tier != tier_range.tier:
            logger.warning(
                "tier_label_mismatch",
                category=observation.category,
                skill_tier=observation.skill_tier,
                skill_percentile=observation.skill_percentile,
                resolved_tier=tier_range.tier,
            )

    async def get_category_progress(self, category: str) -> CategoryProgressRow | None:
        """Stored row for ``category``, or ``None`` if it was never created."""
        return await self.store.get_row(category)

    async def list_category_progress(self) -> list[CategoryProgressRow]:
        return await self.store.list_rows()

    async def initialize_category_progress(self, category: str) -> CategoryProgressRow:
        """Create the zero row for ``category`` if needed. Never resets an existing row."""
        await self.store.insert_if_absent(category)
        row = await self.store.get_row(category)
        if row is None:
            raise RepositoryError("Progress row missing after insert", {"category": category})
        return row

    async def get_progress_display_data(self, category: str, skill_tier: str) -> ProgressSnapshot:
        """Snapshot for display without touching the store's contents."""
        row = await self.store.get_row(category)
        if row is None:
            return ProgressSnapshot(
                xp=0,
                progress_points=0,
                progress_tier_display=skill_tier,
            )
        return ProgressSnapshot(
            xp=row.xp,
            progress_points=row.progress_points,
            progress_tier_display=skill_tier,
            is_overflow=row.xp > XP_MAX,
        )


__all__ = [
    "ConcurrencyError",
    "ProgressService",
    "ProgressUpdateTimeoutError",
]
