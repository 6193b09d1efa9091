"""Unit tests for ProgressService over the in-memory store."""

from datetime import timezone
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError
from structlog.testing import capture_logs

from aimrank.ranked.calculator import OVERFLOW_MAX, XP_MAX
from aimrank.ranked.service import ProgressService
from aimrank.ranked.store import InMemoryCategoryProgressStore, ProgressUpdate
from aimrank.shared.utils.datetime_utils import utcnow


async def _seed(store: InMemoryCategoryProgressStore, category: str, **fields) -> None:
    await store.insert_if_absent(category)
    now = utcnow()
    values = {
        "xp": 0,
        "progress_points": 0,
        "runs_count": 0,
        "distinct_tasks_count": 0,
        "last_updated_at": now,
        "last_run_at": now,
    }
    values.update(fields)
    await store.update_row(category, ProgressUpdate(**values))


class TestUpdateCategoryProgress:
    @pytest.mark.asyncio
    async def test_first_run_creates_row(self, progress_service, progress_store, make_observation):
        snapshot = await progress_service.update_category_progress(make_observation())

        # Gold first run: round(4 * 0.90) = 4, points clamped up to Gold's floor
        assert snapshot.xp == 4
        assert snapshot.xp_gain_last_run == 4
        assert snapshot.progress_points == 1200
        assert snapshot.progress_tier_display == "Gold"
        assert snapshot.xp_max == XP_MAX
        assert snapshot.overflow_max == OVERFLOW_MAX
        assert snapshot.is_overflow is False

        row = await progress_store.get_row("Tracking")
        assert row.xp == 4
        assert row.progress_points == 1200
        assert row.runs_count == 1
        assert row.distinct_tasks_count == 3
        assert row.last_run_at is not None
        assert row.last_run_at.tzinfo == timezone.utc
        assert row.last_updated_at == row.last_run_at

    @pytest.mark.asyncio
    async def test_improvement_run(self, progress_service, progress_store, make_observation):
        await _seed(progress_store, "Tracking", xp=100, progress_points=1300, runs_count=7)

        snapshot = await progress_service.update_category_progress(
            make_observation(recent_percentiles=[0.8, 0.5, 0.5], last_run_percentile=0.8)
        )

        assert snapshot.xp_gain_last_run == 22
        assert snapshot.xp == 122
        # 1300 + (1500 - 1300) * 0.05 + 22 * 2
        assert snapshot.progress_points == 1354
        row = await progress_store.get_row("Tracking")
        assert row.runs_count == 8

    @pytest.mark.asyncio
    async def test_distinct_tasks_overwritten(self, progress_service, progress_store, make_observation):
        await progress_service.update_category_progress(make_observation(distinct_tasks=5))
        await progress_service.update_category_progress(make_observation(distinct_tasks=2))

        row = await progress_store.get_row("Tracking")
        assert row.distinct_tasks_count == 2
        assert row.runs_count == 2

    @pytest.mark.asyncio
    async def test_xp_overflow_clamped(self, progress_service, progress_store, make_observation):
        await _seed(progress_store, "Tracking", xp=1198, progress_points=1500, runs_count=300)

        snapshot = await progress_service.update_category_progress(make_observation())

        assert snapshot.xp == OVERFLOW_MAX
        assert snapshot.is_overflow is True

    @pytest.mark.asyncio
    async def test_overflow_flag_starts_above_xp_max(self, progress_service, progress_store, make_observation):
        await _seed(progress_store, "Tracking", xp=996, progress_points=1500, runs_count=200)

        snapshot = await progress_service.update_category_progress(make_observation())

        assert snapshot.xp == 1000
        assert snapshot.is_overflow is False

        snapshot = await progress_service.update_category_progress(make_observation())
        assert snapshot.xp == 1004
        assert snapshot.is_overflow is True

    @pytest.mark.asyncio
    async def test_tier_drop_clamps_to_new_range(self, progress_service, make_observation):
        first = await progress_service.update_category_progress(
            make_observation(skill_tier="Master", skill_percentile=0.95)
        )
        assert first.progress_points == 2700

        second = await progress_service.update_category_progress(
            make_observation(skill_tier="Bronze", skill_percentile=0.1)
        )
        # Bronze max 600 plus the 60 point overflow allowance
        assert second.progress_points == 660

    @pytest.mark.asyncio
    async def test_unrated_category_targets_zero(self, progress_service, make_observation):
        snapshot = await progress_service.update_category_progress(
            make_observation(skill_tier="Unranked", skill_percentile=None)
        )

        assert snapshot.xp_gain_last_run == 4
        assert snapshot.progress_points == 8
        assert snapshot.progress_tier_display == "Unranked"

    @pytest.mark.asyncio
    async def test_progress_points_stay_in_tier_bounds(self, progress_service, make_observation):
        history = [0.9, 0.1, 0.7, 0.3, 0.95, 0.05, 0.5]
        for percentile, tier in [(0.5, "Gold"), (0.85, "Diamond"), (0.3, "Silver"), (0.99, "Champion")]:
            for index in range(len(history)):
                recent = history[index:]
                snapshot = await progress_service.update_category_progress(
                    make_observation(
                        skill_tier=tier,
                        skill_percentile=percentile,
                        recent_percentiles=recent,
                        last_run_percentile=recent[0],
                    )
                )
                rung_min, rung_max = {
                    "Gold": (1200, 1800),
                    "Diamond": (2400, 2700),
                    "Silver": (600, 1200),
                    "Champion": (2970, 3000),
                }[tier]
                assert rung_min <= snapshot.progress_points <= rung_max + 60
                assert 0 <= snapshot.xp <= OVERFLOW_MAX
                assert snapshot.xp_gain_last_run >= 1

    @pytest.mark.asyncio
    async def test_converges_toward_skill_target(self, progress_service, make_observation):
        target = 1500
        previous_distance = None
        reached = False
        for _ in range(30):
            snapshot = await progress_service.update_category_progress(make_observation())
            distance = target - snapshot.progress_points
            if distance <= 0:
                reached = True
                break
            if previous_distance is not None:
                assert distance < previous_distance
            previous_distance = distance

        assert reached
        assert snapshot.progress_points <= 1800 + 60

    @pytest.mark.asyncio
    async def test_tier_label_mismatch_is_logged_not_fatal(self, progress_service, make_observation):
        with capture_logs() as logs:
            snapshot = await progress_service.update_category_progress(
                make_observation(skill_tier="Gold", skill_percentile=0.95)
            )

        # The percentile decides the clamp range; the label is display only.
        assert snapshot.progress_points == 2700
        assert snapshot.progress_tier_display == "Gold"
        assert any(entry["event"] == "tier_label_mismatch" for entry in logs)

    @pytest.mark.asyncio
    async def test_store_failure_propagates_without_retry(self, ranked_settings, lock_registry, make_observation):
        store = InMemoryCategoryProgressStore()
        store.update_row = AsyncMock(side_effect=RuntimeError("disk full"))
        service = ProgressService(store, settings=ranked_settings, locks=lock_registry)

        with pytest.raises(RuntimeError, match="disk full"):
            await service.update_category_progress(make_observation())

        assert store.update_row.await_count == 1
        row = await store.get_row("Tracking")
        assert row.runs_count == 0


class TestObservationValidation:
    def test_unknown_category_rejected(self, make_observation):
        with pytest.raises(ValidationError):
            make_observation(category="Reflex")

    def test_percentile_out_of_range_rejected(self, make_observation):
        with pytest.raises(ValidationError):
            make_observation(last_run_percentile=1.2)
        with pytest.raises(ValidationError):
            make_observation(skill_percentile=-0.1)
        with pytest.raises(ValidationError):
            make_observation(recent_percentiles=[0.5, 1.5])

    def test_negative_distinct_tasks_rejected(self, make_observation):
        with pytest.raises(ValidationError):
            make_observation(distinct_tasks=-1)


class TestReads:
    @pytest.mark.asyncio
    async def test_get_category_progress_absent(self, progress_service):
        assert await progress_service.get_category_progress("Flicking") is None

    @pytest.mark.asyncio
    async def test_initialize_creates_zero_row(self, progress_service):
        row = await progress_service.initialize_category_progress("Flicking")

        assert row.xp == 0
        assert row.progress_points == 0
        assert row.runs_count == 0
        assert row.distinct_tasks_count == 0
        assert row.last_run_at is None

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, progress_service, make_observation):
        await progress_service.update_category_progress(make_observation())
        before = await progress_service.get_category_progress("Tracking")

        after = await progress_service.initialize_category_progress("Tracking")
        again = await progress_service.initialize_category_progress("Tracking")

        assert after == before
        assert again == before

    @pytest.mark.asyncio
    async def test_display_data_without_row(self, progress_service, progress_store):
        snapshot = await progress_service.get_progress_display_data("Flicking", "Silver")

        assert snapshot.xp == 0
        assert snapshot.progress_points == 0
        assert snapshot.xp_gain_last_run == 0
        assert snapshot.progress_tier_display == "Silver"
        assert snapshot.is_overflow is False
        assert await progress_store.get_row("Flicking") is None

    @pytest.mark.asyncio
    async def test_display_data_reports_zero_gain(self, progress_service, progress_store, make_observation):
        await progress_service.update_category_progress(make_observation())
        before = await progress_store.get_row("Tracking")

        snapshot = await progress_service.get_progress_display_data("Tracking", "Gold")

        assert snapshot.xp == before.xp
        assert snapshot.progress_points == before.progress_points
        assert snapshot.xp_gain_last_run == 0
        assert await progress_store.get_row("Tracking") == before

    @pytest.mark.asyncio
    async def test_list_category_progress(self, progress_service, make_observation):
        await progress_service.update_category_progress(make_observation(category="Tracking"))
        await progress_service.update_category_progress(make_observation(category="Flicking"))

        rows = await progress_service.list_category_progress()

        assert [row.category for row in rows] == ["Flicking", "Tracking"]
