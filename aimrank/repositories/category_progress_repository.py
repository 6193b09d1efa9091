"""Category progress repository for PostgreSQL operations.

Implements the ``CategoryProgressStore`` contract on top of an
``AsyncSession``. The repository flushes but never commits; the caller
owns the transaction.
"""

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from aimrank.infrastructure.database.models import CategoryProgressModel
from aimrank.ranked.store import CategoryProgressRow, ProgressUpdate
from aimrank.shared.utils.logging import get_logger

logger = get_logger(__name__)


def _to_row(model: CategoryProgressModel) -> CategoryProgressRow:
    return CategoryProgressRow(
        category=model.category,
        xp=model.xp,
        progress_points=model.progress_points,
        last_updated_at=model.last_updated_at,
        last_run_at=model.last_run_at,
        runs_count=model.runs_count,
        distinct_tasks_count=model.distinct_tasks_count,
    )


class CategoryProgressRepository:
    """Repository for ``ranked_category_progress`` rows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_row(
        self, category: str, *, for_update: bool = False
    ) -> CategoryProgressRow | None:
        """Load one row, optionally locking it until the transaction ends."""
        query = select(CategoryProgressModel).where(CategoryProgressModel.category == category)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        model = result.scalar_one_or_none()
        return _to_row(model) if model is not None else None

    async def insert_if_absent(self, category: str) -> None:
        """Create a zeroed row unless one already exists."""
        stmt = (
            insert(CategoryProgressModel)
            .values(
                category=category,
                xp=0,
                progress_points=0,
                runs_count=0,
                distinct_tasks_count=0,
                last_updated_at=None,
                last_run_at=None,
            )
            .on_conflict_do_nothing(index_elements=[CategoryProgressModel.category])
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def update_row(
        self,
        category: str,
        update_: ProgressUpdate,
        *,
        expected_runs_count: int | None = None,
    ) -> bool:
        """Write a progress update.

        With ``expected_runs_count`` the write only lands if the stored
        ``runs_count`` still matches; returns ``False`` otherwise.
        """
        stmt = update(CategoryProgressModel).where(CategoryProgressModel.category == category)
        if expected_runs_count is not None:
            stmt = stmt.where(CategoryProgressModel.runs_count == expected_runs_count)
        stmt = stmt.values(
            xp=update_.xp,
            progress_points=update_.progress_points,
            runs_count=update_.runs_count,
            distinct_tasks_count=update_.distinct_tasks_count,
            last_updated_at=update_.last_updated_at,
            last_run_at=update_.last_run_at,
        ).execution_options(synchronize_session=False)

        result = await self.session.execute(stmt)
        await self.session.flush()

        if result.rowcount == 0:
            logger.debug(
                "category_progress_write_skipped",
                category=category,
                expected_runs_count=expected_runs_count,
            )
            return False
        return True

    async def list_rows(self) -> list[CategoryProgressRow]:
        """All stored rows, ordered by category."""
        result = await self.session.execute(
            select(CategoryProgressModel).order_by(CategoryProgressModel.category)
        )
        return [_to_row(model) for model in result.scalars().all()]


__all__ = ["CategoryProgressRepository"]
