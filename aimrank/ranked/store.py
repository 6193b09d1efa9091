"""Per-category progress storage contract and an in-process implementation."""

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True)
class CategoryProgressRow:
    """One persisted progress row. At most one exists per category."""

    category: str
    xp: int = 0
    progress_points: int = 0
    last_updated_at: datetime | None = None
    last_run_at: datetime | None = None
    runs_count: int = 0
    distinct_tasks_count: int = 0


@dataclass(frozen=True)
class ProgressUpdate:
    """Fields written by a single progress update."""

    xp: int
    progress_points: int
    runs_count: int
    distinct_tasks_count: int
    last_updated_at: datetime
    last_run_at: datetime


class CategoryProgressStore(Protocol):
    """Async, keyed storage of category progress rows.

    Every method is a suspension point; callers must not assume that two
    consecutive calls observe the same state unless they hold a lock.
    """

    async def get_row(
        self, category: str, *, for_update: bool = False
    ) -> CategoryProgressRow | None: ...

    async def insert_if_absent(self, category: str) -> None: ...

    async def update_row(
        self,
        category: str,
        update: ProgressUpdate,
        *,
        expected_runs_count: int | None = None,
    ) -> bool: ...

    async def list_rows(self) -> list[CategoryProgressRow]: ...


class InMemoryCategoryProgressStore:
    """Dict-backed store for tests, previews and single-process use.

    Yields to the event loop on every call so that concurrent tasks
    interleave between a read and the following write, the same way they
    would against a real database.
    """

    def __init__(self) -> None:
        self._rows: dict[str, CategoryProgressRow] = {}

    async def get_row(
        self, category: str, *, for_update: bool = False
    ) -> CategoryProgressRow | None:
        await asyncio.sleep(0)
        return self._rows.get(category)

    async def insert_if_absent(self, category: str) -> None:
        await asyncio.sleep(0)
        self._rows.setdefault(category, CategoryProgressRow(category=category))

    async def update_row(
        self,
        category: str,
        update: ProgressUpdate,
        *,
        expected_runs_count: int | None = None,
    ) -> bool:
        await asyncio.sleep(0)
        current = self._rows.get(category)
        if current is None:
            return False
        if expected_runs_count is not None and current.runs_count != expected_runs_count:
            return False
        self._rows[category] = replace(
            current,
            xp=update.xp,
            progress_points=update.progress_points,
            runs_count=update.runs_count,
            distinct_tasks_count=update.distinct_tasks_count,
            last_updated_at=update.last_updated_at,
            last_run_at=update.last_run_at,
        )
        return True

    async def list_rows(self) -> list[CategoryProgressRow]:
        await asyncio.sleep(0)
        return sorted(self._rows.values(), key=lambda row: row.category)


__all__ = [
    "CategoryProgressRow",
    "CategoryProgressStore",
    "InMemoryCategoryProgressStore",
    "ProgressUpdate",
]
