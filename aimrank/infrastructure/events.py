"""Run event dispatch for the ingestion pipeline.

The run importer calls ``emit_run_event()`` once per recorded run. The
progress update then runs as a background task on the running loop, in its
own database session and transaction.
"""

import asyncio
from typing import Any

from aimrank.infrastructure.database.session import get_db_session
from aimrank.ranked.handlers import RunEventHandler
from aimrank.ranked.service import ProgressService
from aimrank.repositories.category_progress_repository import CategoryProgressRepository
from aimrank.shared.utils.logging import get_logger

logger = get_logger(__name__)

# Strong references so pending tasks are not garbage collected mid-flight.
_pending_tasks: set[asyncio.Task] = set()


def emit_run_event(event_data: dict[str, Any]) -> asyncio.Task:
    """Schedule ``handle_run_event`` without blocking the caller.

    Args:
        event_data: ``{"event_type": ..., "data": {...}}`` or a bare payload
            carrying its own ``event_type``.
    """
    loop = asyncio.get_running_loop()
    task = loop.create_task(handle_run_event(event_data))
    _pending_tasks.add(task)
    task.add_done_callback(_pending_tasks.discard)
    return task


async def handle_run_event(event_data: dict[str, Any]) -> bool:
    """Apply one run event in a fresh session; commit only if progress changed."""
    event_type = event_data.get("event_type", "")
    data = event_data.get("data", event_data)

    try:
        async with get_db_session() as session:
            handler = RunEventHandler(ProgressService(CategoryProgressRepository(session)))
            applied = await handler.handle_event(event_type, data)
            if applied:
                await session.commit()
            else:
                await session.rollback()
            return applied
    except Exception as e:
        logger.error("run_event_error", error=str(e), event_type=event_type)
        return False


__all__ = ["emit_run_event", "handle_run_event"]
