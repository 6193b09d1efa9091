"""Global pytest fixtures for the ranked progress service.

This module provides shared fixtures for testing including:
- Mock database sessions for repository tests
- In-memory progress stores and services
- Run observation builders
- HTTP client wired to the in-memory store
"""

from collections.abc import AsyncGenerator, Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from aimrank.ranked.config import RankedSettings
from aimrank.ranked.locks import CategoryLockRegistry
from aimrank.ranked.schemas import RunObservation
from aimrank.ranked.service import ProgressService
from aimrank.ranked.store import InMemoryCategoryProgressStore


# ===========================================
# DATABASE SESSION FIXTURES
# ===========================================


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncMock, None]:
    """Create a mock async database session for unit tests."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.flush = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()

    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)

    yield session


# ===========================================
# PROGRESS SERVICE FIXTURES
# ===========================================


@pytest.fixture
def ranked_settings() -> RankedSettings:
    """Settings with fast conflict retries and no lock timeout."""
    return RankedSettings(
        serialize_updates=True,
        lock_timeout_seconds=None,
        max_conflict_retries=5,
        conflict_retry_base_delay=0.0,
        conflict_retry_max_delay=0.0,
    )


@pytest.fixture
def progress_store() -> InMemoryCategoryProgressStore:
    return InMemoryCategoryProgressStore()


@pytest.fixture
def lock_registry() -> CategoryLockRegistry:
    return CategoryLockRegistry()


@pytest.fixture
def progress_service(
    progress_store: InMemoryCategoryProgressStore,
    ranked_settings: RankedSettings,
    lock_registry: CategoryLockRegistry,
) -> ProgressService:
    """Progress service over a fresh in-memory store and private lock registry."""
    return ProgressService(progress_store, settings=ranked_settings, locks=lock_registry)


# ===========================================
# RUN OBSERVATION FIXTURES
# ===========================================


@pytest.fixture
def make_observation() -> Callable[..., RunObservation]:
    """Build a run observation; a first-ever Gold run in Tracking unless overridden."""

    def _make(**overrides: Any) -> RunObservation:
        data: dict[str, Any] = {
            "category": "Tracking",
            "skill_tier": "Gold",
            "skill_percentile": 0.5,
            "recent_percentiles": [0.62],
            "last_run_percentile": 0.62,
            "distinct_tasks": 3,
        }
        data.update(overrides)
        return RunObservation(**data)

    return _make


# ===========================================
# HTTP CLIENT FIXTURES
# ===========================================


@pytest_asyncio.fixture
async def async_client(
    progress_service: ProgressService,
    db_session: AsyncMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client whose ranked routes use the in-memory store."""
    from aimrank.infrastructure.database.session import get_db
    from aimrank.main import app
    from aimrank.ranked.api import get_progress_service

    async def _override_db() -> AsyncGenerator[AsyncMock, None]:
        yield db_session

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_progress_service] = lambda: progress_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
