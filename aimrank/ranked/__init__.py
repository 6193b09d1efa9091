"""Ranked progress: per-category XP and skill-anchored progress points."""

from aimrank.ranked.schemas import ProgressSnapshot, RunObservation
from aimrank.ranked.service import ProgressService
from aimrank.ranked.store import (
    CategoryProgressRow,
    CategoryProgressStore,
    InMemoryCategoryProgressStore,
)

__all__ = [
    "CategoryProgressRow",
    "CategoryProgressStore",
    "InMemoryCategoryProgressStore",
    "ProgressService",
    "ProgressSnapshot",
    "RunObservation",
]
