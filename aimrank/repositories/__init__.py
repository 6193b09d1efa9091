"""Repository layer for database operations.

Storage adapters plus the typed errors and retry helper shared by them.
"""

from aimrank.repositories.category_progress_repository import CategoryProgressRepository
from aimrank.repositories.exceptions import (
    ConcurrencyError,
    RepositoryError,
    TransactionError,
)
from aimrank.repositories.resilience import RetryConfig, with_retry

__all__ = [
    "CategoryProgressRepository",
    "ConcurrencyError",
    "RepositoryError",
    "RetryConfig",
    "TransactionError",
    "with_retry",
]
