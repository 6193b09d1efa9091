"""Repository layer exceptions.

Typed errors for progress storage so callers can tell a lost write race
apart from a broken store.
"""

from typing import Any


class RepositoryError(Exception):
    """Base exception for all repository errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ConcurrencyError(RepositoryError):
    """Raised when a progress row changed between read and write."""

    def __init__(
        self,
        category: str,
        expected_runs_count: int,
    ) -> None:
        message = (
            f"Concurrent progress update detected for category '{category}': "
            f"expected runs_count {expected_runs_count}"
        )
        details = {
            "category": category,
            "expected_runs_count": expected_runs_count,
        }
        super().__init__(message, details)
        self.category = category
        self.expected_runs_count = expected_runs_count


class TransactionError(RepositoryError):
    """Raised when a transaction operation fails."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        details: dict[str, Any] = {}
        if original_error:
            details["original_error"] = str(original_error)
            details["error_type"] = type(original_error).__name__

        super().__init__(message, details)
        self.original_error = original_error


__all__ = [
    "ConcurrencyError",
    "RepositoryError",
    "TransactionError",
]
