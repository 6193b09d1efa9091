"""Database infrastructure package."""

from aimrank.infrastructure.database.models import Base, CategoryProgressModel
from aimrank.infrastructure.database.session import (
    close_db,
    get_db,
    get_db_session,
    init_db,
)

__all__ = [
    "Base",
    "CategoryProgressModel",
    "close_db",
    "get_db",
    "get_db_session",
    "init_db",
]
