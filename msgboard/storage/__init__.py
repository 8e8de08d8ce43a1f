"""
storage/__init__.py
-------------------
Re-export the store contract and pick a backend from settings:

    from msgboard.storage import build_storage
"""

from msgboard.core.config import Settings
from msgboard.storage.base import (
    BoardStorage,
    CommentRecord,
    LikeTarget,
    MessageRecord,
)
from msgboard.storage.memory import MemoryStorage
from msgboard.storage.sql import SqlStorage


def build_storage(settings: Settings) -> BoardStorage:
    if settings.STORAGE_BACKEND == "memory":
        return MemoryStorage()
    return SqlStorage(settings.DATABASE_URL, echo=settings.DEBUG)


__all__ = [
    "BoardStorage",
    "CommentRecord",
    "LikeTarget",
    "MemoryStorage",
    "MessageRecord",
    "SqlStorage",
    "build_storage",
]
