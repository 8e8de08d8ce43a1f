"""
storage/base.py
---------------
The entity store contract shared by every backend.

BoardStorage is the capability set the rest of the app talks to. Two
implementations exist:

  MemoryStorage  dict-backed, single process, used for tests and demos
  SqlStorage     async SQLAlchemy (PostgreSQL / SQLite)

Both hand out plain dataclass records rather than ORM objects, so callers
never depend on which backend is running.

Content rules are enforced here, before any mutation: content is trimmed and
must then be 1..CONTENT_MAX_LENGTH characters.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum as PyEnum
from typing import Callable, Iterable, Optional

from msgboard.core.errors import ValidationError
from msgboard.db.base import utcnow
from msgboard.services.ranking import SortMode

CONTENT_MAX_LENGTH = 500

Clock = Callable[[], datetime]


class LikeTarget(str, PyEnum):
    """Like namespaces. A session may like a message and its comment independently."""
    message = "message"
    comment = "comment"


@dataclass
class MessageRecord:
    id: int
    content: str
    created_at: datetime
    like_count: int = 0
    demoted: bool = False
    origin: str = ""


@dataclass
class CommentRecord:
    id: int
    message_id: int
    content: str
    created_at: datetime
    like_count: int = 0
    is_automated: bool = False
    author_label: Optional[str] = None


def clean_content(content: Optional[str]) -> str:
    """Trim and length-check user content. Raises ValidationError."""
    text = (content or "").strip()
    if not text or len(text) > CONTENT_MAX_LENGTH:
        raise ValidationError(
            f"Content must be between 1 and {CONTENT_MAX_LENGTH} characters"
        )
    return text


def check_window(limit: int, offset: int) -> None:
    if limit < 0 or offset < 0:
        raise ValidationError("limit and offset must be non-negative")


class BoardStorage(ABC):

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or utcnow

    def now(self) -> datetime:
        return self._clock()

    async def init(self) -> None:
        """Prepare the backend (e.g. create tables). No-op by default."""

    async def close(self) -> None:
        """Release backend resources. No-op by default."""

    # ── Messages ──────────────────────────────────────────────────────────

    @abstractmethod
    async def create_message(self, content: str, origin: str) -> MessageRecord:
        ...

    @abstractmethod
    async def get_message(self, message_id: int) -> Optional[MessageRecord]:
        ...

    @abstractmethod
    async def get_page(
        self, sort_mode: SortMode, limit: int, offset: int
    ) -> list[MessageRecord]:
        """
        Offset pagination over the ranked feed. Under concurrent inserts a
        client paging through may see a row twice or miss one.
        """

    @abstractmethod
    async def increment_message_likes(self, message_id: int) -> MessageRecord:
        """Atomic like_count + 1. Raises NotFoundError."""

    @abstractmethod
    async def delete_message(self, message_id: int) -> bool:
        """
        Remove the message with its comments, their likes, and its likes in
        one unit. Returns False (no error) when the id does not exist.
        """

    @abstractmethod
    async def demote_message(self, message_id: int) -> MessageRecord:
        """Set demoted=True, idempotently. Raises NotFoundError."""

    # ── Comments ──────────────────────────────────────────────────────────

    @abstractmethod
    async def create_comment(
        self,
        message_id: int,
        content: str,
        is_automated: bool = False,
        author_label: Optional[str] = None,
    ) -> CommentRecord:
        """Raises ValidationError, or NotFoundError if the parent is missing."""

    @abstractmethod
    async def get_comment(self, comment_id: int) -> Optional[CommentRecord]:
        ...

    @abstractmethod
    async def list_comments(self, message_id: int) -> list[CommentRecord]:
        """Comments of one message, oldest first."""

    @abstractmethod
    async def list_comments_for(
        self, message_ids: Iterable[int]
    ) -> dict[int, list[CommentRecord]]:
        """Batch form of list_comments; messages without comments are absent."""

    @abstractmethod
    async def increment_comment_likes(self, comment_id: int) -> CommentRecord:
        ...

    @abstractmethod
    async def delete_comment(self, comment_id: int) -> Optional[CommentRecord]:
        """
        Remove the comment and its likes; the parent message is untouched.
        Returns the removed comment, or None when the id does not exist.
        """

    # ── Likes ─────────────────────────────────────────────────────────────

    @abstractmethod
    async def has_like(
        self, target: LikeTarget, target_id: int, session_token: str
    ) -> bool:
        ...

    @abstractmethod
    async def add_like(
        self, target: LikeTarget, target_id: int, origin: str, session_token: str
    ) -> bool:
        """Insert a like record. False if (target_id, session_token) already exists."""

    # ── Aggregates ────────────────────────────────────────────────────────

    @abstractmethod
    async def count_totals(self) -> tuple[int, int]:
        """(total messages, total comments)"""

    # ── Rate limit records ────────────────────────────────────────────────

    @abstractmethod
    async def get_last_post_at(self, origin: str) -> Optional[datetime]:
        ...

    @abstractmethod
    async def set_last_post_at(self, origin: str, at: datetime) -> None:
        ...
