"""
storage/memory.py
-----------------
Dict-backed BoardStorage for tests, demos and single-process deployments.

All mutations run under one asyncio.Lock, which gives the same guarantees
the relational backend gets from row-level atomicity: no lost like
increments, and at most one like record per (target, session) even when
requests interleave. Records are copied on the way out so callers cannot
mutate stored state.
"""

import asyncio
import itertools
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional

from msgboard.core.errors import NotFoundError
from msgboard.services.ranking import CommentStats, SortMode, sort_key
from msgboard.storage.base import (
    BoardStorage,
    Clock,
    CommentRecord,
    LikeTarget,
    MessageRecord,
    check_window,
    clean_content,
)


@dataclass
class _LikeRecord:
    id: int
    target_id: int
    origin: str
    session_token: str
    created_at: datetime


class MemoryStorage(BoardStorage):

    def __init__(self, clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        self._messages: dict[int, MessageRecord] = {}
        self._comments: dict[int, CommentRecord] = {}
        self._likes: dict[LikeTarget, dict[tuple[int, str], _LikeRecord]] = {
            LikeTarget.message: {},
            LikeTarget.comment: {},
        }
        self._last_post_at: dict[str, datetime] = {}
        self._message_ids = itertools.count(1)
        self._comment_ids = itertools.count(1)
        self._like_ids = itertools.count(1)
        self._lock = asyncio.Lock()

    # ── Messages ──────────────────────────────────────────────────────────

    async def create_message(self, content: str, origin: str) -> MessageRecord:
        text = clean_content(content)
        async with self._lock:
            message = MessageRecord(
                id=next(self._message_ids),
                content=text,
                created_at=self.now(),
                origin=origin,
            )
            self._messages[message.id] = message
            return replace(message)

    async def get_message(self, message_id: int) -> Optional[MessageRecord]:
        message = self._messages.get(message_id)
        return replace(message) if message else None

    async def get_page(
        self, sort_mode: SortMode, limit: int, offset: int
    ) -> list[MessageRecord]:
        check_window(limit, offset)
        stats = self._comment_stats()
        ranked = sorted(
            self._messages.values(),
            key=lambda m: sort_key(sort_mode, m, stats.get(m.id, CommentStats())),
        )
        return [replace(m) for m in ranked[offset:offset + limit]]

    async def increment_message_likes(self, message_id: int) -> MessageRecord:
        async with self._lock:
            message = self._require_message(message_id)
            message.like_count += 1
            return replace(message)

    async def delete_message(self, message_id: int) -> bool:
        async with self._lock:
            if self._messages.pop(message_id, None) is None:
                return False
            doomed = [c.id for c in self._comments.values() if c.message_id == message_id]
            for comment_id in doomed:
                self._drop_comment(comment_id)
            self._drop_likes(LikeTarget.message, message_id)
            return True

    async def demote_message(self, message_id: int) -> MessageRecord:
        async with self._lock:
            message = self._require_message(message_id)
            message.demoted = True
            return replace(message)

    # ── Comments ──────────────────────────────────────────────────────────

    async def create_comment(
        self,
        message_id: int,
        content: str,
        is_automated: bool = False,
        author_label: Optional[str] = None,
    ) -> CommentRecord:
        text = clean_content(content)
        async with self._lock:
            self._require_message(message_id)
            comment = CommentRecord(
                id=next(self._comment_ids),
                message_id=message_id,
                content=text,
                created_at=self.now(),
                is_automated=is_automated,
                author_label=author_label,
            )
            self._comments[comment.id] = comment
            return replace(comment)

    async def get_comment(self, comment_id: int) -> Optional[CommentRecord]:
        comment = self._comments.get(comment_id)
        return replace(comment) if comment else None

    async def list_comments(self, message_id: int) -> list[CommentRecord]:
        return (await self.list_comments_for([message_id])).get(message_id, [])

    async def list_comments_for(
        self, message_ids: Iterable[int]
    ) -> dict[int, list[CommentRecord]]:
        wanted = set(message_ids)
        grouped: dict[int, list[CommentRecord]] = {}
        ordered = sorted(self._comments.values(), key=lambda c: (c.created_at, c.id))
        for comment in ordered:
            if comment.message_id in wanted:
                grouped.setdefault(comment.message_id, []).append(replace(comment))
        return grouped

    async def increment_comment_likes(self, comment_id: int) -> CommentRecord:
        async with self._lock:
            comment = self._comments.get(comment_id)
            if comment is None:
                raise NotFoundError(f"Comment {comment_id} not found")
            comment.like_count += 1
            return replace(comment)

    async def delete_comment(self, comment_id: int) -> Optional[CommentRecord]:
        async with self._lock:
            comment = self._comments.get(comment_id)
            if comment is None:
                return None
            self._drop_comment(comment_id)
            return replace(comment)

    # ── Likes ─────────────────────────────────────────────────────────────

    async def has_like(
        self, target: LikeTarget, target_id: int, session_token: str
    ) -> bool:
        return (target_id, session_token) in self._likes[target]

    async def add_like(
        self, target: LikeTarget, target_id: int, origin: str, session_token: str
    ) -> bool:
        async with self._lock:
            if target is LikeTarget.message:
                self._require_message(target_id)
            elif target_id not in self._comments:
                raise NotFoundError(f"Comment {target_id} not found")

            namespace = self._likes[target]
            key = (target_id, session_token)
            if key in namespace:
                return False
            namespace[key] = _LikeRecord(
                id=next(self._like_ids),
                target_id=target_id,
                origin=origin,
                session_token=session_token,
                created_at=self.now(),
            )
            return True

    # ── Aggregates ────────────────────────────────────────────────────────

    async def count_totals(self) -> tuple[int, int]:
        return len(self._messages), len(self._comments)

    # ── Rate limit records ────────────────────────────────────────────────

    async def get_last_post_at(self, origin: str) -> Optional[datetime]:
        return self._last_post_at.get(origin)

    async def set_last_post_at(self, origin: str, at: datetime) -> None:
        async with self._lock:
            self._last_post_at[origin] = at

    # ── Internals (caller holds the lock) ─────────────────────────────────

    def _require_message(self, message_id: int) -> MessageRecord:
        message = self._messages.get(message_id)
        if message is None:
            raise NotFoundError(f"Message {message_id} not found")
        return message

    def _drop_comment(self, comment_id: int) -> None:
        self._comments.pop(comment_id, None)
        self._drop_likes(LikeTarget.comment, comment_id)

    def _drop_likes(self, target: LikeTarget, target_id: int) -> None:
        namespace = self._likes[target]
        for key in [k for k in namespace if k[0] == target_id]:
            del namespace[key]

    def _comment_stats(self) -> dict[int, CommentStats]:
        counts: dict[int, int] = {}
        latest: dict[int, datetime] = {}
        for comment in self._comments.values():
            counts[comment.message_id] = counts.get(comment.message_id, 0) + 1
            seen = latest.get(comment.message_id)
            if seen is None or comment.created_at > seen:
                latest[comment.message_id] = comment.created_at
        return {
            message_id: CommentStats(count=count, last_comment_at=latest[message_id])
            for message_id, count in counts.items()
        }
