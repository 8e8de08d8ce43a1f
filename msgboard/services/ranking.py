"""
services/ranking.py
-------------------
Feed ordering for the four sort modes, plus the read-side RankingEngine.

Every mode is a strict total order; ties are broken by id ascending so that
repeated calls with no intervening writes return identical pages.

  newest          created_at desc
  most_liked      like_count desc
  most_commented  number of comments desc
  hottest         latest activity desc, where latest activity is
                    created_at                              if demoted
                    max(created_at, newest comment created) otherwise

Demotion is an administrative override: a demoted message is pinned to its
post time for 'hottest' and no comment can resurface it. Other modes ignore
the flag.

Each order exists twice: as a Python sort key for MemoryStorage and as
ORDER BY clauses for SqlStorage. The two must agree; the storage contract
tests run against both backends to keep them honest.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import case, func, select, true

from msgboard.core.logging import get_logger
from msgboard.models.comment import Comment
from msgboard.models.message import Message
from msgboard.schemas.message import MessageWithComments

if TYPE_CHECKING:
    from msgboard.storage.base import BoardStorage, MessageRecord

logger = get_logger(__name__)


class SortMode(str, PyEnum):
    newest = "newest"
    most_liked = "most_liked"
    most_commented = "most_commented"
    hottest = "hottest"


@dataclass(frozen=True)
class CommentStats:
    count: int = 0
    last_comment_at: Optional[datetime] = None


# ── In-memory rendition ───────────────────────────────────────────────────────

def latest_activity(message: "MessageRecord", stats: CommentStats) -> datetime:
    if message.demoted or stats.last_comment_at is None:
        return message.created_at
    return max(message.created_at, stats.last_comment_at)


def sort_key(mode: SortMode, message: "MessageRecord", stats: CommentStats) -> tuple:
    """Ascending sort key; the primary component is negated to sort descending."""
    if mode is SortMode.most_liked:
        return (-message.like_count, message.id)
    if mode is SortMode.most_commented:
        return (-stats.count, message.id)
    if mode is SortMode.hottest:
        return (-latest_activity(message, stats).timestamp(), message.id)
    return (-message.created_at.timestamp(), message.id)


# ── SQL rendition ─────────────────────────────────────────────────────────────

def comment_count_expr():
    return (
        select(func.count(Comment.id))
        .where(Comment.message_id == Message.id)
        .correlate(Message)
        .scalar_subquery()
    )


def latest_activity_expr():
    # CASE instead of GREATEST so the query also runs on SQLite.
    # A NULL newest-comment (no comments) fails the comparison and falls
    # through to created_at.
    last_comment_at = (
        select(func.max(Comment.created_at))
        .where(Comment.message_id == Message.id)
        .correlate(Message)
        .scalar_subquery()
    )
    return case(
        (Message.demoted == true(), Message.created_at),
        (last_comment_at > Message.created_at, last_comment_at),
        else_=Message.created_at,
    )


def order_by_clauses(mode: SortMode) -> list:
    if mode is SortMode.most_liked:
        primary = Message.like_count.desc()
    elif mode is SortMode.most_commented:
        primary = comment_count_expr().desc()
    elif mode is SortMode.hottest:
        primary = latest_activity_expr().desc()
    else:
        primary = Message.created_at.desc()
    return [primary, Message.id.asc()]


# ── Engine ────────────────────────────────────────────────────────────────────

class RankingEngine:
    """
    Read-side view over the store: one ranked page, each message annotated
    with its comments (oldest first) and comment count.

    No total is returned with a page; GET /stats serves the aggregates.
    """

    def __init__(self, storage: "BoardStorage") -> None:
        self._storage = storage

    async def page(
        self,
        sort_mode: SortMode = SortMode.newest,
        limit: int = 20,
        offset: int = 0,
    ) -> list[MessageWithComments]:
        messages = await self._storage.get_page(sort_mode, limit, offset)
        comments = await self._storage.list_comments_for([m.id for m in messages])
        logger.debug(
            "Feed page ranked",
            sort=sort_mode.value,
            limit=limit,
            offset=offset,
            returned=len(messages),
        )
        return [
            MessageWithComments.from_records(m, comments.get(m.id, []))
            for m in messages
        ]
