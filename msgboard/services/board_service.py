"""
services/board_service.py
-------------------------
Business logic for the board: one store mutation, then one broadcast.

Service layer is responsible for:
  - Running pre-checks (rate limit, like dedup, existence)
  - Calling the store and returning domain records / read schemas
  - Emitting the matching live event after the mutation has committed
  - Never returning HTTP responses (that's the route's job)

Domain failures propagate as BoardError subclasses. Broadcasting happens
only after a successful mutation and cannot fail the request.
"""

from typing import Optional

from msgboard.core.errors import DuplicateActionError, NotFoundError
from msgboard.core.logging import get_logger, mask
from msgboard.schemas.comment import CommentRead
from msgboard.schemas.event import BoardEvent, EventType
from msgboard.schemas.message import MessageRead, MessageWithComments
from msgboard.schemas.stats import StatsRead
from msgboard.services.broadcaster import Broadcaster
from msgboard.services.like_guard import LikeGuard
from msgboard.services.ranking import RankingEngine, SortMode
from msgboard.services.rate_limiter import RateLimiter
from msgboard.storage.base import BoardStorage, LikeTarget

logger = get_logger(__name__)


class BoardService:

    def __init__(
        self,
        storage: BoardStorage,
        broadcaster: Broadcaster,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self.storage = storage
        self.broadcaster = broadcaster
        self.ranking = RankingEngine(storage)
        self.like_guard = LikeGuard(storage)
        self.rate_limiter = rate_limiter or RateLimiter(storage, 0, enabled=False)

    # ── Reads ─────────────────────────────────────────────────────────────

    async def feed(
        self,
        sort_mode: SortMode = SortMode.newest,
        limit: int = 20,
        offset: int = 0,
    ) -> list[MessageWithComments]:
        return await self.ranking.page(sort_mode, limit, offset)

    async def get_message(self, message_id: int) -> MessageWithComments:
        message = await self.storage.get_message(message_id)
        if message is None:
            raise NotFoundError(f"Message {message_id} not found")
        comments = await self.storage.list_comments(message_id)
        return MessageWithComments.from_records(message, comments)

    async def comments(self, message_id: int) -> list[CommentRead]:
        if await self.storage.get_message(message_id) is None:
            raise NotFoundError(f"Message {message_id} not found")
        return [
            CommentRead.model_validate(c)
            for c in await self.storage.list_comments(message_id)
        ]

    async def stats(self) -> StatsRead:
        messages, comments = await self.storage.count_totals()
        return StatsRead(
            total_messages=messages,
            total_comments=comments,
            total=messages + comments,
        )

    # ── Messages ──────────────────────────────────────────────────────────

    async def create_message(self, content: str, origin: str) -> MessageWithComments:
        await self.rate_limiter.check(origin)
        record = await self.storage.create_message(content, origin)
        await self.rate_limiter.record(origin)

        created = MessageWithComments.from_records(record)
        logger.info("Message created", message_id=record.id, length=len(record.content))
        await self.broadcaster.publish(
            BoardEvent(type=EventType.new_message, message_id=record.id, message=created)
        )
        return created

    async def like_message(
        self, message_id: int, origin: str, session_token: str
    ) -> MessageRead:
        if await self.storage.get_message(message_id) is None:
            raise NotFoundError(f"Message {message_id} not found")
        if not await self.like_guard.try_register_like(
            LikeTarget.message, message_id, origin, session_token
        ):
            raise DuplicateActionError("You've already liked this message.")

        record = await self.storage.increment_message_likes(message_id)
        logger.info("Message liked", message_id=message_id, likes=record.like_count)
        await self.broadcaster.publish(
            BoardEvent(
                type=EventType.message_liked,
                message_id=message_id,
                likes=record.like_count,
            )
        )
        return MessageRead.model_validate(record)

    async def demote_message(self, message_id: int) -> MessageRead:
        record = await self.storage.demote_message(message_id)
        logger.info("Message demoted", message_id=message_id)
        await self.broadcaster.publish(
            BoardEvent(type=EventType.message_demoted, message_id=message_id)
        )
        return MessageRead.model_validate(record)

    async def delete_message(self, message_id: int) -> bool:
        removed = await self.storage.delete_message(message_id)
        if removed:
            logger.info("Message deleted", message_id=message_id)
            await self.broadcaster.publish(
                BoardEvent(type=EventType.message_deleted, message_id=message_id)
            )
        return removed

    # ── Comments ──────────────────────────────────────────────────────────

    async def create_comment(self, message_id: int, content: str) -> CommentRead:
        record = await self.storage.create_comment(message_id, content)
        logger.info("Comment created", comment_id=record.id, message_id=message_id)
        await self.broadcaster.publish(
            BoardEvent(
                type=EventType.new_comment,
                message_id=message_id,
                comment_id=record.id,
            )
        )
        return CommentRead.model_validate(record)

    async def like_comment(
        self, comment_id: int, origin: str, session_token: str
    ) -> CommentRead:
        if await self.storage.get_comment(comment_id) is None:
            raise NotFoundError(f"Comment {comment_id} not found")
        if not await self.like_guard.try_register_like(
            LikeTarget.comment, comment_id, origin, session_token
        ):
            raise DuplicateActionError("You've already liked this comment.")

        record = await self.storage.increment_comment_likes(comment_id)
        logger.info(
            "Comment liked",
            comment_id=comment_id,
            likes=record.like_count,
            origin=mask(origin),
        )
        await self.broadcaster.publish(
            BoardEvent(
                type=EventType.comment_liked,
                message_id=record.message_id,
                comment_id=comment_id,
                likes=record.like_count,
            )
        )
        return CommentRead.model_validate(record)

    async def delete_comment(self, comment_id: int) -> bool:
        removed = await self.storage.delete_comment(comment_id)
        if removed is None:
            return False
        logger.info("Comment deleted", comment_id=comment_id, message_id=removed.message_id)
        await self.broadcaster.publish(
            BoardEvent(
                type=EventType.comment_deleted,
                comment_id=comment_id,
                message_id=removed.message_id,
            )
        )
        return True
