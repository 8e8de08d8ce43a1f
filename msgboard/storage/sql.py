"""
storage/sql.py
--------------
Relational BoardStorage on async SQLAlchemy.

Design decisions:
  - Every public operation runs in its own session and transaction
    (async_sessionmaker.begin()), so each mutation commits or rolls back as
    one unit and no transaction spans client think-time.
  - Like counters are bumped with a single UPDATE ... SET like_count =
    like_count + 1 statement; the database serialises concurrent likes on
    the row, so no increment is lost.
  - Like dedup relies on the (target, session_token) unique constraints.
    A racing duplicate INSERT raises IntegrityError, reported as "already
    liked" (False) rather than an error.
  - Driver / connectivity failures surface as TransientStoreError; they are
    retryable and never masked.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Iterable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from msgboard.core.errors import NotFoundError, TransientStoreError
from msgboard.core.logging import get_logger
from msgboard.db.base import Base
from msgboard.db.session import build_engine, build_sessionmaker
from msgboard.models.comment import Comment
from msgboard.models.like import CommentLike, MessageLike
from msgboard.models.message import Message
from msgboard.models.rate_limit import RateLimit
from msgboard.services.ranking import SortMode, order_by_clauses
from msgboard.storage.base import (
    BoardStorage,
    Clock,
    CommentRecord,
    LikeTarget,
    MessageRecord,
    check_window,
    clean_content,
)

logger = get_logger(__name__)

_NO_SYNC = {"synchronize_session": False}


def _aware(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; everything stored is UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _message_record(row: Message) -> MessageRecord:
    return MessageRecord(
        id=row.id,
        content=row.content,
        created_at=_aware(row.created_at),
        like_count=row.like_count,
        demoted=row.demoted,
        origin=row.origin,
    )


def _comment_record(row: Comment) -> CommentRecord:
    return CommentRecord(
        id=row.id,
        message_id=row.message_id,
        content=row.content,
        created_at=_aware(row.created_at),
        like_count=row.like_count,
        is_automated=row.is_automated,
        author_label=row.author_label,
    )


def _like_model(target: LikeTarget):
    if target is LikeTarget.message:
        return MessageLike, MessageLike.message_id, "message_id"
    return CommentLike, CommentLike.comment_id, "comment_id"


class SqlStorage(BoardStorage):

    def __init__(
        self,
        database_url: Optional[str] = None,
        engine: Optional[AsyncEngine] = None,
        echo: bool = False,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(clock)
        if engine is None:
            if not database_url:
                raise ValueError("SqlStorage needs a database_url or an engine")
            engine = build_engine(database_url, echo=echo)
        self._engine = engine
        self._sessions = build_sessionmaker(engine)

    async def init(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ready", backend=self._engine.dialect.name)

    async def close(self) -> None:
        await self._engine.dispose()

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._sessions.begin() as session:
                yield session
        except IntegrityError:
            raise
        except (DBAPIError, OSError) as exc:
            logger.error("Storage failure", error=str(exc))
            raise TransientStoreError() from exc

    # ── Messages ──────────────────────────────────────────────────────────

    async def create_message(self, content: str, origin: str) -> MessageRecord:
        text = clean_content(content)
        async with self._transaction() as session:
            row = Message(
                content=text,
                origin=origin,
                created_at=self.now(),
                like_count=0,
                demoted=False,
            )
            session.add(row)
            await session.flush()
            return _message_record(row)

    async def get_message(self, message_id: int) -> Optional[MessageRecord]:
        async with self._transaction() as session:
            row = await session.get(Message, message_id)
            return _message_record(row) if row else None

    async def get_page(
        self, sort_mode: SortMode, limit: int, offset: int
    ) -> list[MessageRecord]:
        check_window(limit, offset)
        stmt = (
            select(Message)
            .order_by(*order_by_clauses(sort_mode))
            .offset(offset)
            .limit(limit)
        )
        async with self._transaction() as session:
            result = await session.execute(stmt)
            return [_message_record(row) for row in result.scalars().all()]

    async def increment_message_likes(self, message_id: int) -> MessageRecord:
        async with self._transaction() as session:
            result = await session.execute(
                update(Message)
                .where(Message.id == message_id)
                .values(like_count=Message.like_count + 1)
                .execution_options(**_NO_SYNC)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Message {message_id} not found")
            row = await session.get(Message, message_id, populate_existing=True)
            return _message_record(row)

    async def delete_message(self, message_id: int) -> bool:
        async with self._transaction() as session:
            child_comments = select(Comment.id).where(Comment.message_id == message_id)
            await session.execute(
                delete(CommentLike)
                .where(CommentLike.comment_id.in_(child_comments))
                .execution_options(**_NO_SYNC)
            )
            await session.execute(
                delete(MessageLike)
                .where(MessageLike.message_id == message_id)
                .execution_options(**_NO_SYNC)
            )
            await session.execute(
                delete(Comment)
                .where(Comment.message_id == message_id)
                .execution_options(**_NO_SYNC)
            )
            result = await session.execute(
                delete(Message)
                .where(Message.id == message_id)
                .execution_options(**_NO_SYNC)
            )
            return result.rowcount > 0

    async def demote_message(self, message_id: int) -> MessageRecord:
        async with self._transaction() as session:
            row = await session.get(Message, message_id)
            if row is None:
                raise NotFoundError(f"Message {message_id} not found")
            if not row.demoted:
                row.demoted = True
                await session.flush()
            return _message_record(row)

    # ── Comments ──────────────────────────────────────────────────────────

    async def create_comment(
        self,
        message_id: int,
        content: str,
        is_automated: bool = False,
        author_label: Optional[str] = None,
    ) -> CommentRecord:
        text = clean_content(content)
        async with self._transaction() as session:
            if await session.get(Message, message_id) is None:
                raise NotFoundError(f"Message {message_id} not found")
            row = Comment(
                message_id=message_id,
                content=text,
                created_at=self.now(),
                like_count=0,
                is_automated=is_automated,
                author_label=author_label,
            )
            session.add(row)
            await session.flush()
            return _comment_record(row)

    async def get_comment(self, comment_id: int) -> Optional[CommentRecord]:
        async with self._transaction() as session:
            row = await session.get(Comment, comment_id)
            return _comment_record(row) if row else None

    async def list_comments(self, message_id: int) -> list[CommentRecord]:
        return (await self.list_comments_for([message_id])).get(message_id, [])

    async def list_comments_for(
        self, message_ids: Iterable[int]
    ) -> dict[int, list[CommentRecord]]:
        ids = list(message_ids)
        if not ids:
            return {}
        stmt = (
            select(Comment)
            .where(Comment.message_id.in_(ids))
            .order_by(Comment.created_at.asc(), Comment.id.asc())
        )
        grouped: dict[int, list[CommentRecord]] = {}
        async with self._transaction() as session:
            result = await session.execute(stmt)
            for row in result.scalars().all():
                grouped.setdefault(row.message_id, []).append(_comment_record(row))
        return grouped

    async def increment_comment_likes(self, comment_id: int) -> CommentRecord:
        async with self._transaction() as session:
            result = await session.execute(
                update(Comment)
                .where(Comment.id == comment_id)
                .values(like_count=Comment.like_count + 1)
                .execution_options(**_NO_SYNC)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Comment {comment_id} not found")
            row = await session.get(Comment, comment_id, populate_existing=True)
            return _comment_record(row)

    async def delete_comment(self, comment_id: int) -> Optional[CommentRecord]:
        async with self._transaction() as session:
            await session.execute(
                delete(CommentLike)
                .where(CommentLike.comment_id == comment_id)
                .execution_options(**_NO_SYNC)
            )
            result = await session.execute(
                delete(Comment)
                .where(Comment.id == comment_id)
                .returning(
                    Comment.id,
                    Comment.message_id,
                    Comment.content,
                    Comment.created_at,
                    Comment.like_count,
                    Comment.is_automated,
                    Comment.author_label,
                )
                .execution_options(**_NO_SYNC)
            )
            row = result.one_or_none()
            return _comment_record(row) if row else None

    # ── Likes ─────────────────────────────────────────────────────────────

    async def has_like(
        self, target: LikeTarget, target_id: int, session_token: str
    ) -> bool:
        model, target_col, _ = _like_model(target)
        stmt = (
            select(model.id)
            .where(target_col == target_id, model.session_token == session_token)
            .limit(1)
        )
        async with self._transaction() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none() is not None

    async def add_like(
        self, target: LikeTarget, target_id: int, origin: str, session_token: str
    ) -> bool:
        model, _, target_field = _like_model(target)
        try:
            async with self._transaction() as session:
                session.add(
                    model(
                        **{target_field: target_id},
                        origin=origin,
                        session_token=session_token,
                        created_at=self.now(),
                    )
                )
                await session.flush()
            return True
        except IntegrityError:
            # Either the unique constraint (a racing duplicate) or the FK
            # (target deleted meanwhile) fired; tell the two apart.
            if await self.has_like(target, target_id, session_token):
                return False
            raise NotFoundError(f"{target.value.capitalize()} {target_id} not found")

    # ── Aggregates ────────────────────────────────────────────────────────

    async def count_totals(self) -> tuple[int, int]:
        async with self._transaction() as session:
            messages = (await session.execute(select(func.count(Message.id)))).scalar_one()
            comments = (await session.execute(select(func.count(Comment.id)))).scalar_one()
            return int(messages), int(comments)

    # ── Rate limit records ────────────────────────────────────────────────

    async def get_last_post_at(self, origin: str) -> Optional[datetime]:
        stmt = select(RateLimit.last_message_at).where(RateLimit.origin == origin)
        async with self._transaction() as session:
            value = (await session.execute(stmt)).scalar_one_or_none()
            return _aware(value) if value else None

    async def set_last_post_at(self, origin: str, at: datetime) -> None:
        stmt = (
            update(RateLimit)
            .where(RateLimit.origin == origin)
            .values(last_message_at=at)
            .execution_options(**_NO_SYNC)
        )
        async with self._transaction() as session:
            result = await session.execute(stmt)
            if result.rowcount:
                return
        try:
            async with self._transaction() as session:
                session.add(RateLimit(origin=origin, last_message_at=at))
        except IntegrityError:
            # Another request inserted the row first.
            async with self._transaction() as session:
                await session.execute(stmt)
