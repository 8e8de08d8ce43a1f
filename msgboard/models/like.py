"""
models/like.py
--------------
One-time like records for messages and comments.

The (target, session_token) unique constraints back up the guard's
query-then-insert check: when two racing requests from the same session
both pass the check, the second INSERT fails and is reported as
"already liked".
"""

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from msgboard.db.base import Base, CreatedAtMixin


class MessageLike(Base, CreatedAtMixin):
    __tablename__ = "likes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("messages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    origin: Mapped[str] = mapped_column(String(255), nullable=False)
    session_token: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        UniqueConstraint("message_id", "session_token", name="uq_message_session_like"),
    )


class CommentLike(Base, CreatedAtMixin):
    __tablename__ = "comment_likes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    comment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    origin: Mapped[str] = mapped_column(String(255), nullable=False)
    session_token: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        UniqueConstraint("comment_id", "session_token", name="uq_comment_session_like"),
    )
