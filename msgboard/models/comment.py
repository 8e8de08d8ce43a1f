"""
models/comment.py
-----------------
Comment attached to exactly one message.

Deleting the parent message removes its comments; deleting a comment never
touches the parent.
"""

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from msgboard.db.base import Base, CreatedAtMixin


class Comment(Base, CreatedAtMixin):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("messages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    like_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    # Reserved for non-human authors; the public API always writes False
    is_automated: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    author_label: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Relationships
    message: Mapped["Message"] = relationship("Message", back_populates="comments")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Comment id={self.id} message_id={self.message_id}>"
