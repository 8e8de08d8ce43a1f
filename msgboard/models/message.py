"""
models/message.py
-----------------
Board message model.

content and created_at never change after insert. like_count is only ever
touched by a single-statement increment; demoted only moves false → true.
origin is kept for moderation / rate limiting and is never serialised.
"""

from sqlalchemy import Boolean, Integer, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from msgboard.db.base import Base, CreatedAtMixin


class Message(Base, CreatedAtMixin):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    like_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    demoted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    origin: Mapped[str] = mapped_column(String(255), nullable=False)

    # Relationships
    comments: Mapped[list["Comment"]] = relationship(  # noqa: F821
        "Comment", back_populates="message", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Message id={self.id} likes={self.like_count} demoted={self.demoted}>"
