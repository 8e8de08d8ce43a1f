"""
models/__init__.py
------------------
Re-export all models so create_tables.py (and any future Alembic env.py)
can import Base and discover all tables via a single import:

    from msgboard.models import Base
"""

from msgboard.db.base import Base
from msgboard.models.comment import Comment
from msgboard.models.like import CommentLike, MessageLike
from msgboard.models.message import Message
from msgboard.models.rate_limit import RateLimit

__all__ = ["Base", "Message", "Comment", "MessageLike", "CommentLike", "RateLimit"]
