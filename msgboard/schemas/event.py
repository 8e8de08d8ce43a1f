"""
schemas/event.py
----------------
The one envelope pushed over the live channel.

Notifications are invalidation hints: clients re-fetch the feed when they
receive one. The exception is new_message, whose `message` field carries
the full created record so clients can prepend it without a round trip.
All other events carry ids and counts only. Unset fields are dropped from
the wire payload.
"""

from enum import Enum as PyEnum
from typing import Optional

from pydantic import BaseModel

from msgboard.schemas.message import MessageWithComments


class EventType(str, PyEnum):
    new_message = "new_message"
    message_liked = "message_liked"
    new_comment = "new_comment"
    comment_liked = "comment_liked"
    message_deleted = "message_deleted"
    comment_deleted = "comment_deleted"
    message_demoted = "message_demoted"


class BoardEvent(BaseModel):
    type: EventType
    message_id: Optional[int] = None
    comment_id: Optional[int] = None
    likes: Optional[int] = None
    message: Optional[MessageWithComments] = None

    def to_wire(self) -> str:
        return self.model_dump_json(exclude_none=True)

