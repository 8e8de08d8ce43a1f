"""
schemas/message.py
------------------
Pydantic models for messages and likes.

origin is deliberately absent from every outbound model.
Length rules live in the store (content is trimmed first), so MessageCreate
only guards against absurd payloads.
"""

from datetime import datetime
from typing import Iterable

from pydantic import BaseModel, Field

from msgboard.schemas.comment import CommentRead


class MessageCreate(BaseModel):
    content: str = Field(
        ...,
        max_length=10_000,
        examples=["Anyone else think the coffee machine is haunted?"],
        description="Message text, 1-500 characters after trimming",
    )


class MessageRead(BaseModel):
    id: int
    content: str
    created_at: datetime
    like_count: int
    demoted: bool

    model_config = {"from_attributes": True}


class MessageWithComments(MessageRead):
    comments: list[CommentRead] = []
    comment_count: int = 0

    @classmethod
    def from_records(cls, message, comments: Iterable = ()) -> "MessageWithComments":
        items = [CommentRead.model_validate(c) for c in comments]
        return cls(
            **MessageRead.model_validate(message).model_dump(),
            comments=items,
            comment_count=len(items),
        )


class LikeRequest(BaseModel):
    session_token: str = Field(
        ...,
        alias="sessionToken",
        min_length=1,
        max_length=255,
        description="Opaque per-device token; one like per token per target",
    )

    model_config = {"populate_by_name": True}
