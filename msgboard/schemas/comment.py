"""
schemas/comment.py
------------------
Pydantic models for comments.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CommentCreate(BaseModel):
    content: str = Field(
        ...,
        max_length=10_000,
        examples=["It only brews decaf after midnight."],
        description="Comment text, 1-500 characters after trimming",
    )


class CommentRead(BaseModel):
    id: int
    message_id: int
    content: str
    created_at: datetime
    like_count: int
    is_automated: bool = False
    author_label: Optional[str] = None

    model_config = {"from_attributes": True}
