"""
api/routes/comments.py
----------------------
Public comment endpoints.

POST /comments/{id}/like — Like once per session (broadcasts comment_liked)
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from msgboard.dependencies import get_board_service, get_client_origin
from msgboard.schemas.comment import CommentRead
from msgboard.schemas.message import LikeRequest
from msgboard.services.board_service import BoardService

router = APIRouter(tags=["Comments"])


@router.post(
    "/comments/{comment_id}/like",
    response_model=CommentRead,
    summary="Like a comment (once per session)",
)
async def like_comment(
    comment_id: int,
    body: LikeRequest,
    board: Annotated[BoardService, Depends(get_board_service)],
    origin: Annotated[str, Depends(get_client_origin)],
) -> CommentRead:
    """
    Comment likes are a separate namespace from message likes: a session
    can like a message and each of its comments once.
    """
    return await board.like_comment(comment_id, origin, body.session_token)
