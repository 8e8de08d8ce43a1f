"""
api/routes/messages.py
----------------------
Public message endpoints.

POST /messages                 — Post a message (broadcasts new_message)
GET  /messages                 — Ranked, paginated feed with comments
GET  /messages/{id}            — One message with its comments
POST /messages/{id}/like       — Like once per session (broadcasts message_liked)
GET  /messages/{id}/comments   — Comments of a message, oldest first
POST /messages/{id}/comments   — Comment on a message (broadcasts new_comment)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from msgboard.core.config import settings
from msgboard.dependencies import get_board_service, get_client_origin
from msgboard.schemas.comment import CommentCreate, CommentRead
from msgboard.schemas.message import (
    LikeRequest,
    MessageCreate,
    MessageRead,
    MessageWithComments,
)
from msgboard.services.board_service import BoardService
from msgboard.services.ranking import SortMode

router = APIRouter(tags=["Messages"])


@router.post(
    "/messages",
    response_model=MessageWithComments,
    status_code=status.HTTP_201_CREATED,
    summary="Post a new anonymous message",
)
async def create_message(
    body: MessageCreate,
    board: Annotated[BoardService, Depends(get_board_service)],
    origin: Annotated[str, Depends(get_client_origin)],
) -> MessageWithComments:
    """
    Content is trimmed and must be 1-500 characters.
    The full record is pushed to live clients so they can prepend it.
    """
    return await board.create_message(body.content, origin)


@router.get(
    "/messages",
    response_model=list[MessageWithComments],
    summary="Ranked feed page",
)
async def list_messages(
    board: Annotated[BoardService, Depends(get_board_service)],
    sort_by: SortMode = Query(
        default=SortMode.newest,
        alias="sortBy",
        description="newest | most_liked | most_commented | hottest",
    ),
    limit: int = Query(
        default=settings.DEFAULT_PAGE_SIZE,
        ge=1,
        le=settings.MAX_PAGE_SIZE,
        description="Results per page",
    ),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
) -> list[MessageWithComments]:
    """
    Offset pagination: if messages arrive while a client pages through, a
    row can appear twice or be skipped. Totals are served by GET /stats.
    """
    return await board.feed(sort_by, limit, offset)


@router.get(
    "/messages/{message_id}",
    response_model=MessageWithComments,
    summary="Get one message with its comments",
)
async def get_message(
    message_id: int,
    board: Annotated[BoardService, Depends(get_board_service)],
) -> MessageWithComments:
    return await board.get_message(message_id)


@router.post(
    "/messages/{message_id}/like",
    response_model=MessageRead,
    summary="Like a message (once per session)",
)
async def like_message(
    message_id: int,
    body: LikeRequest,
    board: Annotated[BoardService, Depends(get_board_service)],
    origin: Annotated[str, Depends(get_client_origin)],
) -> MessageRead:
    """409 if this session token already liked the message."""
    return await board.like_message(message_id, origin, body.session_token)


@router.get(
    "/messages/{message_id}/comments",
    response_model=list[CommentRead],
    summary="List comments on a message",
)
async def list_comments(
    message_id: int,
    board: Annotated[BoardService, Depends(get_board_service)],
) -> list[CommentRead]:
    return await board.comments(message_id)


@router.post(
    "/messages/{message_id}/comments",
    response_model=CommentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a message",
)
async def create_comment(
    message_id: int,
    body: CommentCreate,
    board: Annotated[BoardService, Depends(get_board_service)],
) -> CommentRead:
    return await board.create_comment(message_id, body.content)
