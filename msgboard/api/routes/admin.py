"""
api/routes/admin.py
-------------------
Moderation endpoints. All require a bearer token with the admin role.

DELETE /messages/{id}        — Delete a message, its comments and likes
DELETE /comments/{id}        — Delete a comment and its likes
POST   /messages/{id}/demote — Freeze a message's 'hottest' position
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from msgboard.dependencies import get_board_service, require_admin
from msgboard.schemas.message import MessageRead
from msgboard.services.board_service import BoardService

router = APIRouter(tags=["Admin"], dependencies=[Depends(require_admin)])


@router.delete(
    "/messages/{message_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Admin: delete a message",
)
async def delete_message(
    message_id: int,
    board: Annotated[BoardService, Depends(get_board_service)],
) -> Response:
    """Idempotent: deleting an id that does not exist still returns 204."""
    await board.delete_message(message_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Admin: delete a comment",
)
async def delete_comment(
    comment_id: int,
    board: Annotated[BoardService, Depends(get_board_service)],
) -> Response:
    await board.delete_comment(comment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/messages/{message_id}/demote",
    response_model=MessageRead,
    summary="Admin: demote a message",
)
async def demote_message(
    message_id: int,
    board: Annotated[BoardService, Depends(get_board_service)],
) -> MessageRead:
    """
    A demoted message keeps its place in every other sort, but under
    'hottest' it ranks by its post time and new comments no longer lift it.
    """
    return await board.demote_message(message_id)
