"""
api/routes/stats.py
-------------------
GET /stats — message, comment and combined totals over the whole board.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from msgboard.dependencies import get_board_service
from msgboard.schemas.stats import StatsRead
from msgboard.services.board_service import BoardService

router = APIRouter(tags=["Stats"])


@router.get("/stats", response_model=StatsRead, summary="Board totals")
async def get_stats(
    board: Annotated[BoardService, Depends(get_board_service)],
) -> StatsRead:
    return await board.stats()
