"""
services/like_guard.py
----------------------
At most one like per (target, session token).

The check is query-then-insert. Two racing requests from the same session
can both pass the query; the storage-level unique constraint then rejects
the second insert and the guard reports it as already liked.

Scope limitation: a different session (another browser, a cleared
localStorage) can like the same target again. Nothing here tries to stop
that.
"""

from msgboard.core.logging import get_logger, mask
from msgboard.storage.base import BoardStorage, LikeTarget

logger = get_logger(__name__)


class LikeGuard:

    def __init__(self, storage: BoardStorage) -> None:
        self._storage = storage

    async def try_register_like(
        self,
        target: LikeTarget,
        target_id: int,
        origin: str,
        session_token: str,
    ) -> bool:
        """
        Record the like and return True, or return False if this session
        already liked the target. The caller must reject the like on False.
        """
        if await self._storage.has_like(target, target_id, session_token):
            registered = False
        else:
            registered = await self._storage.add_like(
                target, target_id, origin, session_token
            )

        if not registered:
            logger.info(
                "Duplicate like rejected",
                target=target.value,
                target_id=target_id,
                session=mask(session_token),
            )
        return registered
