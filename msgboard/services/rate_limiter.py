"""
services/rate_limiter.py
------------------------
Optional per-origin posting pre-check (RATE_LIMIT_ENABLED, off by default).

One stored timestamp per origin: the time of its last accepted message.
A new message from the same origin inside RATE_LIMIT_SECONDS is rejected
with RateLimitedError, which carries the seconds left for Retry-After.

check() and record() are separate awaits around the insert, so two posts
from the same origin that arrive together can both pass. This is a
best-effort throttle, not a hard guarantee.
"""

import math

from msgboard.core.errors import RateLimitedError
from msgboard.core.logging import get_logger, mask
from msgboard.storage.base import BoardStorage

logger = get_logger(__name__)


class RateLimiter:

    def __init__(
        self,
        storage: BoardStorage,
        min_interval_seconds: float,
        enabled: bool = False,
    ) -> None:
        self._storage = storage
        self._interval = min_interval_seconds
        self.enabled = enabled

    async def check(self, origin: str) -> None:
        if not self.enabled:
            return
        last = await self._storage.get_last_post_at(origin)
        if last is None:
            return
        elapsed = (self._storage.now() - last).total_seconds()
        if elapsed < self._interval:
            wait = math.ceil(self._interval - elapsed)
            logger.warning("Rate limit hit", origin=mask(origin), retry_after=wait)
            raise RateLimitedError(
                retry_after=wait,
                detail=f"Please wait {wait}s before posting again",
            )

    async def record(self, origin: str) -> None:
        if self.enabled:
            await self._storage.set_last_post_at(origin, self._storage.now())
