"""Per-origin posting interval."""

import pytest

from msgboard.core.errors import RateLimitedError
from msgboard.services.rate_limiter import RateLimiter


async def test_disabled_limiter_is_a_noop(storage):
    limiter = RateLimiter(storage, min_interval_seconds=30)

    await limiter.check("1.1.1.1")
    await limiter.record("1.1.1.1")
    await limiter.check("1.1.1.1")

    assert await storage.get_last_post_at("1.1.1.1") is None


async def test_rejects_inside_interval_then_allows(storage, clock):
    limiter = RateLimiter(storage, min_interval_seconds=30, enabled=True)

    await limiter.check("1.1.1.1")
    await limiter.record("1.1.1.1")

    with pytest.raises(RateLimitedError) as excinfo:
        await limiter.check("1.1.1.1")
    assert excinfo.value.status_code == 429
    assert excinfo.value.retry_after == 29

    await limiter.check("2.2.2.2")

    clock.advance(30)
    await limiter.check("1.1.1.1")
