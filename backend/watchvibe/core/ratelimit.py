# watchvibe/core/ratelimit.py
"""
Per-client attempt limiting for endpoints that accept guessable codes (OTPs).

Backed by the `limits` package: a moving-window strategy over a storage
chosen by URI ("async+memory://" in a single process, "async+redis://..."
when several workers must share counters).
"""
import math
import time

from limits import parse
from limits.aio.strategies import MovingWindowRateLimiter
from limits.storage import storage_from_string


class AttemptLimiter:
    def __init__(self, limit: str, storage_uri: str = "async+memory://", namespace: str = "otp"):
        self.limit = parse(limit)
        self.storage = storage_from_string(storage_uri)
        self.strategy = MovingWindowRateLimiter(self.storage)
        self.namespace = namespace

    async def hit(self, client_key: str) -> bool:
        """Record one attempt; False once the client is over the limit."""
        return await self.strategy.hit(self.limit, self.namespace, client_key)

    async def retry_after(self, client_key: str) -> int:
        """Seconds until the client's oldest counted attempt leaves the window."""
        stats = await self.strategy.get_window_stats(self.limit, self.namespace, client_key)
        return max(1, math.ceil(stats.reset_time - time.time()))

    async def reset(self) -> None:
        await self.storage.reset()
