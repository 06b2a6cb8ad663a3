"""Fixed-window submission rate limiting.

Each client identifier gets ``limit`` admitted requests per window. The window
opens on the first request and is replaced lazily once it has elapsed, so a
burst straddling a window boundary can admit up to twice the quota. That is an
accepted approximation, not a sliding window.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import Protocol

from redis.asyncio import Redis

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
DEFAULT_WINDOW_SECONDS = 60 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60


@dataclass(slots=True, frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int


@dataclass(slots=True)
class RateLimitEntry:
    count: int
    window_expiry: float


class RateLimitStore(Protocol):
    async def consume(self, key: str, limit: int, window_seconds: float) -> RateLimitDecision:
        ...

    async def sweep(self) -> int:
        ...


class InMemoryRateLimitStore:
    """Counter map for single-instance deployments.

    ``consume`` never awaits, and every read-modify-write happens under one
    lock, so concurrent requests for the same key cannot lose an update.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> RateLimitEntry | None:
        return self._entries.get(key)

    async def consume(self, key: str, limit: int, window_seconds: float) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or now > entry.window_expiry:
                self._entries[key] = RateLimitEntry(count=1, window_expiry=now + window_seconds)
                return RateLimitDecision(allowed=True, remaining=limit - 1)

            if entry.count >= limit:
                return RateLimitDecision(allowed=False, remaining=0)

            entry.count += 1
            return RateLimitDecision(allowed=True, remaining=limit - entry.count)

    async def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now > entry.window_expiry]
            for key in expired:
                del self._entries[key]
        return len(expired)


# KEYS[1] = counter key, ARGV[1] = limit, ARGV[2] = window in milliseconds.
# Returns {allowed, count}.
CONSUME_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if not current then
  redis.call('SET', KEYS[1], 1, 'PX', ARGV[2])
  return {1, 1}
end
current = tonumber(current)
if current >= tonumber(ARGV[1]) then
  return {0, current}
end
return {1, redis.call('INCR', KEYS[1])}
"""


def rate_limit_key(client_id: str) -> str:
    return f"rl:{client_id}"


class RedisRateLimitStore:
    """Counter store shared by every instance pointed at the same Redis.

    The window is the key's PX expiry, so Redis drops stale counters itself.
    """

    def __init__(self, redis_client: Redis):
        self.redis = redis_client
        self._consume = redis_client.register_script(CONSUME_SCRIPT)

    async def consume(self, key: str, limit: int, window_seconds: float) -> RateLimitDecision:
        window_ms = max(int(window_seconds * 1000), 1)
        allowed, count = await self._consume(keys=[rate_limit_key(key)], args=[limit, window_ms])
        if not int(allowed):
            return RateLimitDecision(allowed=False, remaining=0)
        return RateLimitDecision(allowed=True, remaining=max(limit - int(count), 0))

    async def sweep(self) -> int:
        return 0

    async def ping(self) -> bool:
        return bool(await self.redis.ping())


class RateLimiter:
    def __init__(
        self,
        store: RateLimitStore,
        limit: int = DEFAULT_LIMIT,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
    ):
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds

    async def check(self, client_id: str) -> RateLimitDecision:
        decision = await self.store.consume(client_id, self.limit, self.window_seconds)
        if not decision.allowed:
            logger.info("Rate limit exceeded for client %s", client_id)
        return decision

    async def sweep(self) -> int:
        removed = await self.store.sweep()
        if removed:
            logger.debug("Swept %d expired rate limit entries", removed)
        return removed


class RateLimitSweeper:
    """Background task that evicts expired limiter entries on an interval."""

    def __init__(self, limiter: RateLimiter, interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS):
        self.limiter = limiter
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="rate-limit-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.limiter.sweep()
            except Exception:
                logger.exception("Rate limit sweep failed")
