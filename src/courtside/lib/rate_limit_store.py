"""Fixed-window counter backends for request rate limiting."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

    from redis.asyncio import Redis

__all__ = (
    "MemoryRateLimitStore",
    "RateLimitResult",
    "RateLimitStore",
    "RedisRateLimitStore",
    "build_rate_limit_store",
)

logger = structlog.get_logger()

KEY_PREFIX = "ratelimit:"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """Counter state after one increment."""

    count: int
    reset_at_ms: int
    """Unix epoch milliseconds at which the current window ends."""


@runtime_checkable
class RateLimitStore(Protocol):
    async def increment(self, key: str, window_ms: int) -> RateLimitResult: ...

    async def close(self) -> None: ...


@dataclass(slots=True)
class _Window:
    count: int
    reset_at_ms: int


class MemoryRateLimitStore:
    """In-process window table.

    Only correct for a single process; every worker keeps its own counts.
    """

    def __init__(self, *, clock: Callable[[], int] = _now_ms, purge_every: int = 1024) -> None:
        self._windows: dict[str, _Window] = {}
        self._lock = asyncio.Lock()
        self._clock = clock
        self._purge_every = max(1, purge_every)
        self._ops = 0

    async def increment(self, key: str, window_ms: int) -> RateLimitResult:
        async with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or window.reset_at_ms <= now:
                window = _Window(count=1, reset_at_ms=now + window_ms)
                self._windows[key] = window
            else:
                window.count += 1
            self._ops += 1
            if self._ops % self._purge_every == 0:
                self._purge_expired(now)
            return RateLimitResult(count=window.count, reset_at_ms=window.reset_at_ms)

    def _purge_expired(self, now: int) -> None:
        expired = [key for key, window in self._windows.items() if window.reset_at_ms <= now]
        for key in expired:
            del self._windows[key]

    def __len__(self) -> int:
        return len(self._windows)

    async def close(self) -> None:
        async with self._lock:
            self._windows.clear()


class RedisRateLimitStore:
    """Shared window counters on Redis.

    ``INCR`` is atomic across processes. The expiry is only set by the
    increment that opens a window, so later hits never extend it.
    """

    def __init__(self, client: Redis, *, clock: Callable[[], int] = _now_ms) -> None:
        self._client = client
        self._clock = clock

    @classmethod
    def from_url(cls, url: str, *, socket_connect_timeout: float = 1.0) -> RedisRateLimitStore:
        from redis.asyncio import Redis

        client = Redis.from_url(
            url,
            socket_connect_timeout=socket_connect_timeout,
            socket_timeout=socket_connect_timeout,
            retry_on_timeout=False,
        )
        return cls(client)

    async def increment(self, key: str, window_ms: int) -> RateLimitResult:
        counter_key = f"{KEY_PREFIX}{key}"
        count = int(await self._client.incr(counter_key))
        if count == 1:
            await self._client.pexpire(counter_key, window_ms)
        ttl = int(await self._client.pttl(counter_key))
        if ttl < 0:
            # opening PEXPIRE never landed; bound the key to one window from now
            await self._client.pexpire(counter_key, window_ms)
            ttl = window_ms
        return RateLimitResult(count=count, reset_at_ms=self._clock() + ttl)

    async def close(self) -> None:
        await self._client.aclose()


def build_rate_limit_store(redis_url: str | None, *, socket_connect_timeout: float = 1.0) -> RateLimitStore:
    """Pick the shared backend when a Redis URL is configured, the in-process one otherwise."""
    if redis_url:
        logger.info("Using shared rate limit store", backend="redis")
        return RedisRateLimitStore.from_url(redis_url, socket_connect_timeout=socket_connect_timeout)
    logger.info("Using in-process rate limit store", backend="memory")
    return MemoryRateLimitStore()
