"""Fixed-window admission control for API requests."""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

from courtside.lib.exceptions import RateLimitExceededException

if TYPE_CHECKING:
    from courtside.lib.rate_limit_store import RateLimitStore

__all__ = (
    "DEFAULT_WINDOW_MS",
    "RateLimitDecision",
    "RateLimitService",
)

DEFAULT_WINDOW_MS = 60_000


class RateLimitDecision(NamedTuple):
    """Outcome of one admission check."""

    limit: int
    count: int
    remaining: int
    reset_at_ms: int

    @property
    def allowed(self) -> bool:
        return self.count <= self.limit

    @property
    def reset_at_seconds(self) -> int:
        return self.reset_at_ms // 1000

    def headers(self) -> dict[str, str]:
        return {
            "x-ratelimit-limit": str(self.limit),
            "x-ratelimit-remaining": str(self.remaining),
            "x-ratelimit-reset": str(self.reset_at_seconds),
        }


class RateLimitService:
    """Service for admitting requests against a per-actor window ceiling."""

    def __init__(
        self,
        store: RateLimitStore,
        max_per_window: int,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> None:
        """Initialize the rate limit service.

        Args:
            store: Backend holding the window counters
            max_per_window: Maximum number of requests per key per window
            window_ms: Window length in milliseconds
        """
        self.store = store
        self.max_per_window = max_per_window
        self.window_ms = window_ms

    async def hit(self, key: str) -> RateLimitDecision:
        """Count one request for ``key`` and report the window state.

        The counter is incremented even when the ceiling is already exceeded,
        so ``remaining`` and the reset time stay accurate under overload.

        Args:
            key: Actor key (or ``ip:<address>``) the request is billed against

        Returns:
            RateLimitDecision for this request
        """
        result = await self.store.increment(key, self.window_ms)
        return RateLimitDecision(
            limit=self.max_per_window,
            count=result.count,
            remaining=max(self.max_per_window - result.count, 0),
            reset_at_ms=result.reset_at_ms,
        )

    async def check(self, key: str) -> RateLimitDecision:
        """Count one request and raise when it is over the ceiling.

        Args:
            key: Actor key the request is billed against

        Raises:
            RateLimitExceededException: If the window already holds more than the ceiling

        Returns:
            RateLimitDecision for an admitted request
        """
        decision = await self.hit(key)
        if not decision.allowed:
            raise RateLimitExceededException(
                actor_key=key,
                count=decision.count,
                limit=decision.limit,
                headers=decision.headers(),
            )
        return decision

    async def close(self) -> None:
        await self.store.close()
