"""Request admission: rate limiting and assembly of the ordered middleware pipeline."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

import structlog
from litestar.datastructures import MutableScopeHeaders
from litestar.middleware import AbstractMiddleware, DefineMiddleware
from redis.exceptions import RedisError

from courtside.domain.accounts.middleware import IdentityMiddleware
from courtside.domain.billing.plans import build_plan_limits
from courtside.domain.quota.middleware import UsageTrackingMiddleware
from courtside.lib.exceptions import RateLimitExceededException

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from litestar.types import ASGIApp, Message, Receive, Scope, Send

    from courtside.config.base import Settings
    from courtside.domain.quota.middleware import UsageRecorder
    from courtside.lib.rate_limit_service import RateLimitService

__all__ = (
    "RateLimitMiddleware",
    "build_request_pipeline",
    "rate_limit_key",
)

logger = structlog.get_logger()


def rate_limit_key(scope: Scope) -> str:
    """Bill the request to the resolved actor, or the raw peer address before resolution."""
    actor = scope.get("auth")
    if actor is not None and getattr(actor, "actor_key", None):
        return actor.actor_key
    client = scope.get("client")
    return f"ip:{client[0] if client else 'unknown'}"


class RateLimitMiddleware(AbstractMiddleware):
    """Fixed-window admission control.

    Accepted and rejected responses both carry the ``x-ratelimit-*`` headers.
    When the counter store cannot be reached the request is admitted without
    them.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        rate_limiter: RateLimitService,
        exclude_paths: Sequence[str] = (),
    ) -> None:
        super().__init__(app, exclude=[f"^{re.escape(path)}" for path in exclude_paths] or None)
        self.rate_limiter = rate_limiter

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        key = rate_limit_key(scope)
        try:
            decision = await self.rate_limiter.check(key)
        except RateLimitExceededException as exc:
            await logger.ainfo("Rate limit exceeded", key=key, count=exc.count, limit=exc.limit)
            raise
        except (RedisError, OSError, TimeoutError) as exc:
            await logger.awarning(
                "Rate limit store unavailable, admitting request",
                key=key,
                error_type=type(exc).__name__,
            )
            await self.app(scope, receive, send)
            return

        headers = decision.headers()

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_headers = MutableScopeHeaders.from_message(message=message)
                for name, value in headers.items():
                    response_headers[name] = value
            await send(message)

        await self.app(scope, receive, send_wrapper)


def build_request_pipeline(
    settings: Settings,
    *,
    session_factory: Callable[[], Any],
    rate_limiter: RateLimitService,
    usage_recorder: UsageRecorder,
) -> list[DefineMiddleware]:
    """Identity, then rate limiting, then usage metering, in that order."""
    return [
        DefineMiddleware(
            IdentityMiddleware,
            session_factory=session_factory,
            jwt_secret=settings.app.JWT_SECRET,
            jwt_algorithm=settings.app.JWT_ALGORITHM,
            system_paths=settings.app.SYSTEM_PATHS,
            premium_override=settings.app.DEV_PREMIUM_BYPASS,
            plan_limits=build_plan_limits(settings.quota),
        ),
        DefineMiddleware(
            RateLimitMiddleware,
            rate_limiter=rate_limiter,
            exclude_paths=settings.rate_limit.EXEMPT_PATHS,
        ),
        DefineMiddleware(
            UsageTrackingMiddleware,
            recorder=usage_recorder,
            exclude_paths=settings.quota.USAGE_EXEMPT_PATHS,
        ),
    ]
