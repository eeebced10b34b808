"""API request metering.

Authenticated requests that pass admission add one to the caller's
``api_requests`` counter for the day. The increment runs as a background
task with its own session so it never delays or fails the response.
"""

from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING, Any

import structlog
from litestar.middleware import AbstractMiddleware

from courtside.domain.quota.services import UsageDailyService

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from uuid import UUID

    from litestar.types import ASGIApp, Receive, Scope, Send

__all__ = (
    "UsageRecorder",
    "UsageTrackingMiddleware",
)

logger = structlog.get_logger()


class UsageRecorder:
    """Owns the in-flight usage increments so shutdown can wait for them."""

    def __init__(self, session_factory: Callable[[], Any]) -> None:
        self.session_factory = session_factory
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def record_api_request(self, user_id: UUID) -> asyncio.Task[None]:
        task = asyncio.create_task(self._increment(user_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _increment(self, user_id: UUID) -> None:
        try:
            async with self.session_factory() as db_session:
                await UsageDailyService(session=db_session).increment_usage(user_id, api_requests=1)
                await db_session.commit()
        except Exception:  # noqa: BLE001
            await logger.aexception("Failed to record API request usage", user_id=str(user_id))

    async def drain(self) -> None:
        """Wait for every scheduled increment to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class UsageTrackingMiddleware(AbstractMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        *,
        recorder: UsageRecorder,
        exclude_paths: Sequence[str] = (),
    ) -> None:
        super().__init__(app, exclude=[f"^{re.escape(path)}" for path in exclude_paths] or None)
        self.recorder = recorder

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        actor = scope.get("auth")
        if actor is not None and getattr(actor, "is_authenticated", False) and actor.user_id is not None:
            self.recorder.record_api_request(actor.user_id)
        await self.app(scope, receive, send)
