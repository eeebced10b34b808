"""System Controllers."""

from __future__ import annotations

from datetime import UTC, datetime

import structlog
from litestar import Controller, MediaType, Response, get
from litestar.status_codes import HTTP_200_OK, HTTP_503_SERVICE_UNAVAILABLE
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from courtside.config.base import get_settings
from courtside.domain.system.schemas import SystemHealth

logger = structlog.get_logger()

HEALTH_PATH = "/health"


class SystemController(Controller):
    tags = ["System"]

    @get(operation_id="SystemHealth", path=HEALTH_PATH, cache=False)
    async def check_system_health(self, db_session: AsyncSession) -> Response[SystemHealth]:
        """Check database available and returns app config info."""
        try:
            await db_session.execute(text("select 1"))
            db_ping = True
        except (SQLAlchemyError, OSError):
            db_ping = False

        healthy = db_ping
        if not healthy:
            await logger.awarning("Database health check failed")
        return Response(
            content=SystemHealth(
                ok=healthy,
                database_status="online" if db_ping else "offline",
                service=get_settings().app.NAME,
                timestamp=datetime.now(UTC),
            ),
            status_code=HTTP_200_OK if healthy else HTTP_503_SERVICE_UNAVAILABLE,
            media_type=MediaType.JSON,
        )
