from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

_TEST_DIR = Path(tempfile.mkdtemp(prefix="courtside-tests-"))

os.environ.update(
    {
        "APP_ENVIRONMENT": "test",
        "DATABASE_URL": f"sqlite+aiosqlite:///{_TEST_DIR / 'app.sqlite3'}",
        "DATABASE_CREATE_ALL": "true",
        "JWT_SECRET": "test-secret",
        "DEV_PREMIUM_BYPASS": "false",
        "REDIS_URL": "",
        "REQUESTS_PER_MINUTE": "5",
        "FREE_QA_DAILY_LIMIT": "5",
        "PREMIUM_QA_DAILY_LIMIT": "5000",
        "QA_QUERY_TIMEOUT_MS": "2500",
    },
)

import pytest  # noqa: E402
from advanced_alchemy.base import UUIDAuditBase  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from courtside.config.base import QuotaSettings  # noqa: E402
from courtside.db import models as m  # noqa: E402
from courtside.domain.accounts.services import UserService  # noqa: E402
from courtside.domain.billing.plans import PlanLimits, build_plan_limits  # noqa: E402

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def test_dir() -> Path:
    return _TEST_DIR


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(UUIDAuditBase.registry.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    sessionmaker = async_sessionmaker(engine, expire_on_commit=False)
    async with sessionmaker() as session:
        yield session


@pytest.fixture()
def plan_limits() -> dict[m.Plan, PlanLimits]:
    return build_plan_limits(
        QuotaSettings(
            FREE_QA_DAILY_LIMIT=5,
            PREMIUM_QA_DAILY_LIMIT=5000,
            FREE_QA_ROW_LIMIT=50,
            PREMIUM_QA_ROW_LIMIT=500,
        ),
    )


@pytest.fixture()
def create_user(session: AsyncSession) -> Callable[..., Awaitable[m.User]]:
    async def _create_user(
        *,
        external_key: str | None = None,
        plan: m.Plan = m.Plan.FREE,
        email: str | None = None,
    ) -> m.User:
        user_id = uuid4()
        return await UserService(session=session).create(
            {
                "id": user_id,
                "external_key": external_key or f"user:{user_id}",
                "email": email,
                "plan": plan,
            },
        )

    return _create_user
