from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest
from litestar import Litestar
from litestar.testing import AsyncTestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from courtside.config.app import alchemy
from courtside.config.base import get_settings
from courtside.db import models as m
from courtside.domain.qa.analytics import PlayerGame, PlayerMatch, ScorerRow, TeamMatch, TeamRatingRow
from courtside.domain.accounts.services import UserService
from courtside.lib.rate_limit_store import MemoryRateLimitStore, RateLimitResult
from courtside.lib.security import encode_token
from courtside.server import plugins
from courtside.server.core import ApplicationCore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

    from httpx import AsyncClient

    from courtside.domain.qa.analytics import AnalyticsSource
    from courtside.lib.rate_limit_store import RateLimitStore


class UnreachableRateLimitStore:
    """Counter store whose backend is down."""

    async def increment(self, key: str, window_ms: int) -> RateLimitResult:
        msg = "Connection refused"
        raise RedisConnectionError(msg)

    async def close(self) -> None:
        return None


class SeasonAnalytics:
    """Fixed analytics data for one season."""

    async def latest_season(self) -> str | None:
        return "2024-25"

    async def top_scorers(self, season: str, limit: int) -> list[ScorerRow]:
        rows = [
            ScorerRow(player_id="1", player_name="Shai Gilgeous-Alexander", team_abbrev="OKC", games=76, ppg=32.7),
            ScorerRow(player_id="2", player_name="Giannis Antetokounmpo", team_abbrev="MIL", games=67, ppg=30.4),
            ScorerRow(player_id="3", player_name="Nikola Jokic", team_abbrev="DEN", games=70, ppg=29.6),
        ]
        return rows[:limit]

    async def find_player(self, name: str) -> PlayerMatch | None:
        return None

    async def player_game_log(self, player_id: str, season: str, limit: int) -> list[PlayerGame]:
        return []

    async def find_team(self, name: str) -> TeamMatch | None:
        return None

    async def team_net_rating_trend(self, team_abbrev: str, season: str, limit: int) -> list[TeamRatingRow]:
        return []


def build_app(
    rate_limit_store: RateLimitStore | None = None,
    analytics_source: AnalyticsSource | None = None,
) -> Litestar:
    return Litestar(
        plugins=[
            plugins.pydantic,
            ApplicationCore(
                rate_limit_store=rate_limit_store or MemoryRateLimitStore(),
                analytics_source=analytics_source,
            ),
        ],
    )


@pytest.fixture()
def app() -> Litestar:
    return build_app()


@pytest.fixture()
def analytics_app() -> Litestar:
    return build_app(analytics_source=SeasonAnalytics())


@pytest.fixture()
def unreachable_store_app() -> Litestar:
    return build_app(rate_limit_store=UnreachableRateLimitStore())


@pytest.fixture()
async def client(app: Litestar) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncTestClient(app=app) as client:
        yield client
    await alchemy.get_engine().dispose()


@pytest.fixture()
def create_app_user() -> Callable[..., Awaitable[m.User]]:
    async def _create_app_user(*, plan: m.Plan = m.Plan.FREE, external_key: str | None = None) -> m.User:
        user_id = uuid4()
        async with alchemy.get_session() as db_session:
            user = await UserService(session=db_session).create(
                {
                    "id": user_id,
                    "external_key": external_key or f"user:{user_id}",
                    "email": f"{user_id.hex}@example.com",
                    "plan": plan,
                },
            )
            await db_session.commit()
        return user

    return _create_app_user


@pytest.fixture()
def auth_headers() -> Callable[[m.User], dict[str, str]]:
    def _auth_headers(user: m.User) -> dict[str, str]:
        token = encode_token(str(user.id), get_settings().app.JWT_SECRET)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
