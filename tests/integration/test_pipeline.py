from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from litestar.testing import AsyncTestClient

from courtside.asgi import create_app
from courtside.config.app import alchemy
from courtside.domain.quota.services import UsageDailyService, today_key

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from httpx import AsyncClient
    from litestar import Litestar

    from courtside.db import models as m

pytestmark = pytest.mark.anyio

RATE_LIMIT_HEADERS = ("x-ratelimit-limit", "x-ratelimit-remaining", "x-ratelimit-reset")


async def test_health_is_exempt_from_rate_limiting(client: AsyncClient) -> None:
    for _ in range(7):
        response = await client.get("/health")
        assert response.status_code == 200
        assert "x-ratelimit-limit" not in response.headers

    body = response.json()
    assert body["ok"] is True
    assert body["databaseStatus"] == "online"


async def test_anonymous_profile_is_unauthorized_but_metered(client: AsyncClient) -> None:
    response = await client.get("/me")

    assert response.status_code == 401
    assert response.json() == {
        "error": {"code": "UNAUTHORIZED", "message": "No user context was found for this request."},
    }
    assert all(name in response.headers for name in RATE_LIMIT_HEADERS)
    assert response.headers["x-ratelimit-limit"] == "5"
    assert response.headers["x-ratelimit-remaining"] == "4"


async def test_profile_for_authenticated_user(
    client: AsyncClient,
    create_app_user: Callable[..., Awaitable[m.User]],
    auth_headers: Callable[[m.User], dict[str, str]],
) -> None:
    user = await create_app_user()

    response = await client.get("/me", headers=auth_headers(user))

    assert response.status_code == 200
    body = response.json()
    assert body["user"] == {
        "id": str(user.id),
        "actorKey": f"user:{user.id}",
        "plan": "FREE",
        "isAuthenticated": True,
    }
    assert body["limits"]["qaDailyLimit"] == 5
    assert body["limits"]["shotsScope"] == "recent"
    assert body["usage"]["date"] == today_key()
    assert body["usage"]["qaRemaining"] == 5


async def test_sixth_request_in_window_is_rejected(
    client: AsyncClient,
    create_app_user: Callable[..., Awaitable[m.User]],
    auth_headers: Callable[[m.User], dict[str, str]],
) -> None:
    user = await create_app_user()
    headers = auth_headers(user)

    for expected_remaining in ("4", "3", "2", "1", "0"):
        response = await client.get("/me", headers=headers)
        assert response.status_code == 200
        assert response.headers["x-ratelimit-remaining"] == expected_remaining

    response = await client.get("/me", headers=headers)

    assert response.status_code == 429
    assert response.json()["error"]["code"] == "RATE_LIMITED"
    assert response.headers["x-ratelimit-limit"] == "5"
    assert response.headers["x-ratelimit-remaining"] == "0"
    assert int(response.headers["x-ratelimit-reset"]) > 0


async def test_actors_have_separate_windows(
    client: AsyncClient,
    create_app_user: Callable[..., Awaitable[m.User]],
    auth_headers: Callable[[m.User], dict[str, str]],
) -> None:
    first = await create_app_user()
    second = await create_app_user()

    for _ in range(5):
        await client.get("/me", headers=auth_headers(first))
    response = await client.get("/me", headers=auth_headers(second))

    assert response.status_code == 200
    assert response.headers["x-ratelimit-remaining"] == "4"


async def test_blank_question_is_rejected_before_identity_checks(client: AsyncClient) -> None:
    response = await client.post("/qa/ask", json={"question": "   "})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_QUESTION"


async def test_anonymous_question_is_unauthorized(client: AsyncClient) -> None:
    response = await client.post("/qa/ask", json={"question": "Who are the top scorers?"})

    assert response.status_code == 401
    assert response.json()["error"] == {
        "code": "UNAUTHORIZED",
        "message": "Missing user context for Q&A request.",
    }


async def test_unknown_question_consumes_quota(
    client: AsyncClient,
    create_app_user: Callable[..., Awaitable[m.User]],
    auth_headers: Callable[[m.User], dict[str, str]],
) -> None:
    user = await create_app_user()

    response = await client.post(
        "/qa/ask",
        json={"question": "What should I cook tonight?"},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["meta"] == {
        "limited": False,
        "usageRemaining": 4,
        "intent": "UNKNOWN",
        "queriesRemaining": 4,
    }
    assert body["table"] is None

    profile = await client.get("/me", headers=auth_headers(user))
    assert profile.json()["usage"]["qaQueries"] == 1
    assert profile.json()["usage"]["qaRemaining"] == 4


async def test_authenticated_requests_are_metered(
    app: Litestar,
    client: AsyncClient,
    create_app_user: Callable[..., Awaitable[m.User]],
    auth_headers: Callable[[m.User], dict[str, str]],
) -> None:
    user = await create_app_user()

    for _ in range(3):
        await client.get("/me", headers=auth_headers(user))
    await client.get("/health", headers=auth_headers(user))
    await app.state.usage_recorder.drain()

    async with alchemy.get_session() as db_session:
        usage = await UsageDailyService(session=db_session).get_daily_usage(user.id)
    assert usage is not None
    assert usage.api_requests == 3


async def test_unreachable_store_admits_without_headers(
    unreachable_store_app: Litestar,
    create_app_user: Callable[..., Awaitable[m.User]],
    auth_headers: Callable[[m.User], dict[str, str]],
) -> None:
    async with AsyncTestClient(app=unreachable_store_app) as client:
        user = await create_app_user()
        for _ in range(7):
            response = await client.get("/me", headers=auth_headers(user))
            assert response.status_code == 200
            assert "x-ratelimit-limit" not in response.headers
    await alchemy.get_engine().dispose()


async def test_answered_question_returns_table_and_chart(
    analytics_app: Litestar,
    create_app_user: Callable[..., Awaitable[m.User]],
    auth_headers: Callable[[m.User], dict[str, str]],
) -> None:
    async with AsyncTestClient(app=analytics_app) as client:
        user = await create_app_user()
        response = await client.post(
            "/qa/ask",
            json={"question": "Who are the top scorers in 2024-25?"},
            headers=auth_headers(user),
        )
    await alchemy.get_engine().dispose()

    assert response.status_code == 200
    body = response.json()
    assert body["answer"] == "Top scorers for 2024-25 are ranked by regular-season points per game."
    assert body["table"]["columns"] == ["Player", "Team", "Games", "PPG"]
    assert body["table"]["rows"][0] == ["Shai Gilgeous-Alexander", "OKC", 76, 32.7]
    assert body["chartSpec"]["type"] == "bar"
    assert "chart_spec" not in body
    assert body["meta"] == {
        "limited": False,
        "usageRemaining": 4,
        "intent": "TOP_SCORERS_SEASON",
        "queriesRemaining": 4,
    }


async def test_application_factory_serializes_camel_case(
    create_app_user: Callable[..., Awaitable[m.User]],
    auth_headers: Callable[[m.User], dict[str, str]],
) -> None:
    async with AsyncTestClient(app=create_app()) as client:
        health = await client.get("/health")
        user = await create_app_user()
        profile = await client.get("/me", headers=auth_headers(user))
    await alchemy.get_engine().dispose()

    assert "databaseStatus" in health.json()
    assert "database_status" not in health.json()
    assert profile.status_code == 200
    assert profile.json()["user"]["actorKey"] == f"user:{user.id}"
    assert profile.json()["user"]["isAuthenticated"] is True
