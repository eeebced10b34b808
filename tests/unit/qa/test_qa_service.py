from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import pytest

from courtside.db import models as m
from courtside.domain.billing.services import EntitlementService
from courtside.domain.qa.analytics import ScorerRow
from courtside.domain.qa.services import (
    LIMIT_REACHED,
    LIMIT_REACHED_ANSWER,
    TIMEOUT_ANSWER,
    QaService,
    QueryHistoryService,
)
from courtside.domain.quota.services import UsageDailyService

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncSession

    from courtside.domain.billing.plans import PlanLimits

pytestmark = pytest.mark.anyio


class StubAnalytics:
    def __init__(self, *, delay: float = 0.0) -> None:
        self.delay = delay
        self.calls = 0

    async def latest_season(self) -> str | None:
        return "2024-25"

    async def top_scorers(self, season: str, limit: int) -> list[ScorerRow]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return [ScorerRow(player_id="1", player_name="Luka Doncic", team_abbrev="LAL", games=50, ppg=28.2)]

    async def find_player(self, name: str) -> Any:
        self.calls += 1
        return None

    async def player_game_log(self, player_id: str, season: str, limit: int) -> list[Any]:
        return []

    async def find_team(self, name: str) -> Any:
        self.calls += 1
        return None

    async def team_net_rating_trend(self, team_abbrev: str, season: str, limit: int) -> list[Any]:
        return []


class SteppingClock:
    """Each reading is ``step`` seconds after the previous one."""

    def __init__(self, step: float) -> None:
        self.step = step
        self.now = 0.0

    def __call__(self) -> float:
        current = self.now
        self.now += self.step
        return current


def build_service(
    session: AsyncSession,
    plan_limits: dict[m.Plan, PlanLimits],
    analytics: StubAnalytics,
    *,
    timeout_ms: int = 2500,
    clock: Callable[[], float] | None = None,
) -> QaService:
    kwargs: dict[str, Any] = {"clock": clock} if clock is not None else {}
    return QaService(
        entitlements=EntitlementService(session=session, premium_override=False, plan_limits=plan_limits),
        usage=UsageDailyService(session=session),
        history=QueryHistoryService(session=session),
        analytics=analytics,
        timeout_ms=timeout_ms,
        **kwargs,
    )


async def _audit_rows(session: AsyncSession, user_id: Any) -> list[m.QueryHistory]:
    return list(await QueryHistoryService(session=session).list(m.QueryHistory.user_id == user_id))


async def test_success_consumes_one_query_and_audits_summary(
    session: AsyncSession,
    plan_limits: dict[m.Plan, PlanLimits],
    create_user: Callable[..., Awaitable[m.User]],
) -> None:
    user = await create_user()
    analytics = StubAnalytics()
    service = build_service(session, plan_limits, analytics)

    outcome = await service.ask("Who are the top scorers in 2024-25?", user.id, m.Plan.FREE)

    assert outcome.answer == "Top scorers for 2024-25 are ranked by regular-season points per game."
    assert outcome.result is not None
    assert outcome.result.table is not None
    assert outcome.meta.limited is False
    assert outcome.meta.intent == "TOP_SCORERS_SEASON"
    assert outcome.meta.queries_remaining == 4
    assert outcome.meta.usage_remaining == 4
    assert await UsageDailyService(session=session).get_qa_count(user.id) == 1

    (audit,) = await _audit_rows(session, user.id)
    assert audit.intent == "TOP_SCORERS_SEASON"
    assert audit.limited is False
    assert audit.parameters == {"season": "2024-25", "limit": 10}
    assert audit.response_summary == outcome.answer
    assert audit.elapsed_ms is not None


async def test_summary_is_truncated(
    session: AsyncSession,
    plan_limits: dict[m.Plan, PlanLimits],
    create_user: Callable[..., Awaitable[m.User]],
) -> None:
    user = await create_user()
    service = build_service(session, plan_limits, StubAnalytics())
    long_name = "A" * 300

    outcome = await service.ask(f"average points for {long_name} last 5 games", user.id, m.Plan.FREE)

    assert outcome.answer == f'I couldn\'t find a player matching "{long_name}".'
    (audit,) = await _audit_rows(session, user.id)
    assert audit.intent == "PLAYER_AVG_POINTS_LAST_N_GAMES"
    assert audit.response_summary == outcome.answer[:240]


async def test_quota_exhausted_declines_without_classifying(
    session: AsyncSession,
    plan_limits: dict[m.Plan, PlanLimits],
    create_user: Callable[..., Awaitable[m.User]],
) -> None:
    user = await create_user()
    usage = UsageDailyService(session=session)
    await usage.increment_usage(user.id, qa_queries=5)
    analytics = StubAnalytics()
    service = build_service(session, plan_limits, analytics)

    outcome = await service.ask("Who are the top scorers in 2024-25?", user.id, m.Plan.FREE)

    assert outcome.answer == LIMIT_REACHED_ANSWER
    assert outcome.result is None
    assert outcome.meta.limited is True
    assert outcome.meta.intent == LIMIT_REACHED
    assert outcome.meta.queries_remaining == 0
    assert analytics.calls == 0
    assert await usage.get_qa_count(user.id) == 5

    (audit,) = await _audit_rows(session, user.id)
    assert audit.intent == LIMIT_REACHED
    assert audit.limited is True
    assert audit.response_summary == "Daily QA limit reached"


async def test_timeout_cancels_query_and_still_consumes_quota(
    session: AsyncSession,
    plan_limits: dict[m.Plan, PlanLimits],
    create_user: Callable[..., Awaitable[m.User]],
) -> None:
    user = await create_user()
    service = build_service(session, plan_limits, StubAnalytics(delay=5.0), timeout_ms=50)

    outcome = await service.ask("Who are the top scorers in 2024-25?", user.id, m.Plan.FREE)

    assert outcome.answer == TIMEOUT_ANSWER
    assert outcome.result is None
    assert outcome.meta.limited is False
    assert outcome.meta.intent == "TOP_SCORERS_SEASON"
    assert outcome.meta.queries_remaining == 4
    assert await UsageDailyService(session=session).get_qa_count(user.id) == 1

    (audit,) = await _audit_rows(session, user.id)
    assert audit.limited is False
    assert audit.elapsed_ms is not None
    assert audit.elapsed_ms >= 50
    assert audit.response_summary == f"Timed out after {audit.elapsed_ms}ms"


async def test_slow_result_past_deadline_is_discarded(
    session: AsyncSession,
    plan_limits: dict[m.Plan, PlanLimits],
    create_user: Callable[..., Awaitable[m.User]],
) -> None:
    user = await create_user()
    service = build_service(session, plan_limits, StubAnalytics(), timeout_ms=1000, clock=SteppingClock(step=3.0))

    outcome = await service.ask("Who are the top scorers in 2024-25?", user.id, m.Plan.FREE)

    assert outcome.answer == TIMEOUT_ANSWER
    (audit,) = await _audit_rows(session, user.id)
    assert audit.elapsed_ms == 3000
    assert audit.response_summary == "Timed out after 3000ms"


async def test_exactly_one_audit_row_per_call(
    session: AsyncSession,
    plan_limits: dict[m.Plan, PlanLimits],
    create_user: Callable[..., Awaitable[m.User]],
) -> None:
    user = await create_user()
    analytics = StubAnalytics()
    service = build_service(session, plan_limits, analytics)

    outcomes = [await service.ask("top scorers 2024-25", user.id, m.Plan.FREE) for _ in range(10)]

    assert [o.meta.limited for o in outcomes] == [False] * 5 + [True] * 5
    assert [o.meta.queries_remaining for o in outcomes[:5]] == [4, 3, 2, 1, 0]
    assert analytics.calls == 5
    assert len(await _audit_rows(session, user.id)) == 10
    assert await UsageDailyService(session=session).get_qa_count(user.id) == 5


async def test_premium_user_gets_premium_limits(
    session: AsyncSession,
    plan_limits: dict[m.Plan, PlanLimits],
    create_user: Callable[..., Awaitable[m.User]],
) -> None:
    user = await create_user(plan=m.Plan.PREMIUM)
    service = build_service(session, plan_limits, StubAnalytics())

    outcome = await service.ask("top scorers 2024-25", user.id, m.Plan.PREMIUM)

    assert outcome.meta.queries_remaining == 4999


class FailingAnalytics(StubAnalytics):
    async def top_scorers(self, season: str, limit: int) -> list[ScorerRow]:
        msg = "analytics view missing"
        raise RuntimeError(msg)


async def test_template_failure_propagates_without_audit_or_usage(
    session: AsyncSession,
    plan_limits: dict[m.Plan, PlanLimits],
    create_user: Callable[..., Awaitable[m.User]],
) -> None:
    user = await create_user()
    service = build_service(session, plan_limits, FailingAnalytics())

    with pytest.raises(RuntimeError, match="analytics view missing"):
        await service.ask("Who are the top scorers in 2024-25?", user.id, m.Plan.FREE)

    assert await UsageDailyService(session=session).get_qa_count(user.id) == 0
    assert await _audit_rows(session, user.id) == []
