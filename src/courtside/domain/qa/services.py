"""Quota-bounded question answering with a per-query deadline and an audit trail."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from advanced_alchemy.service import SQLAlchemyAsyncRepositoryService

from courtside.db import models as m
from courtside.domain.qa.intents import QaIntentType, classify_question
from courtside.domain.qa.templates import QaResult, execute_template

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from courtside.db.models import Plan
    from courtside.domain.billing.services import EntitlementService
    from courtside.domain.qa.analytics import AnalyticsSource
    from courtside.domain.quota.services import UsageDailyService

__all__ = (
    "LIMIT_REACHED",
    "LIMIT_REACHED_ANSWER",
    "TIMEOUT_ANSWER",
    "QaAskResult",
    "QaMeta",
    "QaService",
    "QueryHistoryService",
)

logger = structlog.get_logger()

LIMIT_REACHED = "LIMIT_REACHED"
LIMIT_REACHED_ANSWER = "Daily Q&A limit reached for your plan. Upgrade to premium for higher limits."
LIMIT_REACHED_SUMMARY = "Daily QA limit reached"
TIMEOUT_ANSWER = "The query timed out. Please ask a narrower question."
SUMMARY_MAX_LENGTH = 240


class QueryHistoryService(SQLAlchemyAsyncRepositoryService[m.QueryHistory]):
    """Append-only audit log of Q&A attempts."""

    class Repository(SQLAlchemyAsyncRepository[m.QueryHistory]):
        """QueryHistory SQLAlchemy Repository."""

        model_type = m.QueryHistory

    repository_type = Repository

    async def record(
        self,
        user_id: UUID,
        question: str,
        intent: str,
        *,
        parameters: dict[str, Any] | None = None,
        limited: bool = False,
        response_summary: str | None = None,
        elapsed_ms: int | None = None,
    ) -> m.QueryHistory:
        return await self.create(
            {
                "user_id": user_id,
                "question": question,
                "intent": intent,
                "parameters": parameters,
                "limited": limited,
                "response_summary": response_summary,
                "elapsed_ms": elapsed_ms,
            }
        )


@dataclass(frozen=True, slots=True)
class QaMeta:
    limited: bool
    usage_remaining: int
    intent: str
    queries_remaining: int


@dataclass(frozen=True, slots=True)
class QaAskResult:
    answer: str
    meta: QaMeta
    result: QaResult | None = None


class QaService:
    """Answers one question per call within the caller's daily quota.

    Every call that returns writes exactly one audit row: ``LIMIT_REACHED`` when the quota
    is spent, a timeout summary when the template misses its deadline, and a
    truncated answer otherwise. Timed-out queries still consume quota.
    Any other error from a template propagates unaudited as a server error.
    """

    def __init__(
        self,
        *,
        entitlements: EntitlementService,
        usage: UsageDailyService,
        history: QueryHistoryService,
        analytics: AnalyticsSource,
        timeout_ms: int,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.entitlements = entitlements
        self.usage = usage
        self.history = history
        self.analytics = analytics
        self.timeout_ms = timeout_ms
        self.clock = clock

    async def ask(self, question: str, user_id: UUID, fallback_plan: Plan | str | None) -> QaAskResult:
        """Answer ``question`` for ``user_id``.

        Args:
            question: Free-text question
            user_id: UUID of the asking user
            fallback_plan: Plan used when the user has no entitlement row yet

        Returns:
            The answer, optional report data and quota metadata
        """
        entitlement = await self.entitlements.get_or_create(user_id, fallback_plan)
        used = await self.usage.get_qa_count(user_id)
        remaining = max(entitlement.qa_daily_limit - used, 0)

        if remaining <= 0:
            await self.history.record(
                user_id,
                question,
                LIMIT_REACHED,
                limited=True,
                response_summary=LIMIT_REACHED_SUMMARY,
            )
            await logger.ainfo("Q&A quota exhausted", user_id=str(user_id), used=used)
            return QaAskResult(
                answer=LIMIT_REACHED_ANSWER,
                meta=QaMeta(limited=True, usage_remaining=0, intent=LIMIT_REACHED, queries_remaining=0),
            )

        intent = classify_question(question)
        parameters = intent.params.as_dict()
        after = max(remaining - 1, 0)
        meta = QaMeta(limited=False, usage_remaining=after, intent=str(intent.type), queries_remaining=after)

        started = self.clock()
        result: QaResult | None = None
        try:
            async with asyncio.timeout(self.timeout_ms / 1000):
                result = await execute_template(intent, self.analytics, entitlement.qa_row_limit)
        except TimeoutError:
            result = None
        elapsed_ms = int((self.clock() - started) * 1000)

        if result is None or elapsed_ms > self.timeout_ms:
            await self.usage.increment_usage(user_id, qa_queries=1)
            await self.history.record(
                user_id,
                question,
                intent.type,
                parameters=parameters,
                limited=False,
                response_summary=f"Timed out after {elapsed_ms}ms",
                elapsed_ms=elapsed_ms,
            )
            await logger.awarning(
                "Q&A query timed out",
                user_id=str(user_id),
                intent=str(intent.type),
                elapsed_ms=elapsed_ms,
                timeout_ms=self.timeout_ms,
            )
            return QaAskResult(answer=TIMEOUT_ANSWER, meta=meta)

        await self.usage.increment_usage(user_id, qa_queries=1)
        await self.history.record(
            user_id,
            question,
            intent.type,
            parameters=parameters,
            limited=False,
            response_summary=result.answer[:SUMMARY_MAX_LENGTH],
            elapsed_ms=elapsed_ms,
        )
        if intent.type is QaIntentType.UNKNOWN:
            await logger.ainfo("Unrecognised Q&A question", user_id=str(user_id))
        return QaAskResult(answer=result.answer, meta=meta, result=result)
