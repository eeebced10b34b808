"""Static plan table: quota limits and the presentation limits reported to clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from courtside.db.models import Plan

if TYPE_CHECKING:
    from collections.abc import Mapping

    from courtside.config.base import QuotaSettings

__all__ = (
    "ACTIVE_SUBSCRIPTION_STATUS",
    "PlanLimits",
    "build_plan_limits",
    "get_plan_limits",
    "resolve_plan_from_subscription_status",
)

ACTIVE_SUBSCRIPTION_STATUS = "active"


@dataclass(frozen=True, slots=True)
class PlanLimits:
    qa_daily_limit: int
    qa_row_limit: int
    games_max: int | None
    """Games shown per list, ``None`` for unbounded."""
    shots_scope: Literal["recent", "all"]
    trend_window: int | None


def build_plan_limits(quota: QuotaSettings) -> dict[Plan, PlanLimits]:
    """Build the plan table from quota settings.

    ``QuotaSettings`` already refuses PREMIUM limits below FREE ones, so the
    table is monotonic once it exists.
    """
    return {
        Plan.FREE: PlanLimits(
            qa_daily_limit=quota.FREE_QA_DAILY_LIMIT,
            qa_row_limit=quota.FREE_QA_ROW_LIMIT,
            games_max=5,
            shots_scope="recent",
            trend_window=5,
        ),
        Plan.PREMIUM: PlanLimits(
            qa_daily_limit=quota.PREMIUM_QA_DAILY_LIMIT,
            qa_row_limit=quota.PREMIUM_QA_ROW_LIMIT,
            games_max=None,
            shots_scope="all",
            trend_window=None,
        ),
    }


def get_plan_limits(plan: Plan | str | None, table: Mapping[Plan, PlanLimits] | None = None) -> PlanLimits:
    """Look up the limits for ``plan``; anything unrecognised gets FREE limits."""
    if table is None:
        from courtside.config.base import get_settings

        table = build_plan_limits(get_settings().quota)
    try:
        return table[Plan(plan)]
    except (KeyError, ValueError):
        return table[Plan.FREE]


def resolve_plan_from_subscription_status(status: str | None) -> Plan:
    return Plan.PREMIUM if status == ACTIVE_SUBSCRIPTION_STATUS else Plan.FREE
