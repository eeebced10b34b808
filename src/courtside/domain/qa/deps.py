"""Q&A dependency providers."""

from __future__ import annotations

from litestar.datastructures import State

from courtside.domain.billing.services import EntitlementService
from courtside.domain.qa.analytics import AnalyticsRepository, AnalyticsSource
from courtside.domain.qa.services import QaService, QueryHistoryService
from courtside.domain.quota.services import UsageDailyService
from courtside.lib.deps import create_service_provider

provide_query_history_service = create_service_provider(
    QueryHistoryService,
    error_messages={"integrity": "Q&A audit operation failed."},
)


def provide_analytics(state: State) -> AnalyticsSource:
    """Use the analytics source registered on the app, else query the app database."""
    source = state.get("analytics_source")
    if source is not None:
        return source
    from courtside.config.app import alchemy

    return AnalyticsRepository(alchemy.get_session)


def provide_qa_service(
    state: State,
    entitlement_service: EntitlementService,
    usage_service: UsageDailyService,
    query_history_service: QueryHistoryService,
    analytics: AnalyticsSource,
) -> QaService:
    from courtside.config.base import get_settings

    return QaService(
        entitlements=entitlement_service,
        usage=usage_service,
        history=query_history_service,
        analytics=analytics,
        timeout_ms=state.get("qa_query_timeout_ms") or get_settings().quota.QA_QUERY_TIMEOUT_MS,
    )
