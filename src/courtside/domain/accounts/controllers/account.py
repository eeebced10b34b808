"""Account profile endpoint."""

from __future__ import annotations

import structlog
from litestar import Controller, get
from litestar.di import Provide

import courtside.db.models as m
from courtside.domain.accounts import urls
from courtside.domain.accounts.deps import provide_users_service
from courtside.domain.accounts.identity import ActorIdentity
from courtside.domain.accounts.schemas import AccountProfile, AccountUsage, AccountUser, PlanLimitsOut
from courtside.domain.accounts.services import UserService
from courtside.domain.billing.deps import provide_entitlement_service
from courtside.domain.billing.services import EntitlementService
from courtside.domain.quota.deps import provide_usage_service
from courtside.domain.quota.services import UsageDailyService, today_key
from courtside.lib.exceptions import UnauthorizedError, UserNotFoundError

logger = structlog.get_logger()


class AccountController(Controller):
    """Controller for the caller's own account."""

    tags = ["Account"]

    dependencies = {
        "users_service": Provide(provide_users_service),
        "entitlement_service": Provide(provide_entitlement_service),
        "usage_service": Provide(provide_usage_service),
    }

    @get(path=urls.ACCOUNT_PROFILE, operation_id="get_account_profile")
    async def get_profile(
        self,
        actor: ActorIdentity,
        current_user: m.User | None,
        users_service: UserService,
        entitlement_service: EntitlementService,
        usage_service: UsageDailyService,
    ) -> AccountProfile:
        """Return the caller's plan, limits and today's usage."""
        if current_user is None or not actor.is_authenticated:
            raise UnauthorizedError
        user = await users_service.get_one_or_none(m.User.id == current_user.id)
        if user is None:
            raise UserNotFoundError

        entitlement = await entitlement_service.get_or_create(user.id, actor.plan)
        limits = entitlement_service.limits_for(entitlement.plan)
        date_key = today_key()
        usage = await usage_service.get_daily_usage(user.id, date_key)
        qa_queries = usage.qa_queries if usage else 0
        return AccountProfile(
            user=AccountUser(
                id=user.id,
                actor_key=actor.actor_key,
                plan=str(entitlement.plan),
                is_authenticated=True,
            ),
            limits=PlanLimitsOut(
                qa_daily_limit=entitlement.qa_daily_limit,
                qa_row_limit=entitlement.qa_row_limit,
                games_max=limits.games_max,
                shots_scope=limits.shots_scope,
                trend_window=limits.trend_window,
            ),
            usage=AccountUsage(
                date=date_key,
                qa_queries=qa_queries,
                api_requests=usage.api_requests if usage else 0,
                qa_remaining=max(entitlement.qa_daily_limit - qa_queries, 0),
            ),
        )
