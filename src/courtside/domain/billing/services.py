"""Subscription records and the entitlement synchroniser built on them."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

import structlog
from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from advanced_alchemy.service import SQLAlchemyAsyncRepositoryService
from sqlalchemy import select

from courtside.db import models as m
from courtside.db.models import Plan
from courtside.db.utils import dialect_insert
from courtside.domain.accounts.services import UserService
from courtside.domain.billing.plans import (
    ACTIVE_SUBSCRIPTION_STATUS,
    PlanLimits,
    build_plan_limits,
    get_plan_limits,
    resolve_plan_from_subscription_status,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = (
    "EntitlementService",
    "SubscriptionService",
)

logger = structlog.get_logger()


class SubscriptionService(SQLAlchemyAsyncRepositoryService[m.Subscription]):
    """Handles database operations for billing subscriptions."""

    class Repository(SQLAlchemyAsyncRepository[m.Subscription]):
        """Subscription SQLAlchemy Repository."""

        model_type = m.Subscription

    repository_type = Repository
    match_fields = ["stripe_subscription_id"]

    async def resolve_plan(self, user_id: UUID) -> Plan:
        """Derive the plan a user's subscriptions currently pay for.

        Args:
            user_id: UUID of the user

        Returns:
            PREMIUM when an active subscription exists, FREE otherwise
        """
        stmt = (
            select(m.Subscription.id)
            .where(
                m.Subscription.user_id == user_id,
                m.Subscription.status == ACTIVE_SUBSCRIPTION_STATUS,
            )
            .order_by(m.Subscription.updated_at.desc())
            .limit(1)
        )
        result = await self.repository.session.execute(stmt)  # type: ignore[attr-defined]
        return Plan.PREMIUM if result.scalar_one_or_none() is not None else Plan.FREE

    async def record_subscription(
        self,
        user_id: UUID,
        *,
        stripe_subscription_id: str,
        status: str,
        stripe_customer_id: str | None = None,
        current_period_end: datetime | None = None,
        cancel_at_period_end: bool = False,
    ) -> m.Subscription:
        """Insert or update a subscription snapshot and move the user to the matching plan.

        Args:
            user_id: UUID of the subscribing user
            stripe_subscription_id: Provider subscription id, unique per record
            status: Provider status string; only ``active`` grants PREMIUM
            stripe_customer_id: Provider customer id
            current_period_end: End of the paid period
            cancel_at_period_end: Whether the subscription lapses at period end

        Returns:
            The stored subscription
        """
        plan = resolve_plan_from_subscription_status(status)
        subscription = await self.upsert(
            {
                "user_id": user_id,
                "stripe_subscription_id": stripe_subscription_id,
                "stripe_customer_id": stripe_customer_id,
                "status": status,
                "plan": plan,
                "current_period_end": current_period_end,
                "cancel_at_period_end": cancel_at_period_end,
            },
            match_fields=["stripe_subscription_id"],
        )
        users = UserService(session=self.repository.session)  # type: ignore[attr-defined]
        user = await users.get_one_or_none(m.User.id == user_id)
        if user is not None:
            await users.set_plan(user, plan)
        await logger.ainfo(
            "Recorded subscription",
            user_id=str(user_id),
            stripe_subscription_id=stripe_subscription_id,
            status=status,
            plan=plan.value,
        )
        return subscription


class EntitlementService(SQLAlchemyAsyncRepositoryService[m.Entitlement]):
    """Keeps each user's entitlement row in line with their billing state."""

    class Repository(SQLAlchemyAsyncRepository[m.Entitlement]):
        """Entitlement SQLAlchemy Repository."""

        model_type = m.Entitlement

    repository_type = Repository
    match_fields = ["user_id"]

    def __init__(
        self,
        *args: Any,
        premium_override: bool | None = None,
        plan_limits: Mapping[Plan, PlanLimits] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        if premium_override is None or plan_limits is None:
            from courtside.config.base import get_settings

            settings = get_settings()
            if premium_override is None:
                premium_override = settings.app.DEV_PREMIUM_BYPASS
            if plan_limits is None:
                plan_limits = build_plan_limits(settings.quota)
        self.premium_override = premium_override
        self.plan_limits = plan_limits

    @property
    def _session(self) -> Any:
        return self.repository.session  # type: ignore[attr-defined]

    def limits_for(self, plan: Plan | str | None) -> PlanLimits:
        return get_plan_limits(plan, self.plan_limits)

    async def get_for_user(self, user_id: UUID) -> m.Entitlement | None:
        stmt = (
            select(m.Entitlement)
            .where(m.Entitlement.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def synchronize(self, user_id: UUID) -> m.Entitlement | None:
        """Bring a user's plan and entitlement in line with their subscriptions.

        Nothing is written when the stored plan and limits already match.

        Args:
            user_id: UUID of the user

        Returns:
            The current entitlement, or None when the user does not exist
        """
        users = UserService(session=self._session)
        user = await users.get_one_or_none(m.User.id == user_id)
        if user is None:
            return None
        if self.premium_override:
            desired = Plan.PREMIUM
        else:
            desired = await SubscriptionService(session=self._session).resolve_plan(user_id)
        if user.plan != desired:
            await logger.ainfo(
                "Plan changed",
                user_id=str(user_id),
                previous_plan=str(user.plan),
                plan=desired.value,
            )
            await users.set_plan(user, desired)
        return await self._ensure(user_id, desired)

    async def get_or_create(self, user_id: UUID, fallback_plan: Plan | str | None) -> m.Entitlement:
        """Return the stored entitlement, creating one for ``fallback_plan`` when none exists."""
        existing = await self.get_for_user(user_id)
        if existing is not None:
            return existing
        plan = Plan(fallback_plan) if fallback_plan in tuple(Plan) else Plan.FREE
        return await self._upsert(user_id, plan)

    async def set_user_plan(self, user_id: UUID, plan: Plan) -> m.Entitlement | None:
        """Move a user to ``plan`` and rewrite their entitlement to match.

        Returns:
            The updated entitlement, or None when the user does not exist
        """
        users = UserService(session=self._session)
        user = await users.get_one_or_none(m.User.id == user_id)
        if user is None:
            return None
        await users.set_plan(user, plan)
        return await self._ensure(user_id, plan)

    async def _ensure(self, user_id: UUID, plan: Plan) -> m.Entitlement:
        existing = await self.get_for_user(user_id)
        limits = self.limits_for(plan)
        if existing is not None and (
            existing.plan == plan
            and existing.qa_daily_limit == limits.qa_daily_limit
            and existing.qa_row_limit == limits.qa_row_limit
        ):
            return existing
        return await self._upsert(user_id, plan)

    async def _upsert(self, user_id: UUID, plan: Plan) -> m.Entitlement:
        limits = self.limits_for(plan)
        now = datetime.now(UTC)
        insert = dialect_insert(self._session)
        stmt = insert(m.Entitlement).values(
            id=uuid4(),
            user_id=user_id,
            plan=plan,
            qa_daily_limit=limits.qa_daily_limit,
            qa_row_limit=limits.qa_row_limit,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[m.Entitlement.user_id],
            set_={
                "plan": stmt.excluded.plan,
                "qa_daily_limit": stmt.excluded.qa_daily_limit,
                "qa_row_limit": stmt.excluded.qa_row_limit,
                "updated_at": now,
            },
        )
        await self._session.execute(stmt)
        entitlement = await self.get_for_user(user_id)
        if entitlement is None:  # pragma: no cover
            msg = f"Entitlement for {user_id} vanished after upsert"
            raise RuntimeError(msg)
        return entitlement
