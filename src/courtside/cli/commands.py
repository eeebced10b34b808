"""Operator commands for bootstrapping users, tokens and plans outside production."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

import anyio
import click

if TYPE_CHECKING:
    from courtside.db import models as m


@click.group(name="users", invoke_without_command=False, help="Manage application users and plans.")
@click.pass_context
def user_management_group(_: dict) -> None:
    """Manage application users."""


def _refuse_in_production() -> None:
    from courtside.config import get_settings

    if get_settings().app.is_production:
        msg = "This command is disabled when APP_ENVIRONMENT=production."
        raise click.UsageError(msg)


async def _find_user(identifier: str) -> m.User | None:
    from courtside.config.app import alchemy
    from courtside.db import models as m
    from courtside.domain.accounts.services import UserService

    async with alchemy.get_session() as db_session:
        users = UserService(session=db_session)
        try:
            return await users.get_one_or_none(m.User.id == UUID(identifier))
        except ValueError:
            return await users.get_one_or_none(m.User.email == identifier)


@user_management_group.command(name="create-user", help="Create a user.")
@click.option("--email", "-e", help="Email", type=click.STRING, required=True, show_default=False)
@click.option("--name", "-n", help="Full name", type=click.STRING, required=False, show_default=False)
@click.option(
    "--plan",
    help="Initial plan",
    type=click.Choice(["FREE", "PREMIUM"]),
    default="FREE",
    show_default=True,
)
def create_user(email: str, name: str | None, plan: str) -> None:
    """Create a user and its entitlement."""
    from litestar.cli._utils import console

    from courtside.config.app import alchemy
    from courtside.db.models import Plan
    from courtside.domain.accounts.services import UserService
    from courtside.domain.billing.services import EntitlementService

    _refuse_in_production()

    async def _create_user() -> None:
        user_id = uuid4()
        async with alchemy.get_session() as db_session:
            users = UserService(session=db_session)
            user = await users.create(
                {"id": user_id, "external_key": f"user:{user_id}", "email": email, "name": name, "plan": Plan(plan)},
            )
            await EntitlementService(session=db_session, premium_override=False).set_user_plan(user.id, Plan(plan))
            await db_session.commit()
        console.print(f"User created: {email} ({user_id}) on plan {plan}")

    console.rule("Create a new application user.")
    anyio.run(_create_user)


@user_management_group.command(name="issue-token", help="Print a bearer token for a user.")
@click.option("--user", "-u", "identifier", help="User id or email", type=click.STRING, required=True)
@click.option("--ttl-minutes", help="Token lifetime", type=click.INT, default=60 * 24, show_default=True)
def issue_token(identifier: str, ttl_minutes: int) -> None:
    """Sign a bearer token whose subject is the user's id."""
    from litestar.cli._utils import console

    from courtside.config import get_settings
    from courtside.lib.security import encode_token

    _refuse_in_production()
    settings = get_settings()

    user = anyio.run(_find_user, identifier)
    if user is None:
        console.print(f"[red]No user found for {identifier}[/]")
        raise SystemExit(1)
    console.print(
        encode_token(
            str(user.id),
            settings.app.JWT_SECRET,
            algorithm=settings.app.JWT_ALGORITHM,
            ttl=timedelta(minutes=ttl_minutes),
        ),
        soft_wrap=True,
    )


@user_management_group.command(name="record-subscription", help="Store a subscription snapshot and resync the plan.")
@click.option("--user", "-u", "identifier", help="User id or email", type=click.STRING, required=True)
@click.option("--status", help="Provider subscription status", type=click.STRING, default="active", show_default=True)
@click.option("--subscription-id", help="Provider subscription id", type=click.STRING, required=False)
@click.option("--customer-id", help="Provider customer id", type=click.STRING, required=False)
def record_subscription(identifier: str, status: str, subscription_id: str | None, customer_id: str | None) -> None:
    """Apply a billing update the way the webhook integration would."""
    from litestar.cli._utils import console

    from courtside.config.app import alchemy
    from courtside.domain.billing.services import EntitlementService, SubscriptionService

    _refuse_in_production()

    async def _record() -> None:
        user = await _find_user(identifier)
        if user is None:
            console.print(f"[red]No user found for {identifier}[/]")
            raise SystemExit(1)
        async with alchemy.get_session() as db_session:
            await SubscriptionService(session=db_session).record_subscription(
                user.id,
                stripe_subscription_id=subscription_id or f"manual_{uuid4().hex}",
                stripe_customer_id=customer_id,
                status=status,
            )
            entitlement = await EntitlementService(session=db_session).synchronize(user.id)
            await db_session.commit()
        plan = entitlement.plan if entitlement is not None else "unknown"
        console.print(f"Subscription recorded for {identifier}: status={status}, plan={plan}")

    anyio.run(_record)


@user_management_group.command(name="sync-entitlement", help="Recompute a user's plan and limits.")
@click.option("--user", "-u", "identifier", help="User id or email", type=click.STRING, required=True)
def sync_entitlement(identifier: str) -> None:
    from litestar.cli._utils import console

    from courtside.config.app import alchemy
    from courtside.domain.billing.services import EntitlementService

    async def _sync() -> None:
        user = await _find_user(identifier)
        if user is None:
            console.print(f"[red]No user found for {identifier}[/]")
            raise SystemExit(1)
        async with alchemy.get_session() as db_session:
            entitlement = await EntitlementService(session=db_session).synchronize(user.id)
            await db_session.commit()
        if entitlement is not None:
            console.print(
                f"{identifier}: plan={entitlement.plan} "
                f"qa_daily_limit={entitlement.qa_daily_limit} qa_row_limit={entitlement.qa_row_limit}",
            )

    anyio.run(_sync)
