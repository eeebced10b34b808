from __future__ import annotations

from typing import TYPE_CHECKING, Any

from litestar.middleware import AbstractAuthenticationMiddleware, AuthenticationResult

from courtside.domain.accounts.identity import IdentityResolver, RequestMeta
from courtside.domain.accounts.services import UserService
from courtside.domain.billing.services import EntitlementService

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from litestar.connection import ASGIConnection
    from litestar.types import ASGIApp

    from courtside.db.models import Plan
    from courtside.domain.billing.plans import PlanLimits

__all__ = ("IdentityMiddleware",)


class IdentityMiddleware(AbstractAuthenticationMiddleware):
    """Attach the resolved actor to ``request.auth`` and its user to ``request.user``.

    Runs before rate limiting. The user is ``None`` for system and anonymous
    actors. Store failures while synchronising an authenticated user's plan
    propagate to the exception handlers.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        session_factory: Callable[[], Any],
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
        system_paths: Mapping[str, str] | None = None,
        premium_override: bool | None = None,
        plan_limits: Mapping[Plan, PlanLimits] | None = None,
        exclude: str | list[str] | None = None,
    ) -> None:
        super().__init__(app, exclude=exclude)
        self.session_factory = session_factory
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm
        self.system_paths = system_paths
        self.premium_override = premium_override
        self.plan_limits = plan_limits

    async def authenticate_request(self, connection: ASGIConnection[Any, Any, Any, Any]) -> AuthenticationResult:
        meta = RequestMeta.from_connection(connection)
        async with self.session_factory() as db_session:
            resolver = IdentityResolver(
                UserService(session=db_session),
                EntitlementService(
                    session=db_session,
                    premium_override=self.premium_override,
                    plan_limits=self.plan_limits,
                ),
                jwt_secret=self.jwt_secret,
                jwt_algorithm=self.jwt_algorithm,
                system_paths=self.system_paths,
            )
            identity, user = await resolver.authenticate(meta)
            await db_session.commit()
        return AuthenticationResult(user=user, auth=identity)
