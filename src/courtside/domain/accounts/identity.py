"""Resolve who is making a request.

Every request ends up with an :class:`ActorIdentity`: a fixed system actor for
webhook and health paths, an authenticated user for a valid bearer token, or
an anonymous actor keyed by a hash of the client address. A bad token is
never an error here; it simply resolves to the anonymous actor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

import structlog

from courtside.db.models import Plan
from courtside.lib.security import decode_subject, extract_bearer_token, sha256

if TYPE_CHECKING:
    from collections.abc import Mapping

    from litestar.connection import ASGIConnection

    from courtside.db import models as m
    from courtside.domain.accounts.services import UserService
    from courtside.domain.billing.services import EntitlementService

__all__ = (
    "ActorIdentity",
    "IdentityResolver",
    "RequestMeta",
)

logger = structlog.get_logger()

UNKNOWN_ADDRESS = "unknown"


@dataclass(frozen=True, slots=True)
class RequestMeta:
    """Transport facts identity resolution is based on."""

    path: str
    bearer_token: str | None = None
    forwarded_for: str | None = None
    peer_address: str | None = None

    @classmethod
    def from_connection(cls, connection: ASGIConnection) -> RequestMeta:
        client = connection.client
        return cls(
            path=connection.scope["path"],
            bearer_token=extract_bearer_token(connection.headers.get("authorization")),
            forwarded_for=connection.headers.get("x-forwarded-for"),
            peer_address=client.host if client else None,
        )

    @property
    def client_address(self) -> str:
        """First hop of ``X-Forwarded-For``, else the peer address."""
        if self.forwarded_for:
            first = self.forwarded_for.split(",")[0].strip()
            if first:
                return first
        return self.peer_address or UNKNOWN_ADDRESS


@dataclass(frozen=True, slots=True)
class ActorIdentity:
    actor_key: str
    plan: Plan = Plan.FREE
    user_id: UUID | None = None
    is_authenticated: bool = False

    @classmethod
    def system(cls, name: str) -> ActorIdentity:
        return cls(actor_key=f"system:{name}")

    @classmethod
    def anonymous(cls, address: str) -> ActorIdentity:
        return cls(actor_key=anonymous_key(address))

    @classmethod
    def for_user(cls, user_id: UUID, plan: Plan) -> ActorIdentity:
        return cls(actor_key=f"user:{user_id}", plan=plan, user_id=user_id, is_authenticated=True)

    @property
    def is_system(self) -> bool:
        return self.actor_key.startswith("system:")


def anonymous_key(address: str) -> str:
    return f"anon:{sha256(address)}"


class IdentityResolver:
    """Turns :class:`RequestMeta` into an :class:`ActorIdentity`.

    Authenticated resolutions run an entitlement synchronisation so the plan
    seen by the rest of the request is current.
    """

    def __init__(
        self,
        users: UserService,
        entitlements: EntitlementService,
        *,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
        system_paths: Mapping[str, str] | None = None,
    ) -> None:
        self.users = users
        self.entitlements = entitlements
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm
        self.system_paths = dict(system_paths or {})

    def system_actor_for(self, path: str) -> ActorIdentity | None:
        for prefix, name in self.system_paths.items():
            if path.startswith(prefix):
                return ActorIdentity.system(name)
        return None

    async def resolve(self, meta: RequestMeta) -> ActorIdentity:
        identity, _ = await self.authenticate(meta)
        return identity

    async def authenticate(self, meta: RequestMeta) -> tuple[ActorIdentity, m.User | None]:
        """Resolve the actor and, when authenticated, the user record behind it.

        Args:
            meta: Transport facts for the request

        Returns:
            The actor identity and the matching user (``None`` unless authenticated)
        """
        system_actor = self.system_actor_for(meta.path)
        if system_actor is not None:
            return system_actor, None

        user = await self._user_from_token(meta.bearer_token)
        if user is not None:
            entitlement = await self.entitlements.synchronize(user.id)
            plan = Plan(entitlement.plan) if entitlement is not None else Plan(user.plan)
            return ActorIdentity.for_user(user.id, plan), user

        identity = ActorIdentity.anonymous(meta.client_address)
        await self._demote_anonymous_record(identity.actor_key)
        return identity, None

    async def _user_from_token(self, bearer_token: str | None) -> m.User | None:
        if not bearer_token:
            return None
        subject = decode_subject(bearer_token, self.jwt_secret, algorithm=self.jwt_algorithm)
        if subject is None:
            return None
        return await self.users.get_by_subject(subject)

    async def _demote_anonymous_record(self, actor_key: str) -> None:
        record = await self.users.get_by_external_key(actor_key)
        if record is None or record.plan == Plan.FREE:
            return
        await logger.awarning(
            "Anonymous record held a paid plan, resetting to FREE",
            user_id=str(record.id),
            plan=str(record.plan),
        )
        await self.entitlements.set_user_plan(record.id, Plan.FREE)
