"""User Account dependency providers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from courtside.domain.accounts.services import UserService
from courtside.lib.deps import create_service_provider

if TYPE_CHECKING:
    from litestar import Request

    from courtside.db import models as m
    from courtside.domain.accounts.identity import ActorIdentity

provide_users_service = create_service_provider(
    UserService,
    error_messages={"duplicate_key": "This user already exists.",
                    "integrity": "User operation failed."},
)


async def provide_user(request: Request[m.User | None, ActorIdentity, Any]) -> m.User | None:
    """Get the user from the request.

    Args:
        request: current Request.

    Returns:
        User, or None for anonymous and system actors
    """
    return request.user


async def provide_actor(request: Request[m.User | None, ActorIdentity, Any]) -> ActorIdentity:
    return request.auth
