from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from advanced_alchemy.service import SQLAlchemyAsyncRepositoryService

from courtside.db import models as m

if TYPE_CHECKING:
    from courtside.db.models import Plan

__all__ = ("UserService",)


class UserService(SQLAlchemyAsyncRepositoryService[m.User]):
    """Handles database operations for users."""

    class Repository(SQLAlchemyAsyncRepository[m.User]):
        """User SQLAlchemy Repository."""

        model_type = m.User

    repository_type = Repository
    match_fields = ["external_key"]

    async def get_by_subject(self, subject: str) -> m.User | None:
        """Find the user a token subject refers to.

        The subject is tried as a primary id first, then as the legacy
        ``auth:<subject>`` external key.
        """
        try:
            user_id = UUID(subject)
        except ValueError:
            user_id = None
        if user_id is not None:
            user = await self.get_one_or_none(m.User.id == user_id)
            if user is not None:
                return user
        return await self.get_by_external_key(f"auth:{subject}")

    async def get_by_external_key(self, external_key: str) -> m.User | None:
        return await self.get_one_or_none(m.User.external_key == external_key)

    async def set_plan(self, user: m.User, plan: Plan) -> m.User:
        """Persist a new plan on ``user`` if it differs from the stored one."""
        if user.plan == plan:
            return user
        return await self.update({"plan": plan}, item_id=user.id)
