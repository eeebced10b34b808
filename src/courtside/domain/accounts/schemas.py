from __future__ import annotations

from typing import Any, Literal
from uuid import UUID  # noqa: TC003

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

__all__ = (
    "AccountProfile",
    "AccountUsage",
    "AccountUser",
    "PlanLimitsOut",
    "PydanticBaseModel",
)


class PydanticBaseModel(BaseModel):
    """Base model with camel case config."""

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, by_alias=True)


class AccountUser(PydanticBaseModel):
    id: UUID
    actor_key: str
    plan: str
    is_authenticated: bool


class PlanLimitsOut(PydanticBaseModel):
    qa_daily_limit: int
    qa_row_limit: int
    games_max: int | None = None
    shots_scope: Literal["recent", "all"]
    trend_window: int | None = None


class AccountUsage(PydanticBaseModel):
    date: str
    qa_queries: int = 0
    api_requests: int = 0
    qa_remaining: int


class AccountProfile(PydanticBaseModel):
    """Response body of ``GET /me``."""

    user: AccountUser
    limits: PlanLimitsOut
    usage: AccountUsage
