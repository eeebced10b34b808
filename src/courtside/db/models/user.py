from __future__ import annotations

from typing import TYPE_CHECKING

from advanced_alchemy.base import UUIDAuditBase
from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from courtside.db.models.plan import Plan

if TYPE_CHECKING:
    from .entitlement import Entitlement
    from .query_history import QueryHistory
    from .subscription import Subscription
    from .usage_daily import UsageDaily


class User(UUIDAuditBase):
    """Account that requests are billed and metered against."""

    __tablename__ = "user_account"
    __table_args__ = {"comment": "User accounts"}
    __pii_columns__ = {"email", "name"}

    external_key: Mapped[str] = mapped_column(String(length=255), unique=True, index=True, nullable=False)
    """Stable actor handle: ``user:<id>``, legacy ``auth:<subject>`` or ``anon:<hash>``."""
    email: Mapped[str | None] = mapped_column(String(length=255), unique=True, index=True, nullable=True)
    name: Mapped[str | None] = mapped_column(String(length=255), nullable=True)
    plan: Mapped[Plan] = mapped_column(
        Enum(Plan, name="plan_enum", native_enum=False), nullable=False, default=Plan.FREE
    )
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    # -----------
    # ORM Relationships
    # ------------

    entitlement: Mapped[Entitlement | None] = relationship(
        back_populates="user", lazy="noload", uselist=False, cascade="all, delete-orphan"
    )
    usage: Mapped[list[UsageDaily]] = relationship(
        back_populates="user", lazy="noload", cascade="all, delete-orphan"
    )
    subscriptions: Mapped[list[Subscription]] = relationship(
        back_populates="user", lazy="noload", cascade="all, delete-orphan"
    )
    query_history: Mapped[list[QueryHistory]] = relationship(
        back_populates="user", lazy="noload", cascade="all, delete-orphan"
    )
