from __future__ import annotations

from datetime import datetime  # noqa: TC003
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from advanced_alchemy.base import UUIDAuditBase
from sqlalchemy import Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from courtside.db.models.plan import Plan

if TYPE_CHECKING:
    from .user import User


class Subscription(UUIDAuditBase):
    """Billing subscription snapshot, written by the billing integration."""

    __tablename__ = "subscription"
    __table_args__ = (
        Index("idx_subscription_user_status", "user_id", "status"),
        {"comment": "Subscription records mirrored from the billing provider"},
    )

    user_id: Mapped[UUID] = mapped_column(ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    stripe_customer_id: Mapped[str | None] = mapped_column(String(length=255), nullable=True, index=True)
    stripe_subscription_id: Mapped[str | None] = mapped_column(String(length=255), unique=True, nullable=True)
    status: Mapped[str] = mapped_column(String(length=50), nullable=False)
    plan: Mapped[Plan] = mapped_column(
        Enum(Plan, name="plan_enum", native_enum=False), nullable=False, default=Plan.FREE
    )
    current_period_end: Mapped[datetime | None] = mapped_column(nullable=True)
    cancel_at_period_end: Mapped[bool] = mapped_column(default=False, nullable=False)

    # -----------
    # ORM Relationships
    # ------------

    user: Mapped[User] = relationship(back_populates="subscriptions", lazy="noload")
