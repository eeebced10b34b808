from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from advanced_alchemy.base import UUIDAuditBase
from sqlalchemy import Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from courtside.db.models.plan import Plan

if TYPE_CHECKING:
    from .user import User


class Entitlement(UUIDAuditBase):
    """Plan and quota limits for one user.

    Limits are derived from the plan on every synchronisation and are never
    edited by hand.
    """

    __tablename__ = "entitlement"
    __table_args__ = {"comment": "Resolved plan and quota limits per user"}

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user_account.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    plan: Mapped[Plan] = mapped_column(
        Enum(Plan, name="plan_enum", native_enum=False), nullable=False, default=Plan.FREE
    )
    qa_daily_limit: Mapped[int] = mapped_column(nullable=False)
    qa_row_limit: Mapped[int] = mapped_column(nullable=False)

    # -----------
    # ORM Relationships
    # ------------

    user: Mapped[User] = relationship(back_populates="entitlement", lazy="noload")
