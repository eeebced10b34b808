"""Daily usage ledger model."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from advanced_alchemy.base import UUIDAuditBase
from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from .user import User


class UsageDaily(UUIDAuditBase):
    """Per-user, per-UTC-day request and Q&A counters."""

    __tablename__ = "usage_daily"
    __table_args__ = (
        UniqueConstraint("user_id", "usage_date", name="uq_usage_daily_user_date"),
        Index("idx_usage_daily_user_date", "user_id", "usage_date"),
        {"comment": "Daily usage counters; a new date starts at zero"},
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    usage_date: Mapped[str] = mapped_column(
        String(10),  # YYYY-MM-DD
        nullable=False,
        comment="Calendar day in UTC, YYYY-MM-DD",
    )

    qa_queries: Mapped[int] = mapped_column(default=0, nullable=False)
    api_requests: Mapped[int] = mapped_column(default=0, nullable=False)

    # Relationships
    user: Mapped[User] = relationship(back_populates="usage", lazy="noload")
