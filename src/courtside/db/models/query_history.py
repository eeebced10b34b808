from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID  # noqa: TC003

from advanced_alchemy.base import UUIDAuditBase
from advanced_alchemy.types import JsonB
from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from .user import User


class QueryHistory(UUIDAuditBase):
    """Append-only audit entry, one per Q&A attempt."""

    __tablename__ = "qa_query_history"
    __table_args__ = {"comment": "Audit log of Q&A attempts"}
    __pii_columns__ = {"question"}

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    intent: Mapped[str] = mapped_column(String(length=64), nullable=False)
    parameters: Mapped[dict[str, Any] | None] = mapped_column(JsonB, nullable=True)
    limited: Mapped[bool] = mapped_column(default=False, nullable=False)
    response_summary: Mapped[str | None] = mapped_column(String(length=255), nullable=True)
    elapsed_ms: Mapped[int | None] = mapped_column(nullable=True)

    # -----------
    # ORM Relationships
    # ------------

    user: Mapped[User] = relationship(back_populates="query_history", lazy="noload")
