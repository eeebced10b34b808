"""Service for managing per-user daily usage counters."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID, uuid4

from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from advanced_alchemy.service import SQLAlchemyAsyncRepositoryService
from sqlalchemy import select

from courtside.db import models as m
from courtside.db.utils import dialect_insert

__all__ = (
    "UsageDailyService",
    "today_key",
)


def today_key(now: datetime | None = None) -> str:
    """Get the usage partition key for ``now`` (UTC calendar day).

    Returns:
        Date as string in YYYY-MM-DD format
    """
    now = now or datetime.now(UTC)
    return now.astimezone(UTC).strftime("%Y-%m-%d")


class UsageDailyService(SQLAlchemyAsyncRepositoryService[m.UsageDaily]):
    """Handles database operations for daily usage counters."""

    class Repository(SQLAlchemyAsyncRepository[m.UsageDaily]):
        """UsageDaily SQLAlchemy Repository."""

        model_type = m.UsageDaily

    repository_type = Repository
    match_fields = ["user_id", "usage_date"]

    async def get_daily_usage(
        self,
        user_id: UUID,
        date_key: str | None = None,
    ) -> m.UsageDaily | None:
        """Get the usage row for a user on one day.

        Args:
            user_id: UUID of the user
            date_key: Day in YYYY-MM-DD format, today (UTC) when omitted

        Returns:
            UsageDaily record, or None when nothing was recorded that day
        """
        stmt = (
            select(m.UsageDaily)
            .where(
                m.UsageDaily.user_id == user_id,
                m.UsageDaily.usage_date == (date_key or today_key()),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.repository.session.execute(stmt)  # type: ignore[attr-defined]
        return result.scalar_one_or_none()

    async def increment_usage(
        self,
        user_id: UUID,
        *,
        qa_queries: int = 0,
        api_requests: int = 0,
        date_key: str | None = None,
        auto_commit: bool = False,
    ) -> m.UsageDaily:
        """Add to a user's counters for one day in a single statement.

        The row is created on first use. Concurrent increments for the same
        user and day are combined by the database, never lost.

        Args:
            user_id: UUID of the user
            qa_queries: Q&A queries to add
            api_requests: API requests to add
            date_key: Day in YYYY-MM-DD format, today (UTC) when omitted
            auto_commit: Commit the session after the upsert

        Returns:
            Updated UsageDaily record
        """
        date_key = date_key or today_key()
        session = self.repository.session  # type: ignore[attr-defined]
        now = datetime.now(UTC)
        insert = dialect_insert(session)
        stmt = insert(m.UsageDaily).values(
            id=uuid4(),
            user_id=user_id,
            usage_date=date_key,
            qa_queries=qa_queries,
            api_requests=api_requests,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[m.UsageDaily.user_id, m.UsageDaily.usage_date],
            set_={
                "qa_queries": m.UsageDaily.qa_queries + stmt.excluded.qa_queries,
                "api_requests": m.UsageDaily.api_requests + stmt.excluded.api_requests,
                "updated_at": now,
            },
        )
        await session.execute(stmt)
        if auto_commit:
            await session.commit()

        usage = await self.get_daily_usage(user_id, date_key)
        if usage is None:  # pragma: no cover
            msg = f"Usage row for {user_id} on {date_key} vanished after upsert"
            raise RuntimeError(msg)
        return usage

    async def get_qa_count(self, user_id: UUID, date_key: str | None = None) -> int:
        """Get the number of Q&A queries a user made on one day (0 if no row exists)."""
        usage = await self.get_daily_usage(user_id, date_key)
        return usage.qa_queries if usage else 0
