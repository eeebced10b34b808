from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

__all__ = ("dialect_insert",)


def dialect_insert(session: AsyncSession) -> Any:
    """Return the ``insert`` construct that supports ``ON CONFLICT`` for the bound dialect."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    msg = f"Atomic upserts are not implemented for the {dialect!r} dialect"
    raise NotImplementedError(msg)
