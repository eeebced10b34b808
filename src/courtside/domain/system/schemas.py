from datetime import datetime  # noqa: TC003
from typing import Literal

from courtside.__about__ import __version__ as current_version
from courtside.domain.accounts.schemas import PydanticBaseModel

__all__ = ("SystemHealth",)


class SystemHealth(PydanticBaseModel):
    ok: bool
    database_status: Literal["online", "offline"]
    service: str
    timestamp: datetime
    version: str = current_version
