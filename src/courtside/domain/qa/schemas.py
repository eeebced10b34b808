from __future__ import annotations

from typing import Any

from courtside.domain.accounts.schemas import PydanticBaseModel

__all__ = (
    "AskRequest",
    "QaAnswer",
    "QaMetaOut",
    "QaTableOut",
)


class AskRequest(PydanticBaseModel):
    question: str | None = None


class QaTableOut(PydanticBaseModel):
    columns: list[str]
    rows: list[list[str | int | float | None]]


class QaMetaOut(PydanticBaseModel):
    limited: bool
    usage_remaining: int
    intent: str
    queries_remaining: int


class QaAnswer(PydanticBaseModel):
    """Response body of ``POST /qa/ask``."""

    answer: str
    table: QaTableOut | None = None
    chart_spec: dict[str, Any] | None = None
    meta: QaMetaOut
