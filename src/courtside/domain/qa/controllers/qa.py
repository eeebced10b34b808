"""Q&A endpoint."""

from __future__ import annotations

from litestar import Controller, post
from litestar.di import Provide
from litestar.status_codes import HTTP_200_OK

from courtside.domain.accounts.identity import ActorIdentity
from courtside.domain.billing.deps import provide_entitlement_service
from courtside.domain.qa import urls
from courtside.domain.qa.deps import provide_analytics, provide_qa_service, provide_query_history_service
from courtside.domain.qa.schemas import AskRequest, QaAnswer, QaMetaOut, QaTableOut
from courtside.domain.qa.services import QaService
from courtside.domain.quota.deps import provide_usage_service
from courtside.lib.exceptions import InvalidQuestionError, UnauthorizedError


class QaController(Controller):
    """Bounded natural-language questions over the analytics views."""

    tags = ["Q&A"]

    dependencies = {
        "entitlement_service": Provide(provide_entitlement_service),
        "usage_service": Provide(provide_usage_service),
        "query_history_service": Provide(provide_query_history_service),
        "analytics": Provide(provide_analytics, sync_to_thread=False),
        "qa_service": Provide(provide_qa_service, sync_to_thread=False),
    }

    @post(path=urls.QA_ASK, operation_id="ask_question", status_code=HTTP_200_OK)
    async def ask(self, data: AskRequest, actor: ActorIdentity, qa_service: QaService) -> QaAnswer:
        """Answer a question, counting it against the caller's daily quota."""
        question = (data.question or "").strip()
        if not question:
            raise InvalidQuestionError
        if not actor.is_authenticated or actor.user_id is None:
            raise UnauthorizedError(detail="Missing user context for Q&A request.")

        outcome = await qa_service.ask(question, actor.user_id, actor.plan)
        result = outcome.result
        return QaAnswer(
            answer=outcome.answer,
            table=QaTableOut(columns=result.table.columns, rows=result.table.rows)
            if result is not None and result.table is not None
            else None,
            chart_spec=result.chart_spec if result is not None else None,
            meta=QaMetaOut(
                limited=outcome.meta.limited,
                usage_remaining=outcome.meta.usage_remaining,
                intent=outcome.meta.intent,
                queries_remaining=outcome.meta.queries_remaining,
            ),
        )
