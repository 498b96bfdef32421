import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from prpay.api.deps import (
    get_completion_backend,
    get_payment_backend,
    get_table_store,
    require_credentials,
)
from prpay.connectors.payment import PaymentBackend
from prpay.connectors.table_store import TableStore
from prpay.core.config import settings
from prpay.core.exceptions import OrchestrationError
from prpay.core.rate_limiter import limiter, RateLimits
from prpay.schemas.agent import ChatRequest, ChatResponse, ToolCallRecord, ToolResultRecord
from prpay.services.tools.agent import AgentRunResult, CompletionBackend, ToolCallingAgent
from prpay.services.tools.sessions import build_full_agent, build_payments_agent

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(run: AgentRunResult) -> ChatResponse:
    return ChatResponse(
        success=True,
        text=run.text,
        tool_calls=[
            ToolCallRecord(id=tc.id, name=tc.name, arguments=tc.arguments)
            for tc in run.tool_calls
        ],
        tool_results=[
            ToolResultRecord(
                tool_call_id=tr.tool_call_id,
                tool_name=tr.tool_name,
                success=tr.success,
                data=tr.data,
                error=tr.error,
                error_type=tr.error_type.value if tr.error_type else None,
                execution_time_ms=tr.execution_time_ms,
            )
            for tr in run.tool_results
        ],
        iterations=run.iterations,
        tokens_used=run.tokens_used,
        max_iterations_reached=run.max_iterations_reached,
    )


def _failure(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


async def _run_session(agent: ToolCallingAgent, message: str) -> Any:
    try:
        run = await asyncio.wait_for(agent.run(message), timeout=settings.AGENT_REQUEST_TIMEOUT_SECONDS)
    except OrchestrationError as e:
        logger.error(
            f"Agent session failed after {e.iterations} iteration(s) "
            f"and {len(e.tool_calls)} tool call(s): {e}"
        )
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))
    except asyncio.TimeoutError:
        logger.error(f"Agent session timed out after {settings.AGENT_REQUEST_TIMEOUT_SECONDS}s")
        return _failure(status.HTTP_504_GATEWAY_TIMEOUT, "Agent request timed out")

    logger.info(
        f"Agent session finished: {run.iterations} iteration(s), "
        f"{len(run.tool_calls)} tool call(s), {run.tokens_used} tokens"
    )
    return _to_response(run).model_dump(by_alias=True)


@router.post(
    "/chat",
    dependencies=[Depends(require_credentials("OPENAI_API_KEY", "LOCUS_API_KEY"))],
)
@limiter.limit(RateLimits.AI_CHAT)
async def chat(
    request: Request,
    response: Response,
    body: ChatRequest,
    completion_backend: CompletionBackend = Depends(get_completion_backend),
    payment_backend: PaymentBackend = Depends(get_payment_backend),
) -> Any:
    """
    Payments-only session. Only tools in the payment namespace may run.
    """
    agent = build_payments_agent(completion_backend, payment_backend)
    return await _run_session(agent, body.message)


@router.post(
    "/chat/full",
    dependencies=[Depends(require_credentials("OPENAI_API_KEY", "LOCUS_API_KEY"))],
)
@limiter.limit(RateLimits.AI_CHAT)
async def chat_full(
    request: Request,
    response: Response,
    body: ChatRequest,
    completion_backend: CompletionBackend = Depends(get_completion_backend),
    table_store: TableStore = Depends(get_table_store),
    payment_backend: PaymentBackend = Depends(get_payment_backend),
) -> Any:
    """
    Full session: table tools plus the payment tool, without a gate.
    """
    agent = build_full_agent(completion_backend, table_store, payment_backend)
    return await _run_session(agent, body.message)
