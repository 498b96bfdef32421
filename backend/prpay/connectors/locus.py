"""
Locus Payment Backend

Executes payment instructions through the Locus MCP server. For each
instruction a short nested agent session is run: the server's tools are
listed, exposed to the model as `mcp__locus__<tool>`, and the model decides
which of them to call. That nested session is always gated to the Locus
namespace.

MCP Documentation: https://modelcontextprotocol.io/docs/concepts/transports#streamable-http
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Optional
import logging

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client

from prpay.connectors.payment import PaymentConnectionStatus, PaymentExecution
from prpay.core.exceptions import OrchestrationError
from prpay.services.tools.agent import CompletionBackend, ToolCallingAgent
from prpay.services.tools.executor import ToolExecutionError
from prpay.services.tools.gate import NamespaceGate
from prpay.services.tools.registry import ToolRegistry
from prpay.services.tools.schema import ToolSchema, ToolSpec

logger = logging.getLogger(__name__)

LOCUS_TOOL_PREFIX = "mcp__locus__"

LOCUS_SYSTEM_PROMPT = """You execute payment instructions using the Locus payment tools.
Use the available tools to carry out the instruction exactly as given (recipient, amount, token).
Never invent wallet addresses or amounts. If the instruction is ambiguous, do not pay; explain what is missing.
Finish with a short summary of what was done, including any transaction identifiers the tools return."""

SessionFactory = Callable[[], Any]


def _content_text(content: List[Any]) -> str:
    """Join the text parts of an MCP tool result."""
    return "\n".join(
        item.text for item in content or [] if getattr(item, "type", None) == "text"
    )


class LocusPaymentBackend:
    """
    PaymentBackend over the Locus MCP server.

    Usage:
        backend = LocusPaymentBackend(api_key, completion_backend)
        execution = await backend.execute("send 5 usdc to 0xdeadbeef")
    """

    def __init__(
        self,
        api_key: Optional[str],
        completion_backend: CompletionBackend,
        mcp_url: str = "https://mcp.paywithlocus.com/mcp",
        max_iterations: Optional[int] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        self.api_key = api_key
        self.completion_backend = completion_backend
        self.mcp_url = mcp_url
        self.max_iterations = max_iterations
        self._session_factory = session_factory or self._open_session

    @asynccontextmanager
    async def _open_session(self) -> AsyncIterator[ClientSession]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with streamablehttp_client(self.mcp_url, headers=headers) as (read_stream, write_stream, _):
            async with ClientSession(read_stream, write_stream) as session:
                await session.initialize()
                yield session

    def _tool_spec(self, session: Any, tool: Any) -> ToolSpec:
        remote_name = tool.name

        async def call_remote_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
            result = await session.call_tool(remote_name, arguments)
            text = _content_text(result.content)
            if result.isError:
                raise ToolExecutionError(text or f"Locus tool {remote_name} failed")
            structured = getattr(result, "structuredContent", None)
            return {"success": True, "result": structured if structured else text}

        parameters = tool.inputSchema or {"type": "object", "properties": {}}
        return ToolSpec(
            tool_schema=ToolSchema(
                name=f"{LOCUS_TOOL_PREFIX}{remote_name}",
                description=tool.description or remote_name,
                parameters=parameters,
            ),
            handler=call_remote_tool,
        )

    async def execute(self, prompt: str) -> PaymentExecution:
        if not self.api_key:
            return PaymentExecution(
                success=False,
                error="LOCUS_API_KEY is not set",
                connection_status=PaymentConnectionStatus(connected=False, status="not_configured"),
            )

        status = PaymentConnectionStatus(connected=False, status="connecting")
        try:
            async with self._session_factory() as session:
                status = PaymentConnectionStatus(connected=True, status="connected")
                listed = await session.list_tools()
                registry = ToolRegistry(self._tool_spec(session, tool) for tool in listed.tools)
                logger.info(f"Locus MCP connected with {len(registry)} tool(s)")

                agent = ToolCallingAgent(
                    self.completion_backend,
                    registry,
                    system_prompt=LOCUS_SYSTEM_PROMPT,
                    gate=NamespaceGate([LOCUS_TOOL_PREFIX]),
                    max_iterations=self.max_iterations,
                )
                run = await agent.run(prompt)
        except OrchestrationError as e:
            logger.error(f"Locus payment session failed: {e}")
            return PaymentExecution(success=False, error=str(e), connection_status=status)
        except Exception as e:
            logger.exception(f"Locus MCP error: {e}")
            return PaymentExecution(
                success=False,
                error=str(e),
                connection_status=PaymentConnectionStatus(connected=False, status="failed"),
            )

        return PaymentExecution(
            success=True,
            result=run.text or "No result received",
            connection_status=status,
        )
