"""
Agent session factories.

Two kinds of session are exposed over HTTP:

- payments-only: just the payment tool, behind a namespace gate
- full: table tools plus the payment tool, no gate
"""

from typing import Optional, Sequence

from prpay.connectors.payment import PaymentBackend
from prpay.connectors.table_store import TableStore
from prpay.core.config import settings
from prpay.services.tools.agent import CompletionBackend, ToolCallingAgent
from prpay.services.tools.gate import NamespaceGate
from prpay.services.tools.payment_tools import build_payment_tool
from prpay.services.tools.registry import ToolRegistry
from prpay.services.tools.table_tools import build_table_tools

PAYMENTS_SYSTEM_PROMPT = """You are a helpful assistant that can execute blockchain transactions and payments using the Locus payment system.
When the user gives a wallet address, use that exact address and pass it to the locus_payment tool inside a clear, complete payment instruction
(amount, token and recipient). Report the outcome of the payment back to the user."""

FULL_SYSTEM_PROMPT = """You are an operations assistant for a contractor payout dashboard.
You can read and change data in the database and execute payments through Locus.

Which tool to use:
- Questions about table structure or columns: get_table_schema
- Looking up, listing or searching records: read_table (use filters for conditions such as status or id)
- Creating records: insert_data
- Changing records: update_data (always pass filters that identify the rows)
- Removing records: delete_data (always pass filters that identify the rows)
- Sending money, checking balances or any payment operation: locus_payment

Rules:
- Before inserting or updating, call get_table_schema to learn the table's columns.
- If get_table_schema reports the table is empty and the user wants to write to it, you MUST call
  get_table_schema again with insertSampleData=true before attempting insert_data.
- Never update or delete without filters.
- Only use write tools (insert_data, update_data, delete_data, locus_payment) when the user asks for a change or a payment.
- Base every answer on tool results; do not invent rows, ids or amounts."""


def build_payments_agent(
    completion_backend: CompletionBackend,
    payment_backend: PaymentBackend,
    namespaces: Optional[Sequence[str]] = None,
) -> ToolCallingAgent:
    """Single-tool payment session; every call must pass the payment namespace gate."""
    registry = ToolRegistry([build_payment_tool(payment_backend)])
    return ToolCallingAgent(
        completion_backend,
        registry,
        system_prompt=PAYMENTS_SYSTEM_PROMPT,
        gate=NamespaceGate(namespaces or settings.PAYMENT_TOOL_NAMESPACES),
        max_iterations=settings.AGENT_MAX_ITERATIONS,
        parallel_tool_calls=settings.AGENT_PARALLEL_TOOL_CALLS,
        tool_timeout_seconds=settings.TOOL_EXECUTION_TIMEOUT_SECONDS,
    )


def build_full_agent(
    completion_backend: CompletionBackend,
    table_store: TableStore,
    payment_backend: PaymentBackend,
) -> ToolCallingAgent:
    """Database and payment session; trusts every registered tool."""
    registry = ToolRegistry(build_table_tools(table_store))
    registry.register(build_payment_tool(payment_backend))
    return ToolCallingAgent(
        completion_backend,
        registry,
        system_prompt=FULL_SYSTEM_PROMPT,
        max_iterations=settings.AGENT_MAX_ITERATIONS,
        parallel_tool_calls=settings.AGENT_PARALLEL_TOOL_CALLS,
        tool_timeout_seconds=settings.TOOL_EXECUTION_TIMEOUT_SECONDS,
    )
