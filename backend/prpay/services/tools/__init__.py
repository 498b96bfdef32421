"""
Tool Calling System for the PR Pay agent

This package provides OpenAI-style function/tool calling, letting the LLM
read and change table data and execute payments.

Main components:
- schema.py: Pydantic models for tool definitions, calls, results and typed arguments
- registry.py: Per-session registry of tool specs
- gate.py: Allow/deny policies for proposed tool calls
- executor.py: Safe tool execution with validation & limits
- agent.py: Main agent loop orchestrating tool calls
- table_tools.py / payment_tools.py: The built-in tools
- sessions.py: Payments-only and full session factories
"""

from prpay.services.tools.schema import ToolSchema, ToolSpec, ToolCall, ToolResult, ToolErrorType
from prpay.services.tools.registry import ToolRegistry
from prpay.services.tools.gate import GateDecision, NamespaceGate
from prpay.services.tools.executor import ToolExecutor
from prpay.services.tools.agent import ToolCallingAgent, AgentRunResult

__all__ = [
    "ToolSchema",
    "ToolSpec",
    "ToolCall",
    "ToolResult",
    "ToolErrorType",
    "ToolRegistry",
    "GateDecision",
    "NamespaceGate",
    "ToolExecutor",
    "ToolCallingAgent",
    "AgentRunResult",
]
