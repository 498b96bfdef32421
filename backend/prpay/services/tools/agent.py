"""
Tool Calling Agent - Main orchestration loop for LLM tool calling

This module implements the agent loop that:
1. Sends the conversation and tool definitions to the completion backend
2. Runs the tool calls the model proposes (gate -> lookup -> validate -> execute)
3. Feeds results back as tool messages
4. Repeats until the model answers without requesting tools

Each ToolCallingAgent is one orchestration session. Conversation state
lives on the instance and is discarded with it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol
import asyncio
import json
import logging

from prpay.core.exceptions import OrchestrationError
from prpay.services.tools.executor import ToolExecutor
from prpay.services.tools.gate import ToolGate
from prpay.services.tools.registry import ToolRegistry
from prpay.services.tools.schema import ToolCall, ToolResult

logger = logging.getLogger(__name__)


@dataclass
class CompletionResponse:
    """One model turn: either final text or one or more proposed tool calls"""
    content: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)
    usage: Dict[str, Optional[int]] = field(default_factory=dict)

    @property
    def tokens_used(self) -> int:
        return self.usage.get("tokens_used") or 0


class CompletionBackend(Protocol):
    async def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
    ) -> CompletionResponse:
        ...


class AgentState(str, Enum):
    """States the agent can be in during execution"""
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    ERROR = "error"


@dataclass
class AgentContext:
    """Context maintained across the agent loop"""
    messages: List[Dict[str, Any]] = field(default_factory=list)
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_results: List[ToolResult] = field(default_factory=list)
    iteration: int = 0
    total_tokens_used: int = 0
    state: AgentState = AgentState.AWAITING_MODEL


@dataclass
class AgentRunResult:
    text: str
    tool_calls: List[ToolCall]
    tool_results: List[ToolResult]
    iterations: int
    tokens_used: int
    max_iterations_reached: bool = False

    def tool_history(self) -> List[Dict[str, Any]]:
        """Calls paired with their results, in the order the model proposed them"""
        return [
            {
                "call": {"id": tc.id, "name": tc.name, "arguments": tc.arguments},
                "result": {
                    "success": tr.success,
                    "data": tr.data,
                    "error": tr.error,
                    "execution_time_ms": tr.execution_time_ms,
                },
            }
            for tc, tr in zip(self.tool_calls, self.tool_results)
        ]


class ToolCallingAgent:
    """
    Agent that orchestrates tool calling with an LLM completion backend.

    Usage:
        agent = ToolCallingAgent(backend, registry, system_prompt=FULL_SYSTEM_PROMPT)
        result = await agent.run("show me all orders with status pending")
        print(result.text)
    """

    MAX_ITERATIONS = 10

    def __init__(
        self,
        completion_backend: CompletionBackend,
        registry: ToolRegistry,
        system_prompt: str,
        gate: Optional[ToolGate] = None,
        max_iterations: Optional[int] = None,
        parallel_tool_calls: bool = True,
        tool_timeout_seconds: Optional[float] = None,
    ):
        """
        Args:
            completion_backend: Backend that produces model turns
            registry: Tools exposed in this session; frozen here
            system_prompt: Instructions sent as the first message
            gate: Optional allow/deny policy checked before lookup
            max_iterations: Safety bound on model round trips
            parallel_tool_calls: Run calls proposed in one turn concurrently
            tool_timeout_seconds: Default per-tool time limit
        """
        self.completion_backend = completion_backend
        self.registry = registry.freeze()
        self.system_prompt = system_prompt
        self.gate = gate
        self.max_iterations = max_iterations or self.MAX_ITERATIONS
        self.parallel_tool_calls = parallel_tool_calls
        self.tool_executor = ToolExecutor(registry, gate=gate, timeout_seconds=tool_timeout_seconds)
        self.context = AgentContext()

    async def run(self, user_message: str) -> AgentRunResult:
        """
        Run the agent loop until the model answers or max iterations is reached.

        Raises:
            OrchestrationError: if the completion backend call fails
        """
        self._initialize_messages(user_message)
        tools_spec = self.registry.get_openai_tools_spec()

        while self.context.iteration < self.max_iterations:
            self.context.iteration += 1
            self.context.state = AgentState.AWAITING_MODEL
            logger.info(f"Agent iteration {self.context.iteration}")

            try:
                response = await self.completion_backend.complete(self.context.messages, tools_spec)
            except Exception as e:
                self.context.state = AgentState.ERROR
                logger.exception(f"LLM call failed: {e}")
                raise OrchestrationError(
                    str(e),
                    tool_calls=list(self.context.tool_calls),
                    tool_results=list(self.context.tool_results),
                    iterations=self.context.iteration,
                ) from e

            self.context.total_tokens_used += response.tokens_used

            if not response.tool_calls:
                self.context.state = AgentState.DONE
                return self._result(response.content or "")

            logger.info(f"LLM requested {len(response.tool_calls)} tool call(s)")
            self.context.state = AgentState.EXECUTING_TOOLS
            results = await self._execute_tools(response.tool_calls)
            self._append_tool_results(response, results)

        logger.warning("Agent reached max iterations")
        self.context.state = AgentState.DONE
        return self._result(self._generate_partial_response(), max_iterations_reached=True)

    def _initialize_messages(self, user_message: str) -> None:
        self.context.messages = [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": user_message},
        ]

    async def _execute_tools(self, tool_calls: List[ToolCall]) -> List[ToolResult]:
        """Execute tool calls; results keep the order the model proposed them in"""
        if self.parallel_tool_calls and len(tool_calls) > 1:
            results = list(await asyncio.gather(*(self.tool_executor.execute(tc) for tc in tool_calls)))
        else:
            results = []
            for tc in tool_calls:
                results.append(await self.tool_executor.execute(tc))

        self.context.tool_calls.extend(tool_calls)
        self.context.tool_results.extend(results)
        return results

    def _append_tool_results(self, response: CompletionResponse, results: List[ToolResult]) -> None:
        """Add the assistant turn and one tool message per result to the history"""
        self.context.messages.append({
            "role": "assistant",
            "content": response.content,
            "tool_calls": [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": json.dumps(tc.arguments)
                    }
                }
                for tc in response.tool_calls
            ]
        })

        for tc, result in zip(response.tool_calls, results):
            self.context.messages.append({
                "role": "tool",
                "tool_call_id": tc.id,
                "content": result.to_message_content()
            })

    def _result(self, text: str, max_iterations_reached: bool = False) -> AgentRunResult:
        return AgentRunResult(
            text=text,
            tool_calls=list(self.context.tool_calls),
            tool_results=list(self.context.tool_results),
            iterations=self.context.iteration,
            tokens_used=self.context.total_tokens_used,
            max_iterations_reached=max_iterations_reached,
        )

    def _generate_partial_response(self) -> str:
        """Generate a response when max iterations reached"""
        if not self.context.tool_results:
            return "I wasn't able to complete the request."

        summaries = []
        for result in self.context.tool_results:
            if result.success and result.data:
                data_str = str(result.data)
                if len(data_str) > 100:
                    data_str = data_str[:100] + "..."
                summaries.append(f"- {result.tool_name}: {data_str}")

        if summaries:
            return "Here is what I completed before stopping:\n" + "\n".join(summaries)

        return "I encountered some issues while running the requested tools. Please try rephrasing your request."
