"""
Tool Executor - Safe execution of tool calls

Every proposed tool call passes through the same steps:
1. Gate check (only for sessions that use a gate)
2. Registry lookup
3. Argument validation
4. Execution with a time limit

Nothing raised by a tool escapes this module. Every outcome, including
denials and unknown tool names, becomes a ToolResult that is fed back to
the model.
"""

from typing import Any, Dict, Optional
import asyncio
import time
import logging

from pydantic import ValidationError

from prpay.services.tools.gate import ToolGate
from prpay.services.tools.registry import ToolRegistry
from prpay.services.tools.schema import ToolCall, ToolErrorType, ToolResult, ToolSpec

logger = logging.getLogger(__name__)


class ToolExecutionError(Exception):
    """Raised inside a tool when its external call fails"""
    pass


class ToolValidationError(Exception):
    """Raised when tool arguments are invalid"""
    pass


class ToolExecutor:
    """
    Runs tool calls against one session's registry and optional gate.
    """

    DEFAULT_TIMEOUT_SECONDS = 60.0

    def __init__(
        self,
        registry: ToolRegistry,
        gate: Optional[ToolGate] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.registry = registry
        self.gate = gate
        self.timeout_seconds = timeout_seconds or self.DEFAULT_TIMEOUT_SECONDS

    async def execute(self, call: ToolCall) -> ToolResult:
        """
        Execute one tool call.

        Returns:
            ToolResult with success status and the tool's envelope or an error
        """
        if self.gate is not None:
            decision = self.gate.authorize(call.name)
            if not decision.allowed:
                return self._failure(call, decision.reason or "Tool call denied", ToolErrorType.DENIED)

        spec = self.registry.lookup(call.name)
        if spec is None:
            logger.warning(f"Model requested unknown tool: {call.name}")
            return self._failure(call, f"Unknown tool: {call.name}", ToolErrorType.UNKNOWN_TOOL)

        try:
            arguments = self._validate_arguments(spec, call)
        except ToolValidationError as e:
            logger.info(f"Rejected arguments for {call.name}: {e}")
            return self._failure(call, str(e), ToolErrorType.VALIDATION)

        timeout = spec.timeout_seconds or self.timeout_seconds
        start_time = time.time()

        try:
            envelope = await asyncio.wait_for(spec.handler(arguments), timeout=timeout)
        except asyncio.TimeoutError:
            execution_time_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Tool {call.name} timed out after {execution_time_ms}ms")
            return self._failure(
                call,
                f"Tool execution timed out after {timeout:g}s",
                ToolErrorType.TIMEOUT,
                execution_time_ms=execution_time_ms,
            )
        except Exception as e:
            execution_time_ms = int((time.time() - start_time) * 1000)
            logger.exception(f"Tool {call.name} failed: {e}")
            return self._failure(call, str(e), ToolErrorType.EXECUTION, execution_time_ms=execution_time_ms)

        execution_time_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Tool {call.name} executed in {execution_time_ms}ms")

        success = bool(envelope.get("success", True)) if isinstance(envelope, dict) else True
        error = envelope.get("error") if isinstance(envelope, dict) and not success else None
        return ToolResult(
            tool_call_id=call.id,
            tool_name=call.name,
            success=success,
            data=envelope,
            error=error,
            error_type=None if success else ToolErrorType.EXECUTION,
            execution_time_ms=execution_time_ms,
        )

    def _validate_arguments(self, spec: ToolSpec, call: ToolCall) -> Any:
        """
        Validate call arguments against the tool's contract.

        Returns the typed argument record, or the raw dict for schema-only tools.
        Raises ToolValidationError if validation fails.
        """
        if call.parse_error:
            raise ToolValidationError(call.parse_error)

        if spec.args_model is not None:
            try:
                return spec.args_model.model_validate(call.arguments)
            except ValidationError as e:
                raise ToolValidationError(_format_validation_error(e)) from e

        self._validate_against_schema(call.arguments, spec.tool_schema.parameters)
        return call.arguments

    def _validate_against_schema(self, arguments: Dict[str, Any], schema: Dict[str, Any]) -> None:
        properties = schema.get("properties", {})
        required = schema.get("required", [])

        for param in required:
            if param not in arguments:
                raise ToolValidationError(f"Missing required parameter: {param}")

        for param_name, param_value in arguments.items():
            if param_name not in properties:
                # Remote servers may accept extras; leave that decision to them
                logger.debug(f"Unknown parameter {param_name} passed through")
                continue

            param_spec = properties[param_name]
            expected_type = param_spec.get("type")
            enum_values = param_spec.get("enum")

            if isinstance(expected_type, str) and not self._check_type(param_value, expected_type):
                raise ToolValidationError(
                    f"Parameter {param_name} should be {expected_type}, got {type(param_value).__name__}"
                )

            if enum_values and param_value not in enum_values:
                raise ToolValidationError(
                    f"Parameter {param_name} must be one of: {', '.join(str(v) for v in enum_values)}"
                )

    def _check_type(self, value: Any, expected: str) -> bool:
        """Check if value matches expected JSON Schema type"""
        if expected in ("number", "integer") and isinstance(value, bool):
            return False
        type_map = {
            "string": str,
            "number": (int, float),
            "integer": int,
            "boolean": bool,
            "array": list,
            "object": dict,
            "null": type(None),
        }
        expected_types = type_map.get(expected)
        if expected_types is None:
            return True  # Unknown type, allow
        return isinstance(value, expected_types)

    def _failure(
        self,
        call: ToolCall,
        error: str,
        error_type: ToolErrorType,
        execution_time_ms: int = 0,
    ) -> ToolResult:
        return ToolResult(
            tool_call_id=call.id,
            tool_name=call.name,
            success=False,
            error=error,
            error_type=error_type,
            execution_time_ms=execution_time_ms,
        )


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ())) or "arguments"
        parts.append(f"{location}: {item.get('msg')}")
    return "Invalid arguments: " + "; ".join(parts)
