"""
Tests for prpay/services/tools/executor.py - gate, lookup, validation and execution.
"""
import asyncio

import pytest
from unittest.mock import AsyncMock


def _registry(*specs):
    from prpay.services.tools.registry import ToolRegistry

    return ToolRegistry(specs)


def _payment_spec(handler):
    from prpay.services.tools.schema import PaymentArgs, ToolSpec

    return ToolSpec.from_model(
        name="locus_payment", description="pay", args_model=PaymentArgs, handler=handler
    )


def _delete_spec(handler):
    from prpay.services.tools.schema import DeleteDataArgs, ToolSpec

    return ToolSpec.from_model(
        name="delete_data", description="delete", args_model=DeleteDataArgs, handler=handler
    )


class TestGateAndLookup:
    """Failures decided before any handler runs."""

    @pytest.mark.asyncio
    async def test_denied_call_never_reaches_handler(self):
        from prpay.services.tools.executor import ToolExecutor
        from prpay.services.tools.gate import NamespaceGate
        from prpay.services.tools.schema import ToolCall, ToolErrorType

        handler = AsyncMock(return_value={"success": True})
        executor = ToolExecutor(_registry(_delete_spec(handler)), gate=NamespaceGate(["locus_"]))

        result = await executor.execute(
            ToolCall(id="c1", name="delete_data", arguments={"tableName": "orders", "filters": {"id": 1}})
        )

        assert not result.success
        assert result.error == "Only payment tools are allowed"
        assert result.error_type == ToolErrorType.DENIED
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_gate_checked_before_lookup(self):
        """Unregistered names outside the namespace are denied, not reported unknown."""
        from prpay.services.tools.executor import ToolExecutor
        from prpay.services.tools.gate import NamespaceGate
        from prpay.services.tools.schema import ToolCall, ToolErrorType

        executor = ToolExecutor(_registry(), gate=NamespaceGate(["locus_"]))

        result = await executor.execute(ToolCall(id="c1", name="drop_tables"))

        assert result.error_type == ToolErrorType.DENIED

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        from prpay.services.tools.executor import ToolExecutor
        from prpay.services.tools.schema import ToolCall, ToolErrorType

        handler = AsyncMock()
        executor = ToolExecutor(_registry(_payment_spec(handler)))

        result = await executor.execute(ToolCall(id="c9", name="send_email", arguments={"to": "x"}))

        assert not result.success
        assert result.tool_call_id == "c9"
        assert result.error == "Unknown tool: send_email"
        assert result.error_type == ToolErrorType.UNKNOWN_TOOL
        handler.assert_not_awaited()


class TestValidation:
    """Typed argument records are enforced before execution."""

    @pytest.mark.asyncio
    async def test_empty_filters_rejected_before_store(self):
        from prpay.services.tools.executor import ToolExecutor
        from prpay.services.tools.schema import ToolCall, ToolErrorType

        handler = AsyncMock()
        executor = ToolExecutor(_registry(_delete_spec(handler)))

        result = await executor.execute(
            ToolCall(id="c1", name="delete_data", arguments={"tableName": "orders", "filters": {}})
        )

        assert result.error_type == ToolErrorType.VALIDATION
        assert result.error.startswith("Invalid arguments: filters")
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_required_argument(self):
        from prpay.services.tools.executor import ToolExecutor
        from prpay.services.tools.schema import ToolCall, ToolErrorType

        handler = AsyncMock()
        executor = ToolExecutor(_registry(_payment_spec(handler)))

        result = await executor.execute(ToolCall(id="c1", name="locus_payment", arguments={}))

        assert result.error_type == ToolErrorType.VALIDATION
        assert "prompt" in result.error

    @pytest.mark.asyncio
    async def test_unexpected_argument_rejected(self):
        from prpay.services.tools.executor import ToolExecutor
        from prpay.services.tools.schema import ToolCall, ToolErrorType

        executor = ToolExecutor(_registry(_payment_spec(AsyncMock())))

        result = await executor.execute(
            ToolCall(id="c1", name="locus_payment", arguments={"prompt": "pay", "amount": 5})
        )

        assert result.error_type == ToolErrorType.VALIDATION

    @pytest.mark.asyncio
    async def test_malformed_json_arguments(self):
        from prpay.services.tools.executor import ToolExecutor
        from prpay.services.tools.schema import ToolCall, ToolErrorType

        handler = AsyncMock()
        executor = ToolExecutor(_registry(_payment_spec(handler)))
        call = ToolCall.from_raw_arguments("c1", "locus_payment", '{"prompt": "send 5 usdc')

        result = await executor.execute(call)

        assert result.error_type == ToolErrorType.VALIDATION
        assert "not valid JSON" in result.error
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_receives_typed_record(self):
        from prpay.services.tools.executor import ToolExecutor
        from prpay.services.tools.schema import PaymentArgs, ToolCall

        handler = AsyncMock(return_value={"success": True, "result": "ok"})
        executor = ToolExecutor(_registry(_payment_spec(handler)))

        await executor.execute(ToolCall(id="c1", name="locus_payment", arguments={"prompt": "send 1 usdc"}))

        args = handler.await_args.args[0]
        assert isinstance(args, PaymentArgs)
        assert args.prompt == "send 1 usdc"

    @pytest.mark.asyncio
    async def test_schema_only_tool_checks_types(self):
        from prpay.services.tools.executor import ToolExecutor
        from prpay.services.tools.schema import ToolCall, ToolErrorType, ToolSchema, ToolSpec

        handler = AsyncMock(return_value={"success": True})
        spec = ToolSpec(
            tool_schema=ToolSchema(
                name="mcp__locus__send_to_address",
                description="send",
                parameters={
                    "type": "object",
                    "properties": {"amount": {"type": "number"}, "address": {"type": "string"}},
                    "required": ["amount", "address"],
                },
            ),
            handler=handler,
        )
        executor = ToolExecutor(_registry(spec))

        missing = await executor.execute(ToolCall(id="a", name=spec.name, arguments={"amount": 5}))
        wrong_type = await executor.execute(
            ToolCall(id="b", name=spec.name, arguments={"amount": True, "address": "0x1"})
        )
        ok = await executor.execute(
            ToolCall(id="c", name=spec.name, arguments={"amount": 5, "address": "0x1"})
        )

        assert missing.error == "Missing required parameter: address"
        assert wrong_type.error_type == ToolErrorType.VALIDATION
        assert ok.success
        handler.assert_awaited_once_with({"amount": 5, "address": "0x1"})


class TestExecution:
    """Outcomes of running a handler."""

    @pytest.mark.asyncio
    async def test_envelope_becomes_result_data(self):
        from prpay.services.tools.executor import ToolExecutor
        from prpay.services.tools.schema import ToolCall

        envelope = {"success": True, "result": "sent"}
        executor = ToolExecutor(_registry(_payment_spec(AsyncMock(return_value=envelope))))

        result = await executor.execute(ToolCall(id="c1", name="locus_payment", arguments={"prompt": "pay"}))

        assert result.success
        assert result.data == envelope
        assert result.error is None

    @pytest.mark.asyncio
    async def test_failure_envelope_is_unsuccessful_result(self):
        from prpay.services.tools.executor import ToolExecutor
        from prpay.services.tools.schema import ToolCall, ToolErrorType

        envelope = {"success": False, "error": "insufficient balance"}
        executor = ToolExecutor(_registry(_payment_spec(AsyncMock(return_value=envelope))))

        result = await executor.execute(ToolCall(id="c1", name="locus_payment", arguments={"prompt": "pay"}))

        assert not result.success
        assert result.error == "insufficient balance"
        assert result.error_type == ToolErrorType.EXECUTION
        assert result.data == envelope

    @pytest.mark.asyncio
    async def test_handler_exception_is_contained(self):
        from prpay.services.tools.executor import ToolExecutionError, ToolExecutor
        from prpay.services.tools.schema import ToolCall, ToolErrorType

        handler = AsyncMock(side_effect=ToolExecutionError("upstream 502"))
        executor = ToolExecutor(_registry(_payment_spec(handler)))

        result = await executor.execute(ToolCall(id="c1", name="locus_payment", arguments={"prompt": "pay"}))

        assert not result.success
        assert result.error == "upstream 502"
        assert result.error_type == ToolErrorType.EXECUTION

    @pytest.mark.asyncio
    async def test_timeout(self):
        from prpay.services.tools.executor import ToolExecutor
        from prpay.services.tools.schema import ToolCall, ToolErrorType

        async def slow(args):
            await asyncio.sleep(1)
            return {"success": True}

        executor = ToolExecutor(_registry(_payment_spec(slow)), timeout_seconds=0.01)

        result = await executor.execute(ToolCall(id="c1", name="locus_payment", arguments={"prompt": "pay"}))

        assert not result.success
        assert result.error_type == ToolErrorType.TIMEOUT


class TestToolResultContent:
    """Message content fed back to the model."""

    def test_dict_data_is_json(self):
        import json

        from prpay.services.tools.schema import ToolResult

        result = ToolResult(tool_call_id="c1", tool_name="read_table", success=True, data={"count": 2})

        assert json.loads(result.to_message_content()) == {"count": 2}

    def test_error_without_data(self):
        from prpay.services.tools.schema import ToolResult

        result = ToolResult(tool_call_id="c1", tool_name="x", success=False, error="Unknown tool: x")

        assert result.to_message_content() == "Error: Unknown tool: x"
