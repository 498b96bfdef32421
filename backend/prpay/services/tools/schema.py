"""
Tool Definition Schema - OpenAI Function Calling Format

Pydantic models for tool definitions, tool calls and tool results, plus the
typed argument records each built-in tool accepts. Argument records are
validated before any executor runs; their JSON schema is what the model sees.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ToolSchema(BaseModel):
    """
    OpenAI-compatible function/tool definition.

    This schema follows the OpenAI function calling format:
    https://platform.openai.com/docs/guides/function-calling
    """
    name: str = Field(..., description="Unique tool identifier (snake_case)")
    description: str = Field(..., description="Clear description of what the tool does and when to use it")
    parameters: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []},
        description="JSON Schema for the tool's parameters"
    )

    def to_openai_format(self) -> Dict[str, Any]:
        """Convert to OpenAI tools API format"""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters
            }
        }


ToolHandler = Callable[[Any], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class ToolSpec:
    """
    A registered capability: its model-facing schema, its argument contract and its executor.

    `args_model` is the typed argument record. Tools discovered at runtime
    (remote MCP tools) have no record type; their arguments are checked
    against `tool_schema.parameters` instead and passed as a plain dict.
    """
    tool_schema: ToolSchema
    handler: ToolHandler
    args_model: Optional[Type[BaseModel]] = None
    timeout_seconds: Optional[float] = None

    @property
    def name(self) -> str:
        return self.tool_schema.name

    @classmethod
    def from_model(
        cls,
        name: str,
        description: str,
        args_model: Type[BaseModel],
        handler: ToolHandler,
        timeout_seconds: Optional[float] = None,
    ) -> "ToolSpec":
        """Build a spec whose parameter schema is generated from the argument record."""
        parameters = args_model.model_json_schema(by_alias=True)
        parameters.pop("title", None)
        return cls(
            tool_schema=ToolSchema(name=name, description=description, parameters=parameters),
            handler=handler,
            args_model=args_model,
            timeout_seconds=timeout_seconds,
        )


class ToolErrorType(str, Enum):
    """Why a tool call did not succeed"""
    VALIDATION = "validation"
    EXECUTION = "execution"
    DENIED = "denied"
    UNKNOWN_TOOL = "unknown_tool"
    TIMEOUT = "timeout"


class ToolCall(BaseModel):
    """Represents a single tool call from the LLM"""
    id: str = Field(..., description="Unique identifier for this tool call")
    name: str = Field(..., description="Name of the tool to call")
    arguments: Dict[str, Any] = Field(
        default_factory=dict,
        description="Arguments to pass to the tool"
    )
    parse_error: Optional[str] = Field(
        default=None,
        description="Set when the model sent arguments that are not a JSON object"
    )

    @classmethod
    def from_raw_arguments(cls, id: str, name: str, raw_arguments: Optional[str]) -> "ToolCall":
        """Build a call from the JSON-encoded argument string the completion API returns."""
        if not raw_arguments:
            return cls(id=id, name=name)
        try:
            arguments = json.loads(raw_arguments)
        except json.JSONDecodeError as e:
            return cls(id=id, name=name, parse_error=f"Arguments are not valid JSON: {e.msg}")
        if not isinstance(arguments, dict):
            return cls(id=id, name=name, parse_error="Arguments must be a JSON object")
        return cls(id=id, name=name, arguments=arguments)


class ToolResult(BaseModel):
    """Result from tool execution"""
    tool_call_id: str
    tool_name: str
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_type: Optional[ToolErrorType] = None
    execution_time_ms: int = 0

    def to_message_content(self) -> str:
        """Convert to string for LLM message"""
        if isinstance(self.data, (dict, list)):
            return json.dumps(self.data, indent=2, default=str)
        if self.success:
            return str(self.data)
        return f"Error: {self.error}"


# ============ Argument records ============

class _ToolArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


def _require_filters(value: Dict[str, Any]) -> Dict[str, Any]:
    if not value:
        raise ValueError("filters must contain at least one column; whole-table writes are not allowed")
    return value


class GetTableSchemaArgs(_ToolArgs):
    table_name: str = Field(
        ..., alias="tableName", min_length=1,
        description="Name of the table to get schema for"
    )
    insert_sample_data: bool = Field(
        default=False, alias="insertSampleData",
        description="If true and table is empty, insert a sample row to discover the schema. "
                    "Use this when you need to insert data into an empty table."
    )


class ReadTableArgs(_ToolArgs):
    table_name: str = Field(..., alias="tableName", min_length=1, description="Name of the table to read from")
    filters: Optional[Dict[str, Any]] = Field(
        default=None,
        description='Optional filters as key-value pairs (e.g., {"status": "active"})'
    )
    limit: Optional[int] = Field(default=None, ge=1, description="Optional limit on number of rows")


class InsertDataArgs(_ToolArgs):
    table_name: str = Field(..., alias="tableName", min_length=1, description="Name of the table to insert into")
    data: Dict[str, Any] = Field(..., description="Data to insert as key-value pairs")


class UpdateDataArgs(_ToolArgs):
    table_name: str = Field(..., alias="tableName", min_length=1, description="Name of the table to update")
    filters: Dict[str, Any] = Field(
        ..., description='Filters to identify rows to update (e.g., {"id": 1})'
    )
    data: Dict[str, Any] = Field(..., description="Data to update as key-value pairs")

    @field_validator("filters")
    @classmethod
    def filters_not_empty(cls, value):
        return _require_filters(value)


class DeleteDataArgs(_ToolArgs):
    table_name: str = Field(..., alias="tableName", min_length=1, description="Name of the table to delete from")
    filters: Dict[str, Any] = Field(
        ..., description='Filters to identify rows to delete (e.g., {"id": 1})'
    )

    @field_validator("filters")
    @classmethod
    def filters_not_empty(cls, value):
        return _require_filters(value)


class PaymentArgs(_ToolArgs):
    prompt: str = Field(
        ..., min_length=1,
        description='The payment instruction or query (e.g., "send 5 usdc to 0x123...")'
    )
