from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, description="User's natural-language instruction")


class ToolCallRecord(BaseModel):
    id: str
    name: str
    arguments: Dict[str, Any] = {}


class ToolResultRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tool_call_id: str = Field(..., alias="toolCallId")
    tool_name: str = Field(..., alias="toolName")
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_type: Optional[str] = Field(None, alias="errorType")
    execution_time_ms: int = Field(0, alias="executionTimeMs")


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    text: str
    tool_calls: List[ToolCallRecord] = Field(default_factory=list, alias="toolCalls")
    tool_results: List[ToolResultRecord] = Field(default_factory=list, alias="toolResults")
    iterations: int = 0
    tokens_used: int = Field(0, alias="tokensUsed")
    max_iterations_reached: bool = Field(False, alias="maxIterationsReached")
