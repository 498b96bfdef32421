from typing import Any, Dict, List, Optional
import logging

from openai import AsyncOpenAI

from prpay.core.config import settings
from prpay.services.tools.agent import CompletionResponse
from prpay.services.tools.schema import ToolCall

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """Raised when the completion API call fails (network, auth, rate limit, bad response)"""
    pass


class OpenAICompletionBackend:
    """
    Chat completions with native function calling.

    Model, temperature and timeout come from settings unless given explicitly.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model or settings.OPENAI_MODEL
        self.temperature = temperature if temperature is not None else settings.LLM_TEMPERATURE
        self._client = client
        self._api_key = api_key or settings.OPENAI_API_KEY
        self._timeout = timeout or settings.LLM_REQUEST_TIMEOUT
        self._base_url = base_url or settings.OPENAI_BASE_URL

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise CompletionError("OPENAI_API_KEY not configured")
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                timeout=self._timeout,
                base_url=self._base_url,
            )
        return self._client

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
    ) -> CompletionResponse:
        client = self._get_client()

        request_kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
        }
        if self.temperature is not None:
            request_kwargs["temperature"] = self.temperature
        if tools:
            request_kwargs["tools"] = tools
            request_kwargs["tool_choice"] = "auto"

        try:
            response = await client.chat.completions.create(**request_kwargs)
        except Exception as e:
            error_type = type(e).__name__
            raise CompletionError(f"LLM API error (openai): [{error_type}] {str(e)}") from e

        if not response.choices:
            raise CompletionError("LLM API error (openai): response contained no choices")

        message = response.choices[0].message
        usage = response.usage

        tool_calls = [
            ToolCall.from_raw_arguments(
                id=tc.id,
                name=tc.function.name,
                raw_arguments=tc.function.arguments,
            )
            for tc in (message.tool_calls or [])
            if getattr(tc, "function", None) is not None
        ]

        return CompletionResponse(
            content=message.content,
            tool_calls=tool_calls,
            usage={
                "tokens_used": usage.total_tokens if usage else None,
                "prompt_tokens": usage.prompt_tokens if usage else None,
                "completion_tokens": usage.completion_tokens if usage else None,
            },
        )
