# AI Services Package
# Completion backends used by the tool-calling agent

from prpay.services.ai.completion_service import CompletionError, OpenAICompletionBackend

__all__ = [
    "CompletionError",
    "OpenAICompletionBackend",
]
