"""
Application-level error types shared across the API and agent layers.
"""

from typing import Any, List, Optional


class ConfigurationError(Exception):
    """Raised when required configuration is missing or a registry is misconfigured"""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.missing = missing or []

    @classmethod
    def missing_credentials(cls, missing: List[str]) -> "ConfigurationError":
        return cls(f"Missing required configuration: {', '.join(missing)}", missing=missing)


class OrchestrationError(Exception):
    """
    Raised when the completion backend fails during an agent session.

    The tool calls and results gathered before the failure are kept on the
    exception so callers can log or surface them.
    """

    def __init__(
        self,
        message: str,
        tool_calls: Optional[List[Any]] = None,
        tool_results: Optional[List[Any]] = None,
        iterations: int = 0,
    ):
        super().__init__(message)
        self.tool_calls = tool_calls or []
        self.tool_results = tool_results or []
        self.iterations = iterations


class NotFoundError(Exception):
    """Raised when a requested record does not exist"""
