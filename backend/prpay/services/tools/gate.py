"""
Tool gates decide, per proposed tool call, whether it may run at all.

A gate only looks at the tool name. Arguments never widen what a gate allows.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Tuple
import logging

logger = logging.getLogger(__name__)

PAYMENT_DENIAL_MESSAGE = "Only payment tools are allowed"


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "GateDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "GateDecision":
        return cls(allowed=False, reason=reason)


class ToolGate(Protocol):
    def authorize(self, tool_name: str) -> GateDecision:
        ...


class NamespaceGate:
    """
    Allow-list gate: a tool may run only if its name starts with one of the
    configured namespace prefixes (e.g. "locus_" or "mcp__locus__").
    """

    def __init__(self, prefixes: Iterable[str], denial_message: str = PAYMENT_DENIAL_MESSAGE):
        self.prefixes: Tuple[str, ...] = tuple(p for p in prefixes if p)
        if not self.prefixes:
            raise ValueError("NamespaceGate needs at least one non-empty prefix")
        self.denial_message = denial_message

    def authorize(self, tool_name: str) -> GateDecision:
        if tool_name.startswith(self.prefixes):
            return GateDecision.allow()
        logger.warning(f"Gate denied tool call: {tool_name}")
        return GateDecision.deny(self.denial_message)
