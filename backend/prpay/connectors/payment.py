"""
Payment Backend Interface

A payment backend takes a free-text payment instruction ("send 5 usdc to
0x...") and carries it out, reporting the outcome and the state of its
connection to the payment network.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol


@dataclass
class PaymentConnectionStatus:
    connected: bool = False
    status: str = "not_connected"


@dataclass
class PaymentExecution:
    success: bool
    result: Optional[str] = None
    error: Optional[str] = None
    connection_status: PaymentConnectionStatus = field(default_factory=PaymentConnectionStatus)

    def to_envelope(self) -> Dict[str, Any]:
        envelope: Dict[str, Any] = {
            "success": self.success,
            "mcpStatus": {
                "connected": self.connection_status.connected,
                "status": self.connection_status.status,
            },
        }
        if self.success:
            envelope["result"] = self.result
        else:
            envelope["error"] = self.error
        return envelope


class PaymentBackend(Protocol):
    async def execute(self, prompt: str) -> PaymentExecution:
        ...
