"""
Payment tool - hands a free-text payment instruction to the payment backend
"""

from typing import Any, Dict, Optional
import logging

from prpay.connectors.payment import PaymentBackend
from prpay.core.config import settings
from prpay.services.tools.schema import PaymentArgs, ToolSpec

logger = logging.getLogger(__name__)

PAYMENT_TOOL_NAME = "locus_payment"

# Both the payment server and the model behind it must be reachable
PAYMENT_CREDENTIALS = ("LOCUS_API_KEY", "OPENAI_API_KEY")


def build_payment_tool(
    backend: PaymentBackend,
    timeout_seconds: Optional[float] = None,
) -> ToolSpec:
    async def locus_payment(args: PaymentArgs) -> Dict[str, Any]:
        missing = settings.missing_credentials(*PAYMENT_CREDENTIALS)
        if missing:
            logger.error(f"Payment tool called without credentials: {missing}")
            return {
                "success": False,
                "error": f"Missing required configuration: {', '.join(missing)}",
            }

        execution = await backend.execute(args.prompt)
        if not execution.success:
            logger.warning(f"Payment execution failed: {execution.error}")
        return execution.to_envelope()

    return ToolSpec.from_model(
        name=PAYMENT_TOOL_NAME,
        description=(
            "Execute blockchain payments and queries using Locus. Use this for sending USDC, "
            "checking balances, or any payment-related operations."
        ),
        args_model=PaymentArgs,
        handler=locus_payment,
        timeout_seconds=timeout_seconds or settings.AGENT_REQUEST_TIMEOUT_SECONDS,
    )
