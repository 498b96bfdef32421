"""
Payment summary for a contractor: what has been paid, what is pending and
what is still owed against the contractor's total payable amount.
"""

from typing import Any, Dict, List
import logging

from prpay.connectors.table_store import Row, TableStore
from prpay.core.exceptions import NotFoundError

logger = logging.getLogger(__name__)


def _amount(payment: Row) -> float:
    return float(payment.get("amount") or 0)


def summarize_payments(total_amount_payable: float, payments: List[Row]) -> Dict[str, float]:
    total_paid = sum(_amount(p) for p in payments if p.get("payment_status") == "completed")
    total_pending = sum(_amount(p) for p in payments if p.get("payment_status") == "pending")
    return {
        "totalPaid": total_paid,
        "totalPending": total_pending,
        "remainingAmount": total_amount_payable - total_paid,
        "totalAmountPayable": total_amount_payable,
    }


class PaymentSummaryService:
    def __init__(self, store: TableStore, contractors_table: str = "contractors", payments_table: str = "payments"):
        self.store = store
        self.contractors_table = contractors_table
        self.payments_table = payments_table

    async def get_summary(self, contractor_id: Any) -> Dict[str, Any]:
        """
        Raises:
            NotFoundError: if no contractor has the given id
        """
        contractors = await self.store.select(self.contractors_table, filters={"id": contractor_id}, limit=1)
        if not contractors:
            raise NotFoundError("Contractor not found")
        contractor = contractors[0]

        payments = await self.store.select(
            self.payments_table,
            filters={"contractor_id": contractor_id},
            order_by="created_at",
            descending=True,
        )

        total_amount_payable = float(contractor.get("total_amount_payable") or 0)
        logger.debug(f"Summarizing {len(payments)} payment(s) for contractor {contractor_id}")
        return {
            "contractor": {
                "id": contractor.get("id"),
                "personName": contractor.get("person_name"),
                "walletAddress": contractor.get("wallet_address"),
                "totalAmountPayable": total_amount_payable,
            },
            "summary": summarize_payments(total_amount_payable, payments),
            "payments": payments,
        }
