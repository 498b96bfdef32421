from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ContractorBrief(_CamelModel):
    id: Any
    person_name: str = Field(..., alias="personName")
    wallet_address: str = Field(..., alias="walletAddress")
    total_amount_payable: float = Field(..., alias="totalAmountPayable")


class PaymentTotals(_CamelModel):
    total_paid: float = Field(..., alias="totalPaid")
    total_pending: float = Field(..., alias="totalPending")
    remaining_amount: float = Field(..., alias="remainingAmount")
    total_amount_payable: float = Field(..., alias="totalAmountPayable")


class PaymentSummaryResponse(BaseModel):
    contractor: ContractorBrief
    summary: PaymentTotals
    payments: List[Dict[str, Any]]
