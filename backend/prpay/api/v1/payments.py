import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse

from prpay.api.deps import get_table_store
from prpay.connectors.table_store import TableStore, TableStoreError
from prpay.core.exceptions import NotFoundError
from prpay.core.rate_limiter import limiter, RateLimits
from prpay.schemas.payments import PaymentSummaryResponse
from prpay.services.payment_summary_service import PaymentSummaryService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/summary", response_model=PaymentSummaryResponse)
@limiter.limit(RateLimits.API_READ)
async def payment_summary(
    request: Request,
    response: Response,
    contractor_id: Optional[str] = Query(None, alias="contractorId"),
    store: TableStore = Depends(get_table_store),
) -> Any:
    """
    Paid, pending and remaining amounts for one contractor, with their payments.
    """
    if not contractor_id:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "contractorId is required"},
        )

    try:
        return await PaymentSummaryService(store).get_summary(contractor_id)
    except NotFoundError as e:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": str(e)})
    except TableStoreError as e:
        logger.error(f"Failed to build payment summary for {contractor_id}: {e.message}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": e.message},
        )
