import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse

from prpay.api.deps import get_table_store
from prpay.connectors.table_store import TableStore, TableStoreError
from prpay.core.rate_limiter import limiter, RateLimits
from prpay.schemas.contractors import (
    ContractorCreate,
    ContractorListResponse,
    ContractorResponse,
    ContractorSearch,
)
from prpay.services.contractor_service import ContractorService

logger = logging.getLogger(__name__)

router = APIRouter()


def _store_error(action: str, exc: TableStoreError) -> JSONResponse:
    logger.error(f"Failed to {action}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": exc.message},
    )


@router.get("", response_model=ContractorListResponse)
@limiter.limit(RateLimits.API_READ)
async def list_contractors(
    request: Request,
    response: Response,
    store: TableStore = Depends(get_table_store),
) -> Any:
    """
    List contractors, newest first.
    """
    try:
        contractors = await ContractorService(store).list_contractors()
    except TableStoreError as e:
        return _store_error("fetch contractors", e)
    return {"contractors": contractors}


@router.post("", response_model=ContractorResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RateLimits.API_WRITE)
async def create_contractor(
    request: Request,
    response: Response,
    payload: ContractorCreate,
    store: TableStore = Depends(get_table_store),
) -> Any:
    """
    Register a contractor with their payout wallet and total payable amount.
    """
    try:
        contractor = await ContractorService(store).create_contractor(payload)
    except TableStoreError as e:
        return _store_error("create contractor", e)
    return {"contractor": contractor}


@router.get("/search", response_model=ContractorListResponse)
@limiter.limit(RateLimits.API_SEARCH)
async def search_contractors(
    request: Request,
    response: Response,
    github_login: Optional[str] = Query(None, alias="githubLogin"),
    wallet_address: Optional[str] = Query(None, alias="walletAddress"),
    repo_name: Optional[str] = Query(None, alias="repoName"),
    role: Optional[str] = Query(None),
    store: TableStore = Depends(get_table_store),
) -> Any:
    search = ContractorSearch(
        github_login=github_login,
        wallet_address=wallet_address,
        repo_name=repo_name,
        role=role,
    )
    try:
        contractors = await ContractorService(store).search_contractors(search.filters())
    except TableStoreError as e:
        return _store_error("search contractors", e)
    return {"contractors": contractors}
