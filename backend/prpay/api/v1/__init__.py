from fastapi import APIRouter

from prpay.api.v1 import (
    agent,
    contractors,
    github_oauth,
    payments,
)

api_router = APIRouter()
api_router.include_router(agent.router, prefix="/agent", tags=["agent"])
api_router.include_router(contractors.router, prefix="/contractors", tags=["contractors"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(github_oauth.router, prefix="/github-oauth", tags=["github-oauth"])
