import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from prpay.api.deps import get_oauth_broker, get_poll_policy, require_credentials
from prpay.connectors.metorial import MetorialOAuthBroker, OAuthBrokerError, PollPolicy
from prpay.core.rate_limiter import limiter, RateLimits
from prpay.schemas.oauth import OAuthRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    dependencies=[Depends(require_credentials("METORIAL_API_KEY", "GITHUB_SERVER_DEPLOYMENT_ID"))],
)
@limiter.limit(RateLimits.OAUTH)
async def github_oauth(
    request: Request,
    response: Response,
    body: OAuthRequest,
    broker: MetorialOAuthBroker = Depends(get_oauth_broker),
    policy: PollPolicy = Depends(get_poll_policy),
) -> Any:
    """
    Connect a GitHub account through Metorial.

    - `create` starts an OAuth session and returns the URL to open.
    - `wait` checks whether the session finished, polling briefly.
    """
    try:
        if body.action == "create":
            session = await broker.create_session()
            return {"oauthSessionId": session.get("id"), "url": session.get("url")}

        if not body.oauth_session_id:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": "oauthSessionId is required"},
            )

        result = await broker.wait_for_completion(body.oauth_session_id, policy)
    except OAuthBrokerError as e:
        logger.error(f"GitHub OAuth {body.action} failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(e)},
        )

    if not result.completed:
        return {"completed": False, "message": "OAuth not completed yet"}
    return {"completed": True, "oauthSessionId": body.oauth_session_id}
