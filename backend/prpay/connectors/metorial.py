"""
Metorial OAuth Broker

Creates and polls the OAuth sessions that connect a contractor's GitHub
account to the Metorial-hosted GitHub MCP server deployment.

API Documentation: https://metorial.com/docs
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)


class OAuthBrokerError(Exception):
    """Raised when the OAuth provider cannot be reached or rejects a request"""


@dataclass(frozen=True)
class PollPolicy:
    """How long a `wait` request may block before reporting "not completed yet"."""
    max_attempts: int = 2
    interval_seconds: float = 1.0


@dataclass
class OAuthWaitResult:
    completed: bool
    attempts: int
    session: Optional[Dict[str, Any]] = None


def is_session_completed(session: Optional[Dict[str, Any]]) -> bool:
    """The provider reports completion in one of three shapes."""
    if not session:
        return False
    nested = session.get("oauthSession") or session.get("oauth_session") or {}
    return (
        session.get("status") == "completed"
        or session.get("completed") is True
        or (isinstance(nested, dict) and nested.get("status") == "completed")
    )


class MetorialOAuthBroker:
    """
    Thin httpx client for Metorial OAuth sessions.

    Usage:
        broker = MetorialOAuthBroker(api_key, server_deployment_id="svd_123")
        session = await broker.create_session()
        result = await broker.wait_for_completion(session["id"])
    """

    SESSIONS_PATH = "/oauth-sessions"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.metorial.com",
        server_deployment_id: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.api_key = api_key or ""
        self.base_url = base_url.rstrip("/")
        self.server_deployment_id = server_deployment_id or ""
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
        return self._client

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        client = await self._get_client()
        try:
            response = await client.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.HTTPError as e:
            raise OAuthBrokerError(f"Metorial request failed: {e}") from e

        if response.status_code >= 400:
            try:
                body = response.json()
                message = body.get("message") or body.get("error") or response.text
            except ValueError:
                message = response.text
            raise OAuthBrokerError(f"Metorial returned {response.status_code}: {message}")

        return response.json()

    async def create_session(self) -> Dict[str, Any]:
        """Start an OAuth session; returns at least `id` and `url`."""
        session = await self._request(
            "POST",
            self.SESSIONS_PATH,
            json={"server_deployment_id": self.server_deployment_id},
        )
        logger.info(f"Created Metorial OAuth session {session.get('id')}")
        return session

    async def get_session(self, session_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"{self.SESSIONS_PATH}/{session_id}")

    async def wait_for_completion(self, session_id: str, policy: Optional[PollPolicy] = None) -> OAuthWaitResult:
        policy = policy or PollPolicy()
        session: Optional[Dict[str, Any]] = None

        for attempt in range(1, policy.max_attempts + 1):
            session = await self.get_session(session_id)
            if is_session_completed(session):
                logger.info(f"OAuth session {session_id} completed after {attempt} check(s)")
                return OAuthWaitResult(completed=True, attempts=attempt, session=session)
            if attempt < policy.max_attempts:
                await asyncio.sleep(policy.interval_seconds)

        return OAuthWaitResult(completed=False, attempts=policy.max_attempts, session=session)

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
