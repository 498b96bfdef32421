"""
Supabase Table Store

Talks to a Supabase project's PostgREST endpoint (`/rest/v1`) over HTTP.
Uses the service-role key when configured, otherwise the anon key.

API Documentation: https://postgrest.org/en/stable/references/api/tables_views.html
"""

import json
from typing import Any, Dict, List, Optional
import logging

import httpx

from prpay.connectors.table_store import Filters, Row, TableStoreError, require_filters

logger = logging.getLogger(__name__)


def _filter_value(value: Any) -> str:
    """Encode one equality predicate in PostgREST operator syntax."""
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    if isinstance(value, (dict, list)):
        return f"eq.{json.dumps(value)}"
    return f"eq.{value}"


class SupabaseTableStore:
    """
    TableStore backed by Supabase PostgREST.

    The schema lookup calls a Postgres function exposed as an RPC
    (`get_table_schema(table_name)` by default). Projects that don't define
    it simply get None from `describe`.
    """

    REST_PATH = "/rest/v1"

    def __init__(
        self,
        url: str,
        api_key: str,
        schema_rpc: str = "get_table_schema",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = url.rstrip("/") + self.REST_PATH
        self.api_key = api_key
        self.schema_rpc = schema_rpc
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client with authentication."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _headers(self, returning: bool = False) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        if returning:
            headers["Prefer"] = "return=representation"
        return headers

    def _params(self, filters: Optional[Filters]) -> Dict[str, str]:
        return {column: _filter_value(value) for column, value in (filters or {}).items()}

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        json_body: Any = None,
        returning: bool = False,
    ) -> Any:
        client = await self._get_client()
        try:
            response = await client.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                json=json_body,
                headers=self._headers(returning=returning),
            )
        except httpx.TimeoutException as e:
            raise TableStoreError(f"Request to table store timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TableStoreError(f"Table store request failed: {e}") from e

        if response.is_error:
            raise self._error_from_response(response)

        if not response.content:
            return []
        return response.json()

    def _error_from_response(self, response: httpx.Response) -> TableStoreError:
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            return TableStoreError(
                body.get("message") or f"HTTP {response.status_code}",
                code=body.get("code"),
                hint=body.get("hint"),
            )
        return TableStoreError(f"HTTP {response.status_code}: {response.text[:200]}")

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Row]:
        params = {"select": "*", **self._params(filters)}
        if limit:
            params["limit"] = str(limit)
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        return await self._request("GET", f"/{table}", params=params)

    async def insert(self, table: str, record: Row) -> List[Row]:
        return await self._request("POST", f"/{table}", json_body=record, returning=True)

    async def update(self, table: str, filters: Filters, patch: Row) -> List[Row]:
        require_filters("update", table, filters)
        return await self._request(
            "PATCH", f"/{table}", params=self._params(filters), json_body=patch, returning=True
        )

    async def delete(self, table: str, filters: Filters) -> List[Row]:
        require_filters("delete", table, filters)
        return await self._request("DELETE", f"/{table}", params=self._params(filters), returning=True)

    async def describe(self, table: str) -> Optional[List[Row]]:
        try:
            data = await self._request(
                "POST", f"/rpc/{self.schema_rpc}", json_body={"table_name": table}
            )
        except TableStoreError as e:
            logger.debug(f"Schema RPC unavailable for {table}: {e}")
            return None
        if isinstance(data, list) and data:
            return data
        return None

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
