"""
Minimal Supabase PostgREST client.

Covers only the three table operations the probe needs:

- POST   /rest/v1/{table}                          insert one row
- GET    /rest/v1/{table}?select=..&order=..&limit  read rows
- DELETE /rest/v1/{table}?{column}={filter}        delete matching rows

Every request carries the ``apikey`` and ``Authorization: Bearer`` headers
with the service role key. Transport failures and non-2xx responses raise
PersistenceError.
"""

import re
from typing import Any, Optional

import httpx
import structlog
from pydantic import SecretStr

from grounded_probe.persistence.exceptions import PersistenceError

logger = structlog.get_logger(__name__)

ERROR_TEXT_LIMIT = 500
_CONTENT_RANGE_TOTAL = re.compile(r"/(\d+)$")


class SupabaseRestClient:
    """
    Async PostgREST client using httpx.

    Args:
        base_url: Project URL (e.g., https://xyz.supabase.co)
        service_key: Service role key
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: str,
        service_key: SecretStr,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._service_key = service_key
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            key = self._service_key.get_secret_value()
            self._client = httpx.AsyncClient(
                base_url=f"{self.base_url}/rest/v1",
                headers={
                    "apikey": key,
                    "Authorization": f"Bearer {key}",
                    "Content-Type": "application/json",
                },
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        table: Optional[str] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            client = await self._get_client()
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise PersistenceError(
                f"Store {operation} failed: {type(e).__name__}: {e}",
                operation=operation,
                table=table,
                details=str(e),
            ) from e

        if not response.is_success:
            raise PersistenceError(
                f"Store {operation} failed with HTTP {response.status_code}",
                operation=operation,
                table=table,
                status_code=response.status_code,
                details=response.text[:ERROR_TEXT_LIMIT],
            )
        return response

    async def insert(self, table: str, row: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Insert one row and return the stored representation.

        Raises:
            PersistenceError: request failed
        """
        response = await self._request(
            "POST",
            f"/{table}",
            operation="insert",
            table=table,
            json=row,
            headers={"Prefer": "return=representation"},
        )
        logger.debug("Inserted row", table=table)
        return self._rows(response, "insert", table)

    async def select(
        self,
        table: str,
        columns: str = "*",
        order: Optional[str] = None,
        limit: Optional[int] = None,
        filters: Optional[dict[str, str]] = None,
    ) -> list[dict[str, Any]]:
        """
        Read rows.

        Args:
            table: Table name
            columns: PostgREST select list
            order: PostgREST order expression (e.g., "cooldown_until.desc")
            limit: Maximum number of rows
            filters: Column -> PostgREST filter (e.g., {"id": "eq.1"})

        Raises:
            PersistenceError: request failed
        """
        params: dict[str, Any] = {"select": columns}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = limit
        if filters:
            params.update(filters)

        response = await self._request("GET", f"/{table}", operation="select", table=table, params=params)
        return self._rows(response, "select", table)

    async def delete(self, table: str, filters: dict[str, str]) -> Optional[int]:
        """
        Delete rows matching ``filters``.

        PostgREST refuses unfiltered deletes, so at least one filter is required.

        Returns:
            Number of deleted rows when the server reports it, else None

        Raises:
            ValueError: no filter given
            PersistenceError: request failed
        """
        if not filters:
            raise ValueError("delete requires at least one filter")

        response = await self._request(
            "DELETE",
            f"/{table}",
            operation="delete",
            table=table,
            params=filters,
            headers={"Prefer": "return=minimal,count=exact"},
        )
        match = _CONTENT_RANGE_TOTAL.search(response.headers.get("content-range", ""))
        return int(match.group(1)) if match else None

    async def ping(self) -> bool:
        """
        Check that the REST endpoint answers with the configured key.

        Raises:
            PersistenceError: request failed
        """
        await self._request("GET", "/", operation="ping")
        return True

    @staticmethod
    def _rows(response: httpx.Response, operation: str, table: str) -> list[dict[str, Any]]:
        if not response.content:
            return []
        try:
            data = response.json()
        except ValueError as e:
            raise PersistenceError(
                f"Store {operation} returned invalid JSON",
                operation=operation,
                table=table,
                status_code=response.status_code,
                details=response.text[:ERROR_TEXT_LIMIT],
            ) from e
        if isinstance(data, dict):
            return [data]
        return list(data)

    async def close(self):
        """Close the HTTP client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
