"""
REST HTTP client for the console payment API.
"""

import logging
from typing import Any, Optional

import httpx

from cloudpay.auth import AuthContext
from cloudpay.errors import CloudPayError, ConnectionError

DEFAULT_BASE_URL = "http://localhost:8000/api/v1"
TENANT_HEADER = "X-Tenant-ID"

logger = logging.getLogger(__name__)


class HttpClient:
    def __init__(self, auth: AuthContext, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 30.0):
        self._auth = auth
        self._client = httpx.AsyncClient(
            base_url=auth.base_url.rstrip("/"),
            headers={"User-Agent": "cloudpay-sdk/0.1.0", "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def auth(self) -> AuthContext:
        return self._auth

    def set_auth(self, auth: AuthContext) -> None:
        self._auth = auth

    def _auth_headers(self, authenticated: bool) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if authenticated and self._auth.token:
            headers["Authorization"] = f"Bearer {self._auth.token}"
        if self._auth.tenant_header:
            headers[TENANT_HEADER] = self._auth.tenant_header
        return headers

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        """Body as JSON, or an empty dict when the backend sent something else."""
        try:
            return resp.json()
        except ValueError:
            return {}

    async def _request(self, method: str, path: str, authenticated: bool, **kwargs: Any) -> Any:
        logger.debug("%s %s", method, path)
        try:
            resp = await self._client.request(method, path, headers=self._auth_headers(authenticated), **kwargs)
        except httpx.HTTPError as e:
            raise ConnectionError(f"{method} {path} failed: {e}") from e
        body = self._json(resp)
        if resp.status_code >= 400:
            raise CloudPayError(
                "http_error",
                f"HTTP {resp.status_code}: {resp.text[:200]}",
                {"status_code": resp.status_code, "body": body},
            )
        return body

    async def get(self, path: str, authenticated: bool = True) -> Any:
        return await self._request("GET", path, authenticated)

    async def put(self, path: str, body: Optional[dict[str, Any]] = None, authenticated: bool = True) -> Any:
        return await self._request("PUT", path, authenticated, json=body)

    async def delete(self, path: str, authenticated: bool = True) -> Any:
        return await self._request("DELETE", path, authenticated)

    async def close(self) -> None:
        await self._client.aclose()
