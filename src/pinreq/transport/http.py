"""
REST HTTP client for the Matrix client-server API.
"""

from typing import Any, Optional, Union

import httpx

from pinreq import __version__
from pinreq.errors import Rejected, Unreachable

CLIENT_API_PREFIX = "/_matrix/client/v3"
DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


class HttpClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: Union[float, httpx.Timeout] = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}{CLIENT_API_PREFIX}",
            headers={"User-Agent": f"pinreq/{__version__}", "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def set_token(self, token: Optional[str]) -> None:
        self._token = token

    def _auth_headers(self, authenticated: bool) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if authenticated and self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    @staticmethod
    def _unwrap(resp: httpx.Response) -> dict[str, Any]:
        """Return the JSON object body, or raise Rejected with the Matrix errcode/error."""
        try:
            body = resp.json()
        except ValueError:
            body = None
        if resp.status_code >= 400:
            if isinstance(body, dict):
                raise Rejected(
                    f"HTTP {resp.status_code}: {body.get('error', resp.text[:200])}",
                    status_code=resp.status_code,
                    errcode=body.get("errcode"),
                )
            raise Rejected(f"HTTP {resp.status_code}: {resp.text[:200]}", status_code=resp.status_code)
        if not isinstance(body, dict):
            raise Rejected(f"Malformed response: {resp.text[:200]}", status_code=resp.status_code)
        return body

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise Unreachable(f"{method} {path} failed: {type(e).__name__}: {e}") from e
        return self._unwrap(resp)

    async def get(
        self,
        path: str,
        params: Optional[dict[str, str]] = None,
        authenticated: bool = True,
        timeout: Optional[Union[float, httpx.Timeout]] = None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if timeout is not None:
            kwargs["timeout"] = timeout
        return await self._request("GET", path, params=params, headers=self._auth_headers(authenticated), **kwargs)

    async def post(self, path: str, body: Optional[dict[str, Any]] = None, authenticated: bool = True) -> dict[str, Any]:
        return await self._request("POST", path, json=body, headers=self._auth_headers(authenticated))

    async def put(self, path: str, body: Optional[dict[str, Any]] = None, authenticated: bool = True) -> dict[str, Any]:
        return await self._request("PUT", path, json=body, headers=self._auth_headers(authenticated))

    async def close(self) -> None:
        await self._client.aclose()
