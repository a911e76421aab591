"""
Local IPFS daemon client — just enough of the HTTP RPC API to pin.
"""

import logging
from typing import Any, Optional

import httpx

from pinreq.errors import PinFailed

logger = logging.getLogger(__name__)


class IpfsPinner:
    def __init__(
        self,
        api_url: str = "http://127.0.0.1:5001",
        timeout: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=f"{api_url.rstrip('/')}/api/v0", timeout=timeout, transport=transport,
        )

    async def pin_add(self, resource_id: str) -> list[str]:
        """Recursively pin `resource_id`; returns the pinned CIDs."""
        try:
            resp = await self._client.post("/pin/add", params={"arg": resource_id, "recursive": "true"})
        except httpx.HTTPError as e:
            raise PinFailed(resource_id, f"Could not reach the IPFS daemon: {e}")
        if resp.status_code >= 400:
            raise PinFailed(resource_id, f"HTTP {resp.status_code}: {resp.text[:200]}")
        try:
            body: Any = resp.json()
        except ValueError:
            raise PinFailed(resource_id, f"Malformed response: {resp.text[:200]}")
        pins = body.get("Pins") if isinstance(body, dict) else None
        if not isinstance(pins, list):
            raise PinFailed(resource_id, f"Malformed response: {resp.text[:200]}")
        logger.info("Pinned %s (%s)", resource_id, ", ".join(pins))
        return pins

    async def close(self) -> None:
        await self._client.aclose()
