"""HTTP adapter for the sourcemap ingestion API."""
from __future__ import annotations

from typing import Dict, Optional

import httpx


class HTTPAPIClient:
    """
    HTTP client adapter for API calls.

    Implements IAPIClient protocol.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        max_connections: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url
        self._timeout = timeout
        self._max_connections = max_connections
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        limits = httpx.Limits(max_connections=self._max_connections)
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            limits=limits,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def post_file(
        self,
        endpoint: str,
        filename: str,
        content: bytes,
        data: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """
        POST a multipart form with ``content`` under the ``file`` field.

        Transport errors propagate as ``httpx.HTTPError``; status codes are
        left to the caller.
        """
        if not self._client:
            raise RuntimeError("HTTPAPIClient not initialized. Use 'async with' context.")

        files = {"file": (filename, content, "application/octet-stream")}
        return await self._client.post(endpoint, data=data or {}, files=files)
