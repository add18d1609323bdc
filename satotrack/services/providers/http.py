from __future__ import annotations

import asyncio
from typing import Dict, Optional

import httpx

from satotrack.config import ProviderEndpointConfig, settings


class ProviderHttpClientFactory:
    """
    Lazily creates and caches httpx AsyncClient instances for each provider
    endpoint. Each client uses the endpoint's own timeout.

    ``transport`` is forwarded to every client; tests pass an
    ``httpx.MockTransport`` here.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._clients: Dict[str, httpx.AsyncClient] = {}
        self._lock = asyncio.Lock()
        self._transport = transport

    async def get_client(self, endpoint: ProviderEndpointConfig) -> httpx.AsyncClient:
        async with self._lock:
            if endpoint.base_url not in self._clients:
                self._clients[endpoint.base_url] = httpx.AsyncClient(
                    base_url=endpoint.base_url,
                    timeout=endpoint.timeout,
                    transport=self._transport,
                    headers={
                        "User-Agent": settings.http_user_agent,
                        "Accept": "application/json",
                        "Cache-Control": "no-cache, no-store",
                    },
                )
            return self._clients[endpoint.base_url]

    async def close_all(self) -> None:
        async with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()

        # Close outside lock to avoid await under lock
        await asyncio.gather(*(client.aclose() for client in clients), return_exceptions=True)
