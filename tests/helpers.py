"""Test helpers: provider fixtures and a routing mock transport"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, Union

import httpx

FIXTURES = Path(__file__).parent / "fixtures"

ADDRESS = "1Examp1eAddressForSatoTrackTests"

Route = Union[httpx.Response, Callable[[httpx.Request], Any]]


def load_fixture(name: str) -> Any:
    with open(FIXTURES / name, encoding="utf-8") as fh:
        return json.load(fh)


def route_transport(routes: Dict[str, Route]) -> httpx.MockTransport:
    """
    MockTransport keyed by ``host + path``. Values are canned responses or
    callables (sync or async); unknown routes return 404.
    """

    async def handler(request: httpx.Request) -> httpx.Response:
        key = request.url.host + request.url.path
        route = routes.get(key)
        if route is None:
            return httpx.Response(404, json={"error": f"no route for {key}"})
        if isinstance(route, httpx.Response):
            # fresh copy per request, canned responses get served repeatedly
            return httpx.Response(route.status_code, headers=route.headers, content=route.content)
        result = route(request)
        if hasattr(result, "__await__"):
            result = await result
        return result

    return httpx.MockTransport(handler)


def provider_routes(address: str = ADDRESS) -> Dict[str, Route]:
    """Healthy responses for every provider"""
    return {
        f"blockchain.info/rawaddr/{address}": httpx.Response(
            200, json=load_fixture("blockchain_info_rawaddr.json")
        ),
        "blockchain.info/q/getblockcount": httpx.Response(200, text="815199"),
        f"api.blockcypher.com/v1/btc/main/addrs/{address}": httpx.Response(
            200, json=load_fixture("blockcypher_addrs.json")
        ),
        f"blockstream.info/api/address/{address}": httpx.Response(
            200, json=load_fixture("esplora_address.json")
        ),
        f"blockstream.info/api/address/{address}/txs": httpx.Response(
            200, json=load_fixture("esplora_txs.json")
        ),
        "blockstream.info/api/blocks/tip/height": httpx.Response(200, text="815199"),
        f"api.blockchair.com/bitcoin/dashboards/address/{address}": httpx.Response(
            200, json=load_fixture("blockchair_dashboard.json")
        ),
    }


def failing_routes(address: str = ADDRESS, status: int = 503) -> Dict[str, Route]:
    """Every provider route answers with ``status``"""
    return {key: httpx.Response(status, json={"error": "unavailable"}) for key in provider_routes(address)}
