"""Tests for sequential provider fallback"""

from collections import Counter
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio

from helpers import ADDRESS, load_fixture, provider_routes, route_transport
from satotrack.config import IngestionConfig
from satotrack.errors import MALFORMED, TRANSPORT, IngestionExhausted, ProviderFailure
from satotrack.services.orchestrator import (
    IngestionResult,
    OrchestrationRun,
    OrchestratorState,
    ProviderOrchestrator,
)
from satotrack.services.providers import ProviderHttpClientFactory, build_providers
from satotrack.services.providers.blockcypher import BlockCypherNormalizer

DEFAULT_ORDER = ["blockchain_info", "blockcypher", "esplora"]


def counting(routes, hits):
    """Wrap every route so requests are tallied per host"""

    def wrap(route):
        def handler(request):
            hits[request.url.host] += 1
            if isinstance(route, httpx.Response):
                return httpx.Response(route.status_code, headers=route.headers, content=route.content)
            return route(request)

        return handler

    return {key: wrap(route) for key, route in routes.items()}


@pytest_asyncio.fixture
async def orchestrator_for(ingestion_config):
    factories = []

    def make(routes, order=None):
        config = IngestionConfig(
            provider_priority_order=order or DEFAULT_ORDER,
            per_provider_timeout_ms=1000,
            endpoints=ingestion_config.endpoints,
        )
        factory = ProviderHttpClientFactory(transport=route_transport(routes))
        factories.append(factory)
        return ProviderOrchestrator(build_providers(config, factory))

    yield make
    for factory in factories:
        await factory.close_all()


class TestFallback:
    """First provider that fetches and normalizes answers the request"""

    @pytest.mark.asyncio
    async def test_primary_success(self, orchestrator_for):
        hits = Counter()
        orchestrator = orchestrator_for(counting(provider_routes(), hits))
        result = await orchestrator.ingest(ADDRESS)

        assert isinstance(result, IngestionResult)
        assert result.provider == "blockchain_info"
        assert result.failures == []
        # rawaddr plus the tip height; later providers are never contacted
        assert hits == Counter({"blockchain.info": 2})

    @pytest.mark.asyncio
    async def test_falls_back_on_transport_failure(self, orchestrator_for):
        routes = provider_routes()
        routes[f"blockchain.info/rawaddr/{ADDRESS}"] = httpx.Response(503)
        hits = Counter()
        orchestrator = orchestrator_for(counting(routes, hits))

        result = await orchestrator.ingest(ADDRESS)

        assert isinstance(result, IngestionResult)
        assert result.provider == "blockcypher"
        assert [(f.provider, f.kind) for f in result.failures] == [("blockchain_info", TRANSPORT)]
        assert "blockstream.info" not in hits

        # Served snapshot is exactly what the second provider's normalizer produces
        expected = BlockCypherNormalizer().normalize(
            load_fixture("blockcypher_addrs.json"), ADDRESS, observed_at=datetime.now(timezone.utc)
        )
        assert result.snapshot.model_dump(exclude={"transactions"}) == expected.model_dump(
            exclude={"transactions"}
        )
        assert [tx.hash for tx in result.snapshot.transactions] == [
            tx.hash for tx in expected.transactions
        ]

    @pytest.mark.asyncio
    async def test_falls_back_on_unusable_payload(self, orchestrator_for):
        routes = provider_routes()
        routes[f"blockchain.info/rawaddr/{ADDRESS}"] = httpx.Response(200, json={"txs": []})
        orchestrator = orchestrator_for(routes)

        result = await orchestrator.ingest(ADDRESS)

        assert result.provider == "blockcypher"
        assert result.failures[0].kind == MALFORMED

    @pytest.mark.asyncio
    async def test_no_merging_across_providers(self, orchestrator_for):
        """Esplora's answer stands alone even though earlier providers were tried"""
        routes = provider_routes()
        routes[f"blockchain.info/rawaddr/{ADDRESS}"] = httpx.Response(500)
        routes[f"api.blockcypher.com/v1/btc/main/addrs/{ADDRESS}"] = httpx.Response(500)
        orchestrator = orchestrator_for(routes)

        result = await orchestrator.ingest(ADDRESS)

        assert result.provider == "esplora"
        assert result.snapshot.transaction_count == 3
        assert result.snapshot.unconfirmed_balance == Decimal("0.1")
        assert len(result.snapshot.transactions) == 3
        assert len(result.failures) == 2

    @pytest.mark.asyncio
    async def test_custom_priority_order(self, orchestrator_for):
        hits = Counter()
        orchestrator = orchestrator_for(
            counting(provider_routes(), hits), order=["esplora", "blockchair"]
        )

        assert orchestrator.provider_names == ["esplora", "blockchair"]
        result = await orchestrator.ingest(ADDRESS)
        assert result.provider == "esplora"
        assert "api.blockchair.com" not in hits


class TestExhaustion:
    @pytest.mark.asyncio
    async def test_all_providers_fail(self, orchestrator_for):
        routes = provider_routes()
        routes[f"blockchain.info/rawaddr/{ADDRESS}"] = httpx.Response(503)
        routes[f"api.blockcypher.com/v1/btc/main/addrs/{ADDRESS}"] = httpx.Response(200, text="oops")
        routes[f"blockstream.info/api/address/{ADDRESS}"] = httpx.Response(404)
        orchestrator = orchestrator_for(routes)

        outcome = await orchestrator.ingest(ADDRESS)

        assert isinstance(outcome, IngestionExhausted)
        assert [(f.provider, f.kind) for f in outcome.failures] == [
            ("blockchain_info", TRANSPORT),
            ("blockcypher", MALFORMED),
            ("esplora", TRANSPORT),
        ]
        assert "All 3 blockchain providers failed" in outcome.message

    def test_empty_provider_list_is_rejected(self):
        with pytest.raises(ValueError):
            ProviderOrchestrator([])


class _CrashingNormalizer:
    def normalize(self, raw, address, observed_at=None):
        raise RuntimeError("unexpected payload layout")


class _StaticClient:
    def __init__(self, payload):
        self.payload = payload
        self.calls = 0

    async def fetch(self, address):
        self.calls += 1
        return self.payload


class _Provider:
    def __init__(self, name, client, normalizer):
        self.name = name
        self.client = client
        self.normalizer = normalizer


class TestOrchestrationRun:
    """State transitions PENDING -> TRYING -> SUCCEEDED | EXHAUSTED"""

    def test_starts_pending(self):
        run = OrchestrationRun(address=ADDRESS)
        assert run.state == OrchestratorState.PENDING
        assert run.current is None

    @pytest.mark.asyncio
    async def test_success_trace(self):
        failing = _StaticClient(ProviderFailure("first", TRANSPORT, "HTTP 503"))
        healthy = _StaticClient(load_fixture("blockcypher_addrs.json"))
        unused = _StaticClient({})
        orchestrator = ProviderOrchestrator(
            [
                _Provider("first", failing, BlockCypherNormalizer()),
                _Provider("second", healthy, BlockCypherNormalizer()),
                _Provider("third", unused, BlockCypherNormalizer()),
            ]
        )
        run = OrchestrationRun(address=ADDRESS)

        result = await orchestrator.ingest(ADDRESS, run=run)

        assert result.provider == "second"
        assert run.state == OrchestratorState.SUCCEEDED
        assert run.current == "second"
        assert run.attempted == ["first", "second"]
        assert unused.calls == 0

    @pytest.mark.asyncio
    async def test_crashing_normalizer_counts_as_malformed(self):
        orchestrator = ProviderOrchestrator(
            [_Provider("only", _StaticClient({"anything": 1}), _CrashingNormalizer())]
        )
        run = OrchestrationRun(address=ADDRESS)

        outcome = await orchestrator.ingest(ADDRESS, run=run)

        assert isinstance(outcome, IngestionExhausted)
        assert outcome.failures[0].kind == MALFORMED
        assert "unexpected payload layout" in outcome.failures[0].reason
        assert run.state == OrchestratorState.EXHAUSTED
        assert run.current is None
        assert run.attempted == ["only"]
