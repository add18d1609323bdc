"""
Provider orchestration.

Providers are tried one at a time in priority order. The first provider
whose fetch and normalization both succeed answers the request; its snapshot
is returned unchanged. Snapshots from different providers are never merged,
because their transaction pages cover different windows.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union

from satotrack.errors import (
    MALFORMED,
    IngestionExhausted,
    MalformedResponse,
    ProviderFailure,
)
from satotrack.models.wallet import WalletSnapshot

from .providers import Provider

logger = logging.getLogger(__name__)


class OrchestratorState(str, Enum):
    PENDING = "pending"
    TRYING = "trying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass
class IngestionResult:
    """Snapshot plus the provider that produced it"""

    provider: str
    snapshot: WalletSnapshot
    failures: List[ProviderFailure] = field(default_factory=list)


@dataclass
class OrchestrationRun:
    """Trace of one orchestration, kept for diagnostics and tests"""

    address: str
    state: OrchestratorState = OrchestratorState.PENDING
    current: Optional[str] = None
    attempted: List[str] = field(default_factory=list)
    failures: List[ProviderFailure] = field(default_factory=list)

    def trying(self, provider: str) -> None:
        self.state = OrchestratorState.TRYING
        self.current = provider
        self.attempted.append(provider)

    def failed(self, failure: ProviderFailure) -> None:
        self.failures.append(failure)

    def succeeded(self) -> None:
        self.state = OrchestratorState.SUCCEEDED

    def exhausted(self) -> None:
        self.state = OrchestratorState.EXHAUSTED
        self.current = None


class ProviderOrchestrator:
    """Sequential fallback across providers"""

    def __init__(self, providers: List[Provider]) -> None:
        if not providers:
            raise ValueError("ProviderOrchestrator needs at least one provider")
        self._providers = list(providers)

    @property
    def provider_names(self) -> List[str]:
        return [provider.name for provider in self._providers]

    async def ingest(
        self,
        address: str,
        run: Optional[OrchestrationRun] = None,
    ) -> Union[IngestionResult, IngestionExhausted]:
        """
        Resolve ``address`` through the first provider that succeeds.

        Pass ``run`` to observe the state transitions of this call.
        """
        run = run or OrchestrationRun(address=address)
        started = time.perf_counter()

        for provider in self._providers:
            run.trying(provider.name)
            logger.debug("Trying %s for %s", provider.name, address)

            payload = await provider.client.fetch(address)
            if isinstance(payload, ProviderFailure):
                run.failed(payload)
                logger.warning(
                    "Provider %s failed for %s (%s: %s) - trying next provider",
                    provider.name,
                    address,
                    payload.kind,
                    payload.reason,
                )
                continue

            observed_at = datetime.now(timezone.utc)
            try:
                snapshot = provider.normalizer.normalize(payload, address, observed_at=observed_at)
            except MalformedResponse as exc:
                run.failed(ProviderFailure.from_exception(provider.name, exc))
                logger.warning(
                    "Provider %s returned an unusable payload for %s: %s - trying next provider",
                    provider.name,
                    address,
                    exc,
                )
                continue
            except Exception as exc:
                run.failed(ProviderFailure(provider=provider.name, kind=MALFORMED, reason=repr(exc)))
                logger.error(
                    "Normalizer for %s crashed on %s: %s", provider.name, address, exc, exc_info=True
                )
                continue

            run.succeeded()
            logger.info(
                "Address %s resolved via %s in %.2fs (%d txs, %d failed providers)",
                address,
                provider.name,
                time.perf_counter() - started,
                len(snapshot.transactions),
                len(run.failures),
            )
            return IngestionResult(provider=provider.name, snapshot=snapshot, failures=list(run.failures))

        run.exhausted()
        logger.error(
            "All providers failed for %s (tried: %s)",
            address,
            ", ".join(run.attempted),
        )
        return IngestionExhausted(address=address, failures=list(run.failures))
