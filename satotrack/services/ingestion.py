"""Wallet ingestion entry point: validate, orchestrate, persist"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Union

from satotrack.config import IngestionConfig
from satotrack.errors import IngestionExhausted, PersistenceReport
from satotrack.models.api import (
    IngestionFailureResponse,
    PersistenceData,
    ProviderFailureData,
    WalletRefreshResponse,
)
from satotrack.storage.gateway import PersistenceGateway

from .orchestrator import IngestionResult, ProviderOrchestrator
from .providers import ProviderHttpClientFactory, build_providers

logger = logging.getLogger(__name__)

ADDRESS_PATTERNS = {
    "legacy": re.compile(r"^1[a-km-zA-HJ-NP-Z1-9]{25,34}$"),
    "p2sh": re.compile(r"^3[a-km-zA-HJ-NP-Z1-9]{25,34}$"),
    "taproot": re.compile(r"^(bc1p|tb1p)[ac-hj-np-z02-9]{58}$"),
    "bech32": re.compile(r"^(bc1|tb1)[ac-hj-np-z02-9]{25,87}$"),
}


def canonical_address(address: str) -> str:
    """
    Lower-case an all-upper-case bech32 address (the QR code form).

    Mixed case is left alone so validation rejects it.
    """
    lowered = address.lower()
    if lowered.startswith(("bc1", "tb1")) and address == address.upper():
        return lowered
    return address


def detect_address_type(address: str) -> Optional[str]:
    """Return the Bitcoin address family, or None if it does not look like one."""
    for kind, pattern in ADDRESS_PATTERNS.items():
        if pattern.match(address):
            return kind
    return None


@dataclass
class InvalidRequest:
    error: str


class WalletIngestionService:
    """
    Serves one ingestion request at a time per call; holds no per-address
    state so calls for different addresses can run concurrently.
    """

    def __init__(
        self,
        orchestrator: ProviderOrchestrator,
        gateway: Optional[PersistenceGateway] = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.gateway = gateway

    @classmethod
    def from_config(
        cls,
        config: IngestionConfig,
        http: ProviderHttpClientFactory,
        gateway: Optional[PersistenceGateway] = None,
    ) -> "WalletIngestionService":
        return cls(ProviderOrchestrator(build_providers(config, http)), gateway)

    async def refresh(
        self,
        address: str,
        wallet_id: Optional[str] = None,
    ) -> Union[WalletRefreshResponse, IngestionFailureResponse]:
        address = canonical_address((address or "").strip())
        invalid = self.validate(address, wallet_id)
        if invalid is not None:
            logger.info("Rejected ingestion request: %s", invalid.error)
            return IngestionFailureResponse(error=invalid.error)

        logger.info("Fetching wallet data for %s", address)
        outcome = await self.orchestrator.ingest(address)

        if isinstance(outcome, IngestionExhausted):
            return IngestionFailureResponse(
                error=outcome.message,
                provider_failures=[
                    ProviderFailureData(**failure.to_dict()) for failure in outcome.failures
                ],
            )

        persistence = None
        if wallet_id:
            persistence = await self._persist(outcome, wallet_id)

        return WalletRefreshResponse(
            provider=outcome.provider,
            snapshot=outcome.snapshot,
            persistence=persistence,
        )

    @staticmethod
    def validate(address: str, wallet_id: Optional[str]) -> Optional[InvalidRequest]:
        if not address:
            return InvalidRequest("Bitcoin address not provided")
        if detect_address_type(address) is None:
            return InvalidRequest(f"Not a valid Bitcoin address: {address}")
        if wallet_id is not None and not wallet_id.strip():
            return InvalidRequest("wallet_id must not be blank")
        return None

    async def _persist(self, outcome: IngestionResult, wallet_id: str) -> PersistenceData:
        if self.gateway is None:
            report = PersistenceReport(
                wallet_id=wallet_id,
                aggregate_error="storage not configured",
                transactions_error="storage not configured",
            )
        else:
            report = await self.gateway.persist(outcome.snapshot, wallet_id, provider=outcome.provider)
        if not report.ok:
            logger.warning("Snapshot for %s served but not fully stored: %s", wallet_id, report.errors)
        return PersistenceData(
            wallet_id=report.wallet_id,
            ok=report.ok,
            aggregate_updated=report.aggregate_updated,
            transactions_inserted=report.transactions_inserted,
            errors=report.errors,
        )
