"""
Provider client and normalizer contracts.

Every blockchain data provider is modelled as a pair: a ``ProviderClient``
that fetches raw JSON for one address, and a ``Normalizer`` that reduces that
JSON to a ``WalletSnapshot``. Both are stateless; the orchestrator decides
which pair to use.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple, Union

import httpx

from satotrack.config import ProviderEndpointConfig
from satotrack.errors import (
    IngestionError,
    MalformedResponse,
    ProviderFailure,
    TRANSPORT,
    TransportFailure,
)
from satotrack.models.wallet import NormalizedTransaction, TransactionType, WalletSnapshot
from satotrack.services.units import coerce_base_units, to_major

from .http import ProviderHttpClientFactory

logger = logging.getLogger(__name__)

RawPayload = Dict[str, Any]


class ProviderClient(ABC):
    """
    Fetches the raw payload for one address from one HTTP provider.

    ``fetch`` never raises: any transport error, non-2xx status, timeout or
    undecodable body is returned as a ``ProviderFailure``. There are no
    retries here; fallback is the orchestrator's job.
    """

    name: str = "provider"

    def __init__(self, endpoint: ProviderEndpointConfig, http: ProviderHttpClientFactory) -> None:
        self.endpoint = endpoint
        self._http = http

    @abstractmethod
    async def _fetch(self, address: str) -> RawPayload:
        """Perform the provider-specific HTTP calls."""

    async def fetch(self, address: str) -> Union[RawPayload, ProviderFailure]:
        try:
            payload = await asyncio.wait_for(self._fetch(address), timeout=self.endpoint.timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Provider %s timed out after %.2fs for %s", self.name, self.endpoint.timeout, address
            )
            return ProviderFailure(
                provider=self.name,
                kind=TRANSPORT,
                reason=f"timed out after {self.endpoint.timeout:.2f}s",
            )
        except IngestionError as exc:
            logger.warning("Provider %s failed for %s: %s", self.name, address, exc)
            return ProviderFailure.from_exception(self.name, exc)
        except httpx.HTTPError as exc:
            logger.warning("Provider %s transport error for %s: %s", self.name, address, exc)
            return ProviderFailure(
                provider=self.name,
                kind=TRANSPORT,
                reason=f"{exc.__class__.__name__}: {exc}",
            )
        logger.debug("✅ %s answered for %s", self.name, address)
        return payload

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        client = await self._http.get_client(self.endpoint)
        response = await client.get(path, params=params)
        if response.status_code < 200 or response.status_code >= 300:
            raise TransportFailure(f"HTTP {response.status_code} for {path}")
        return response

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._get(path, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponse(f"Invalid JSON body for {path}") from exc

    async def _tip_height(self, path: str) -> Optional[int]:
        """
        Current chain height from a plain-text endpoint.

        Only used to derive confirmations, so a failed lookup yields None
        instead of failing the provider.
        """
        try:
            response = await self._get(path)
            return int(response.text.strip())
        except (IngestionError, httpx.HTTPError, ValueError) as exc:
            logger.debug("%s tip height unavailable: %s", self.name, exc)
            return None


@dataclass
class WalletTotals:
    """Address-level summary in base units"""

    balance: int
    total_received: int
    total_sent: int
    transaction_count: int
    unconfirmed_balance: int = 0


@dataclass
class AddressFlow:
    """
    Value moved to and from the queried address within one transaction.

    ``value_out`` sums spent inputs owned by the address, ``value_in`` sums
    outputs paying the address. The touched flags record membership even
    when the matched value is zero.
    """

    value_in: int = 0
    value_out: int = 0
    in_outputs: bool = False
    in_inputs: bool = False

    def add_input(self, value: int) -> None:
        self.value_out += value
        self.in_inputs = True

    def add_output(self, value: int) -> None:
        self.value_in += value
        self.in_outputs = True

    @classmethod
    def from_net(cls, net: int) -> "AddressFlow":
        """Flow for providers that only report a signed balance change."""
        return cls(
            value_in=max(net, 0),
            value_out=max(-net, 0),
            in_outputs=True,
            in_inputs=True,
        )

    def classify(self) -> Optional[Tuple[int, TransactionType]]:
        """Net amount and direction, or None if the address is not involved."""
        if self.in_inputs and self.in_outputs:
            net = self.value_in - self.value_out
            if net > 0:
                return net, TransactionType.INCOMING
            # net == 0 stays in the list as a zero-amount outgoing entry
            return -net, TransactionType.OUTGOING
        if self.in_outputs:
            return self.value_in, TransactionType.INCOMING
        if self.in_inputs:
            return self.value_out, TransactionType.OUTGOING
        return None


def from_unix(timestamp: Any) -> datetime:
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        raise ValueError(f"Invalid unix timestamp {timestamp!r}")
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OverflowError, OSError) as exc:
        raise ValueError(f"Out of range unix timestamp {timestamp!r}") from exc


def from_iso(value: Any) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"Invalid timestamp {value!r}")
    text = value.strip().replace(" ", "T", 1)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def confirmations_from_tip(tip: Optional[int], block_height: int) -> Optional[int]:
    if tip is None or tip < block_height:
        return None
    return tip - block_height + 1


def optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


class Normalizer(ABC):
    """
    Reduces one provider's raw payload to a ``WalletSnapshot``.

    Aggregates come from the provider's address summary; a summary that
    cannot be read is a ``MalformedResponse``. Individual transaction entries
    that cannot be read are skipped with a warning.
    """

    provider: str = "provider"

    def __init__(self, unit_scale: int = 100_000_000) -> None:
        self.unit_scale = unit_scale

    @abstractmethod
    def _summary(self, raw: RawPayload, address: str) -> WalletTotals:
        """Read address-level totals (base units)."""

    @abstractmethod
    def _entries(self, raw: RawPayload, address: str) -> Iterable[Any]:
        """Raw transaction entries in provider order."""

    @abstractmethod
    def _normalize_entry(
        self, entry: Any, address: str, observed_at: datetime
    ) -> Optional[NormalizedTransaction]:
        """Normalize one entry; None when it does not involve the address."""

    def normalize(
        self,
        raw: RawPayload,
        address: str,
        observed_at: Optional[datetime] = None,
    ) -> WalletSnapshot:
        observed_at = observed_at or datetime.now(timezone.utc)
        if not isinstance(raw, dict):
            raise MalformedResponse(f"{self.provider}: expected a JSON object, got {type(raw).__name__}")

        try:
            totals = self._summary(raw, address)
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponse(f"{self.provider}: unreadable address summary ({exc!r})") from exc

        try:
            entries = list(self._entries(raw, address))
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponse(f"{self.provider}: unreadable transaction list ({exc!r})") from exc

        transactions = []
        skipped = 0
        for entry in entries:
            try:
                tx = self._normalize_entry(entry, address, observed_at)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                skipped += 1
                logger.warning("Skipping malformed %s transaction for %s: %r", self.provider, address, exc)
                continue
            if tx is None:
                logger.debug("Dropping %s transaction unrelated to %s", self.provider, address)
                continue
            transactions.append(tx)

        logger.debug(
            "Processed %d/%d %s transactions for %s (%d skipped)",
            len(transactions),
            len(entries),
            self.provider,
            address,
            skipped,
        )

        return WalletSnapshot(
            address=address,
            balance=self.major(totals.balance),
            total_received=self.major(totals.total_received),
            total_sent=self.major(totals.total_sent),
            transaction_count=totals.transaction_count,
            unconfirmed_balance=self.major(totals.unconfirmed_balance),
            transactions=transactions,
        )

    def major(self, base_units: Any) -> Decimal:
        return to_major(coerce_base_units(base_units), self.unit_scale)

    def build_transaction(
        self,
        tx_hash: Any,
        flow: AddressFlow,
        observed_at: datetime,
        block_time: Optional[datetime] = None,
        fee: Any = None,
        confirmations: Optional[int] = None,
        block_height: Optional[int] = None,
        double_spend: Optional[bool] = None,
    ) -> Optional[NormalizedTransaction]:
        if not isinstance(tx_hash, str) or not tx_hash:
            raise ValueError(f"Missing transaction hash: {tx_hash!r}")
        classified = flow.classify()
        if classified is None:
            return None
        amount, tx_type = classified
        return NormalizedTransaction(
            hash=tx_hash,
            amount=to_major(amount, self.unit_scale),
            type=tx_type,
            occurred_at=block_time or observed_at,
            occurred_at_estimated=block_time is None,
            fee=self.major(fee) if fee is not None else None,
            confirmations=confirmations,
            block_height=block_height,
            double_spend=double_spend,
        )
