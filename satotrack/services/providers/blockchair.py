"""Explorer D: Blockchair address dashboard (optional, not in the default priority order)"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from satotrack.errors import MalformedResponse
from satotrack.models.wallet import NormalizedTransaction
from satotrack.services.units import coerce_base_units

from .base import (
    AddressFlow,
    Normalizer,
    ProviderClient,
    RawPayload,
    WalletTotals,
    from_iso,
    optional_int,
)


def _address_entry(raw: RawPayload, address: str) -> Dict[str, Any]:
    data = raw["data"]
    # Blockchair keys bech32 addresses in lower case
    entry = data.get(address) or data.get(address.lower())
    if entry is None:
        raise KeyError(f"no data for {address}")
    return entry


class BlockchairClient(ProviderClient):
    name = "blockchair"

    async def _fetch(self, address: str) -> RawPayload:
        params: Dict[str, Any] = {"limit": self.endpoint.tx_limit}
        if self.endpoint.api_key:
            params["key"] = self.endpoint.api_key
        data = await self._get_json(f"/dashboards/address/{address}", params=params)
        if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
            raise MalformedResponse("dashboard did not return a data object")
        return data


class BlockchairNormalizer(Normalizer):
    """
    Blockchair reports one signed ``balance_change`` per transaction rather
    than inputs and outputs, so each entry is already the net effect on the
    address.
    """

    provider = "blockchair"

    def _summary(self, raw: RawPayload, address: str) -> WalletTotals:
        summary = _address_entry(raw, address)["address"]
        return WalletTotals(
            balance=coerce_base_units(summary["balance"]),
            total_received=coerce_base_units(summary["received"]),
            total_sent=coerce_base_units(summary["spent"]),
            transaction_count=coerce_base_units(summary["transaction_count"]),
        )

    def _entries(self, raw: RawPayload, address: str) -> Iterable[Any]:
        txs = _address_entry(raw, address).get("transactions") or []
        if not isinstance(txs, list):
            raise TypeError("transactions is not a list")
        return txs

    def _normalize_entry(
        self, entry: Any, address: str, observed_at: datetime
    ) -> Optional[NormalizedTransaction]:
        flow = AddressFlow.from_net(coerce_base_units(entry["balance_change"]))
        block_id = optional_int(entry.get("block_id"))
        confirmed = block_id is not None and block_id >= 0
        block_time = from_iso(entry["time"]) if confirmed and entry.get("time") else None
        return self.build_transaction(
            entry["hash"],
            flow,
            observed_at,
            block_time=block_time,
            confirmations=None if confirmed else 0,
            block_height=block_id if confirmed else None,
        )
