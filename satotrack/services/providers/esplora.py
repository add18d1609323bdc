"""Explorer C: Esplora / mempool.space API (separate address-stats and tx-list calls)"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional

from satotrack.errors import MalformedResponse
from satotrack.models.wallet import NormalizedTransaction
from satotrack.services.units import coerce_base_units

from .base import (
    AddressFlow,
    Normalizer,
    ProviderClient,
    RawPayload,
    WalletTotals,
    confirmations_from_tip,
    from_unix,
    optional_int,
)


class EsploraClient(ProviderClient):
    """
    Combines ``/address/{a}`` and ``/address/{a}/txs`` into one payload:
    ``{"address": ..., "txs": [...], "tip_height": int | None}``.

    Both address calls must succeed. The chain tip is only used to compute
    confirmations, so a failed tip lookup leaves ``tip_height`` as None.
    """

    name = "esplora"

    async def _fetch(self, address: str) -> RawPayload:
        summary = await self._get_json(f"/address/{address}")
        if not isinstance(summary, dict):
            raise MalformedResponse("address stats did not return an object")
        txs = await self._get_json(f"/address/{address}/txs")
        if not isinstance(txs, list):
            raise MalformedResponse("address txs did not return a list")
        tip_height = await self._tip_height("/blocks/tip/height")
        return {"address": summary, "txs": txs, "tip_height": tip_height}


class EsploraNormalizer(Normalizer):
    """
    Transactions carry ``vin[].prevout`` and ``vout[]`` entries keyed by
    ``scriptpubkey_address``. Aggregates are derived from ``chain_stats``
    (confirmed) and ``mempool_stats`` (pending).
    """

    provider = "esplora"

    def _summary(self, raw: RawPayload, address: str) -> WalletTotals:
        chain = raw["address"]["chain_stats"]
        mempool = raw["address"].get("mempool_stats") or {}
        funded = coerce_base_units(chain["funded_txo_sum"])
        spent = coerce_base_units(chain["spent_txo_sum"])
        return WalletTotals(
            balance=funded - spent,
            total_received=funded,
            total_sent=spent,
            transaction_count=coerce_base_units(chain["tx_count"]),
            unconfirmed_balance=coerce_base_units(mempool.get("funded_txo_sum") or 0)
            - coerce_base_units(mempool.get("spent_txo_sum") or 0),
        )

    def _entries(self, raw: RawPayload, address: str) -> Iterable[Any]:
        txs = raw.get("txs") or []
        if not isinstance(txs, list):
            raise TypeError("txs is not a list")
        tip = optional_int(raw.get("tip_height"))
        return [(tx, tip) for tx in txs]

    def _normalize_entry(
        self, entry: Any, address: str, observed_at: datetime
    ) -> Optional[NormalizedTransaction]:
        tx, tip = entry
        flow = AddressFlow()
        for vin in tx.get("vin") or []:
            prevout = vin.get("prevout")
            if prevout and prevout.get("scriptpubkey_address") == address:
                flow.add_input(coerce_base_units(prevout["value"]))
        for vout in tx.get("vout") or []:
            if vout.get("scriptpubkey_address") == address:
                flow.add_output(coerce_base_units(vout["value"]))

        status = tx.get("status") or {}
        block_height = optional_int(status.get("block_height")) if status.get("confirmed") else None
        block_time = None
        confirmations = 0
        if block_height is not None:
            if status.get("block_time") is not None:
                block_time = from_unix(status["block_time"])
            confirmations = confirmations_from_tip(tip, block_height)

        return self.build_transaction(
            tx["txid"],
            flow,
            observed_at,
            block_time=block_time,
            fee=tx.get("fee"),
            confirmations=confirmations,
            block_height=block_height,
        )
