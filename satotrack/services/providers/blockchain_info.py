"""Explorer A: blockchain.info ``rawaddr`` (address summary and transactions in one call)"""

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


class BlockchainInfoClient(ProviderClient):
    """
    rawaddr carries no per-transaction confirmations, so the chain height
    from `/q/getblockcount` is added to the payload as ``tip_height``.
    """

    name = "blockchain_info"

    async def _fetch(self, address: str) -> RawPayload:
        data = await self._get_json(
            f"/rawaddr/{address}",
            params={"limit": self.endpoint.tx_limit, "cors": "true"},
        )
        if not isinstance(data, dict):
            raise MalformedResponse("rawaddr did not return an object")
        data["tip_height"] = await self._tip_height("/q/getblockcount")
        return data


class BlockchainInfoNormalizer(Normalizer):
    """
    Transactions carry ``inputs[].prev_out`` and ``out[]`` entries, each with
    its own ``addr`` and ``value`` (satoshis).
    """

    provider = "blockchain_info"

    def _summary(self, raw: RawPayload, address: str) -> WalletTotals:
        return WalletTotals(
            balance=coerce_base_units(raw["final_balance"]),
            total_received=coerce_base_units(raw["total_received"]),
            total_sent=coerce_base_units(raw["total_sent"]),
            transaction_count=coerce_base_units(raw["n_tx"]),
            unconfirmed_balance=coerce_base_units(raw.get("unconfirmed_balance") or 0),
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
        for tx_input in tx.get("inputs") or []:
            prev_out = tx_input.get("prev_out")
            if prev_out and prev_out.get("addr") == address:
                flow.add_input(coerce_base_units(prev_out["value"]))
        for output in tx.get("out") or []:
            if output.get("addr") == address:
                flow.add_output(coerce_base_units(output["value"]))

        block_height = optional_int(tx.get("block_height"))
        block_time = None
        confirmations = 0
        if block_height is not None:
            if tx.get("time") is not None:
                block_time = from_unix(tx["time"])
            confirmations = confirmations_from_tip(tip, block_height)

        return self.build_transaction(
            tx["hash"],
            flow,
            observed_at,
            block_time=block_time,
            fee=tx.get("fee"),
            confirmations=confirmations,
            block_height=block_height,
        )
