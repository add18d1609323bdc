"""Explorer B: BlockCypher address endpoint (summary plus a flat list of UTXO references)"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

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

logger = logging.getLogger(__name__)


class BlockCypherClient(ProviderClient):
    name = "blockcypher"

    async def _fetch(self, address: str) -> RawPayload:
        params: Dict[str, Any] = {"limit": self.endpoint.tx_limit}
        if self.endpoint.api_key:
            params["token"] = self.endpoint.api_key
        data = await self._get_json(f"/addrs/{address}", params=params)
        if not isinstance(data, dict):
            raise MalformedResponse("addrs did not return an object")
        return data


class BlockCypherNormalizer(Normalizer):
    """
    BlockCypher reports one ``txref`` per input or output of the address, so
    a transaction that both spends from and pays back to the address shows
    up as several refs sharing a ``tx_hash``. Refs are grouped by hash
    before classification.

    ``tx_input_n >= 0`` marks a ref spent as an input (value leaving);
    ``tx_output_n >= 0`` marks an output paying the address.
    """

    provider = "blockcypher"

    def _summary(self, raw: RawPayload, address: str) -> WalletTotals:
        return WalletTotals(
            balance=coerce_base_units(raw["balance"]),
            total_received=coerce_base_units(raw["total_received"]),
            total_sent=coerce_base_units(raw["total_sent"]),
            transaction_count=coerce_base_units(raw["n_tx"]),
            unconfirmed_balance=coerce_base_units(raw.get("unconfirmed_balance") or 0),
        )

    def _entries(self, raw: RawPayload, address: str) -> Iterable[Any]:
        refs: List[Any] = []
        for key in ("unconfirmed_txrefs", "txrefs"):
            chunk = raw.get(key) or []
            if not isinstance(chunk, list):
                raise TypeError(f"{key} is not a list")
            refs.extend(chunk)

        groups: Dict[str, List[Dict[str, Any]]] = {}
        for ref in refs:
            tx_hash = ref.get("tx_hash") if isinstance(ref, dict) else None
            if not isinstance(tx_hash, str) or not tx_hash:
                logger.warning("Skipping blockcypher txref without tx_hash: %r", ref)
                continue
            groups.setdefault(tx_hash, []).append(ref)
        return list(groups.items())

    def _normalize_entry(
        self, entry: Any, address: str, observed_at: datetime
    ) -> Optional[NormalizedTransaction]:
        tx_hash, refs = entry
        flow = AddressFlow()
        block_height: Optional[int] = None
        confirmations: Optional[int] = None
        block_time: Optional[datetime] = None
        double_spend: Optional[bool] = None

        for ref in refs:
            value = coerce_base_units(ref["value"])
            input_n = optional_int(ref.get("tx_input_n"))
            output_n = optional_int(ref.get("tx_output_n"))
            if input_n is not None and input_n >= 0:
                flow.add_input(value)
            elif output_n is not None and output_n >= 0:
                flow.add_output(value)
            else:
                raise ValueError(f"txref for {tx_hash} is neither input nor output")

            height = optional_int(ref.get("block_height"))
            if height is not None and height >= 0:
                block_height = height
            ref_confirmations = optional_int(ref.get("confirmations"))
            if ref_confirmations is not None:
                confirmations = max(confirmations or 0, ref_confirmations)
            if isinstance(ref.get("double_spend"), bool):
                double_spend = bool(double_spend) or ref["double_spend"]
            if block_time is None and ref.get("confirmed"):
                block_time = from_iso(ref["confirmed"])

        if block_height is None:
            confirmations = 0
            block_time = None

        return self.build_transaction(
            tx_hash,
            flow,
            observed_at,
            block_time=block_time,
            confirmations=confirmations,
            block_height=block_height,
            double_spend=double_spend,
        )
