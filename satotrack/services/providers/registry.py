"""Builds the priority-ordered provider list from configuration"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple, Type

from satotrack.config import IngestionConfig, ProviderEndpointConfig

from .base import Normalizer, ProviderClient
from .blockchain_info import BlockchainInfoClient, BlockchainInfoNormalizer
from .blockchair import BlockchairClient, BlockchairNormalizer
from .blockcypher import BlockCypherClient, BlockCypherNormalizer
from .esplora import EsploraClient, EsploraNormalizer
from .http import ProviderHttpClientFactory

PROVIDER_TYPES: Dict[str, Tuple[Type[ProviderClient], Type[Normalizer]]] = {
    "blockchain_info": (BlockchainInfoClient, BlockchainInfoNormalizer),
    "blockcypher": (BlockCypherClient, BlockCypherNormalizer),
    "esplora": (EsploraClient, EsploraNormalizer),
    "blockchair": (BlockchairClient, BlockchairNormalizer),
}


@dataclass
class Provider:
    """A client paired with the normalizer for its payload shape"""

    name: str
    client: ProviderClient
    normalizer: Normalizer


def build_providers(config: IngestionConfig, http: ProviderHttpClientFactory) -> List[Provider]:
    """Instantiate providers in ``config.provider_priority_order``."""
    defaults = IngestionConfig.from_settings().endpoints
    providers: List[Provider] = []
    for name in config.provider_priority_order:
        client_cls, normalizer_cls = PROVIDER_TYPES[name]
        base = config.endpoints.get(name) or defaults[name]
        endpoint = ProviderEndpointConfig(
            name=name,
            base_url=base.base_url,
            timeout=config.timeout_seconds,
            tx_limit=base.tx_limit,
            api_key=base.api_key,
        )
        providers.append(
            Provider(
                name=name,
                client=client_cls(endpoint, http),
                normalizer=normalizer_cls(unit_scale=config.unit_scale),
            )
        )
    return providers
