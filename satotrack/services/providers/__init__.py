"""
Blockchain data providers.

Each provider pairs a ``ProviderClient`` (raw HTTP fetch) with a
``Normalizer`` (raw payload -> ``WalletSnapshot``). Higher-level services
should import from this package rather than individual submodules.
"""

from .base import AddressFlow, Normalizer, ProviderClient, RawPayload, WalletTotals
from .http import ProviderHttpClientFactory
from .registry import PROVIDER_TYPES, Provider, build_providers

__all__ = [
    "AddressFlow",
    "Normalizer",
    "ProviderClient",
    "RawPayload",
    "WalletTotals",
    "ProviderHttpClientFactory",
    "PROVIDER_TYPES",
    "Provider",
    "build_providers",
]
