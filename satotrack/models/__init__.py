"""Data models for SatoTrack"""

from .wallet import (
    NormalizedTransaction,
    TransactionType,
    WalletSnapshot,
)
from .api import (
    IngestionFailureResponse,
    PersistenceData,
    ProviderFailureData,
    WalletRefreshRequest,
    WalletRefreshResponse,
)

__all__ = [
    "NormalizedTransaction",
    "TransactionType",
    "WalletSnapshot",
    "IngestionFailureResponse",
    "PersistenceData",
    "ProviderFailureData",
    "WalletRefreshRequest",
    "WalletRefreshResponse",
]
