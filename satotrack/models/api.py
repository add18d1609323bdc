"""API request and response models"""

from typing import List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .wallet import WalletSnapshot


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Request Models


class WalletRefreshRequest(BaseModel):
    """Request to ingest one wallet address"""

    address: str = Field(..., description="Bitcoin address to ingest")
    wallet_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("wallet_id", "walletId"),
        description="Wallet row to update; nothing is persisted when omitted",
    )


# Response Models


class ProviderFailureData(_CamelModel):
    """One provider's failure, for diagnostics"""

    provider: str = Field(..., description="Provider name")
    kind: str = Field(..., description="transport or malformed")
    reason: str = Field(..., description="Failure detail")


class PersistenceData(_CamelModel):
    """Result of writing the snapshot to storage"""

    wallet_id: str
    ok: bool
    aggregate_updated: bool
    transactions_inserted: int
    errors: List[str] = Field(default_factory=list)


class WalletRefreshResponse(_CamelModel):
    """Successful ingestion"""

    success: bool = True
    provider: str = Field(..., description="Provider that answered")
    snapshot: WalletSnapshot
    persistence: Optional[PersistenceData] = Field(
        None, description="Storage outcome (None when no wallet_id was given)"
    )


class IngestionFailureResponse(_CamelModel):
    """Failed ingestion; never carries a partial snapshot"""

    success: bool = False
    error: str
    provider_failures: List[ProviderFailureData] = Field(default_factory=list)
