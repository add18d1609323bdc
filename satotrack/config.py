"""Application configuration"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


KNOWN_PROVIDERS = ("blockchain_info", "blockcypher", "esplora", "blockchair")


@dataclass
class ProviderEndpointConfig:
    """
    Lightweight description of one blockchain data provider.
    Used by the provider registry to build HTTP clients.
    """

    name: str
    base_url: str
    timeout: float  # seconds
    tx_limit: int = 50
    api_key: Optional[str] = None


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Provider fallback order (explorer A, B, C by default)
    provider_priority_order: List[str] = ["blockchain_info", "blockcypher", "esplora"]
    provider_timeout_ms: int = 5000  # Bounded per-provider call timeout
    provider_tx_limit: int = 50  # Page size requested from each provider
    unit_scale: int = 100_000_000  # Satoshis per BTC

    # Provider endpoints
    blockchain_info_url: str = "https://blockchain.info"
    blockcypher_url: str = "https://api.blockcypher.com/v1/btc/main"
    blockcypher_token: str = ""
    esplora_url: str = "https://blockstream.info/api"
    blockchair_url: str = "https://api.blockchair.com/bitcoin"
    blockchair_api_key: str = ""
    http_user_agent: str = "SatoTrack/0.1 (+wallet-ingestion)"

    # Storage
    database_url: str = "sqlite+aiosqlite:///./satotrack.db"
    database_echo: bool = False

    # API
    api_title: str = "SatoTrack Ingestion API"
    api_version: str = "0.1.0"

    # CORS
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Logging
    log_level: str = "INFO"


@dataclass
class IngestionConfig:
    """
    Configuration object handed to the ingestion pipeline.

    ``provider_priority_order`` lists provider names in the order they are
    tried. ``unit_scale`` is the number of base units per major unit and must
    be a positive power of ten.
    """

    provider_priority_order: List[str]
    per_provider_timeout_ms: int = 5000
    unit_scale: int = 100_000_000
    endpoints: Dict[str, ProviderEndpointConfig] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.provider_priority_order:
            raise ValueError("provider_priority_order must name at least one provider")
        unknown = [name for name in self.provider_priority_order if name not in KNOWN_PROVIDERS]
        if unknown:
            raise ValueError(f"Unknown providers in priority order: {', '.join(unknown)}")
        if len(set(self.provider_priority_order)) != len(self.provider_priority_order):
            raise ValueError("provider_priority_order contains duplicates")
        if self.per_provider_timeout_ms <= 0:
            raise ValueError("per_provider_timeout_ms must be positive")
        if self.unit_scale <= 0 or str(self.unit_scale).rstrip("0") != "1":
            raise ValueError(f"unit_scale must be a positive power of ten, got {self.unit_scale}")

    @property
    def timeout_seconds(self) -> float:
        return self.per_provider_timeout_ms / 1000.0

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "IngestionConfig":
        source = source or settings
        timeout = source.provider_timeout_ms / 1000.0
        endpoints = {
            "blockchain_info": ProviderEndpointConfig(
                name="blockchain_info",
                base_url=source.blockchain_info_url,
                timeout=timeout,
                tx_limit=source.provider_tx_limit,
            ),
            "blockcypher": ProviderEndpointConfig(
                name="blockcypher",
                base_url=source.blockcypher_url,
                timeout=timeout,
                tx_limit=source.provider_tx_limit,
                api_key=source.blockcypher_token or None,
            ),
            "esplora": ProviderEndpointConfig(
                name="esplora",
                base_url=source.esplora_url,
                timeout=timeout,
                tx_limit=source.provider_tx_limit,
            ),
            "blockchair": ProviderEndpointConfig(
                name="blockchair",
                base_url=source.blockchair_url,
                timeout=timeout,
                tx_limit=source.provider_tx_limit,
                api_key=source.blockchair_api_key or None,
            ),
        }
        return cls(
            provider_priority_order=list(source.provider_priority_order),
            per_provider_timeout_ms=source.provider_timeout_ms,
            unit_scale=source.unit_scale,
            endpoints=endpoints,
        )


# Global settings instance
settings = Settings()
