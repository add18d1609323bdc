"""Error taxonomy for the wallet ingestion pipeline"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class IngestionError(Exception):
    """Base class for failures raised inside pipeline components"""


class TransportFailure(IngestionError):
    """Network, timeout or non-2xx HTTP failure talking to a provider"""


class MalformedResponse(IngestionError):
    """Provider payload does not match the expected shape"""


class PersistenceFailure(IngestionError):
    """Storage write error"""


TRANSPORT = "transport"
MALFORMED = "malformed"


@dataclass
class ProviderFailure:
    """Why a single provider could not produce a snapshot"""

    provider: str
    kind: str
    reason: str

    @classmethod
    def from_exception(cls, provider: str, exc: IngestionError) -> "ProviderFailure":
        kind = MALFORMED if isinstance(exc, MalformedResponse) else TRANSPORT
        return cls(provider=provider, kind=kind, reason=str(exc) or exc.__class__.__name__)

    def to_dict(self) -> Dict[str, Any]:
        return {"provider": self.provider, "kind": self.kind, "reason": self.reason}


@dataclass
class IngestionExhausted:
    """Every configured provider failed for an address"""

    address: str
    failures: List[ProviderFailure] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"All {len(self.failures)} blockchain providers failed for {self.address}"


@dataclass
class PersistenceReport:
    """
    Outcome of the two independent storage writes.

    The aggregate update and the transaction upsert are not rolled back
    against each other; each carries its own error.
    """

    wallet_id: str
    aggregate_updated: bool = False
    transactions_inserted: int = 0
    aggregate_error: Optional[str] = None
    transactions_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.aggregate_error is None and self.transactions_error is None

    @property
    def errors(self) -> List[str]:
        return [err for err in (self.aggregate_error, self.transactions_error) if err]
