"""Canonical wallet models"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TransactionType(str, Enum):
    """Net effect of a transaction on the queried address"""

    INCOMING = "incoming"
    OUTGOING = "outgoing"


class NormalizedTransaction(BaseModel):
    """One ledger event as seen from the queried address only"""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    hash: str = Field(..., description="Provider-reported transaction ID")
    amount: Decimal = Field(..., ge=0, description="Net effect magnitude in major units")
    type: TransactionType = Field(..., description="Classification of the net effect")
    occurred_at: datetime = Field(..., description="Block time, or request time if unconfirmed")
    occurred_at_estimated: bool = Field(
        default=False, description="True when occurred_at is the request time fallback"
    )
    fee: Optional[Decimal] = Field(None, description="Network fee in major units")
    confirmations: Optional[int] = Field(
        None, description="Number of confirmations (None if the chain tip was unavailable)"
    )
    block_height: Optional[int] = Field(None, description="Block height (None if unconfirmed)")
    double_spend: Optional[bool] = Field(
        None, description="Provider flagged a conflicting spend (None if not reported)"
    )


class WalletSnapshot(BaseModel):
    """Provider-agnostic state of one address at query time"""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    address: str = Field(..., description="Queried address")
    balance: Decimal = Field(..., description="Confirmed balance in major units")
    total_received: Decimal = Field(..., description="Lifetime inflow in major units")
    total_sent: Decimal = Field(..., description="Lifetime outflow in major units")
    transaction_count: int = Field(..., ge=0, description="Transactions reported by the provider")
    unconfirmed_balance: Decimal = Field(
        default=Decimal(0), description="Pending balance delta (may be negative)"
    )
    transactions: List[NormalizedTransaction] = Field(
        default_factory=list, description="Normalized transactions, provider order"
    )
