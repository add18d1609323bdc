"""SQLAlchemy models for wallet storage"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

AMOUNT = Numeric(20, 8)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class WalletModel(Base):
    """Aggregate row for a tracked wallet (last write wins)."""

    __tablename__ = "bitcoin_wallets"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    address: Mapped[str] = mapped_column(String(128), nullable=False)

    balance: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False, default=Decimal(0))
    total_received: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False, default=Decimal(0))
    total_sent: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False, default=Decimal(0))
    transaction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unconfirmed_balance: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False, default=Decimal(0))

    provider: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    last_successful_update: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (Index("idx_bitcoin_wallets_address", "address"),)


class WalletTransactionModel(Base):
    """
    One normalized transaction per (wallet_id, hash).

    Rows are written once and never updated.
    """

    __tablename__ = "wallet_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    wallet_id: Mapped[str] = mapped_column(String(64), nullable=False)
    hash: Mapped[str] = mapped_column(String(128), nullable=False)

    amount: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(16), nullable=False)
    transaction_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    date_estimated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    fee: Mapped[Optional[Decimal]] = mapped_column(AMOUNT, nullable=True)
    confirmations: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    block_height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    double_spend: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("wallet_id", "hash", name="uq_wallet_transactions_wallet_hash"),
        Index("idx_wallet_transactions_wallet_id", "wallet_id"),
    )
