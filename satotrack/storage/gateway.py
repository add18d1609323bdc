"""
Persistence gateway.

The only writer of wallet and transaction rows. The wallet aggregate and the
transaction history are written in two independent transactions: if one
fails the other is kept, and the next ingestion cycle converges the data.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from satotrack.errors import PersistenceFailure, PersistenceReport
from satotrack.models.wallet import NormalizedTransaction, WalletSnapshot

from .database import Database
from .models import AMOUNT, WalletModel, WalletTransactionModel

logger = logging.getLogger(__name__)

_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}

_AMOUNT_QUANTUM = Decimal(1).scaleb(-AMOUNT.scale)
_AMOUNT_LIMIT = Decimal(10) ** (AMOUNT.precision - AMOUNT.scale)

AGGREGATE_AMOUNTS = ("balance", "total_received", "total_sent", "unconfirmed_balance")


class PersistenceGateway:
    """Idempotent writes of ingestion results"""

    def __init__(self, database: Database) -> None:
        self.database = database

    def _insert(self, model):
        try:
            return _INSERTS[self.database.dialect](model)
        except KeyError:
            raise PersistenceFailure(
                f"Unsupported database dialect for upserts: {self.database.dialect}"
            ) from None

    async def persist(
        self,
        snapshot: WalletSnapshot,
        wallet_id: str,
        provider: Optional[str] = None,
    ) -> PersistenceReport:
        """Write the aggregate and the transactions; never raises."""
        report = PersistenceReport(wallet_id=wallet_id)

        try:
            await self.upsert_wallet_aggregate(wallet_id, snapshot, provider=provider)
            report.aggregate_updated = True
        except (SQLAlchemyError, PersistenceFailure, RuntimeError) as exc:
            report.aggregate_error = f"aggregate update failed: {exc}"
            logger.error("Wallet aggregate update failed for %s: %s", wallet_id, exc, exc_info=True)

        try:
            report.transactions_inserted = await self.upsert_transactions(
                wallet_id, snapshot.transactions
            )
        except (SQLAlchemyError, PersistenceFailure, RuntimeError) as exc:
            report.transactions_error = f"transaction upsert failed: {exc}"
            logger.error("Transaction upsert failed for %s: %s", wallet_id, exc, exc_info=True)

        if report.ok:
            logger.info(
                "Stored wallet %s (%d new of %d transactions)",
                wallet_id,
                report.transactions_inserted,
                len(snapshot.transactions),
            )
        return report

    async def upsert_wallet_aggregate(
        self,
        wallet_id: str,
        snapshot: WalletSnapshot,
        provider: Optional[str] = None,
    ) -> None:
        """Insert or overwrite the wallet's aggregate fields (last write wins)."""
        now = datetime.now(timezone.utc)
        values = {
            "id": wallet_id,
            "address": snapshot.address,
            "balance": snapshot.balance,
            "total_received": snapshot.total_received,
            "total_sent": snapshot.total_sent,
            "transaction_count": snapshot.transaction_count,
            "unconfirmed_balance": snapshot.unconfirmed_balance,
            "provider": provider,
            "last_updated": now,
            "last_successful_update": now,
        }
        for key in AGGREGATE_AMOUNTS:
            _check_amount(key, values[key])
        stmt = self._insert(WalletModel).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={key: stmt.excluded[key] for key in values if key != "id"},
        )
        async with self.database.session() as session:
            await session.execute(stmt)

    async def upsert_transactions(
        self,
        wallet_id: str,
        transactions: List[NormalizedTransaction],
    ) -> int:
        """
        Insert transactions not yet stored for the wallet.

        Conflicts on ``(wallet_id, hash)`` are ignored, so stored rows keep
        the values from when they were first seen. Returns the number of rows
        actually inserted.
        """
        rows = _dedupe_by_hash([_transaction_row(wallet_id, tx) for tx in transactions])
        if not rows:
            return 0

        stmt = self._insert(WalletTransactionModel).values(rows)
        stmt = stmt.on_conflict_do_nothing(index_elements=["wallet_id", "hash"])
        async with self.database.session() as session:
            result = await session.execute(stmt)
            inserted = result.rowcount
        return max(inserted, 0) if inserted is not None else 0

    async def count_transactions(self, wallet_id: str) -> int:
        async with self.database.session() as session:
            result = await session.execute(
                select(func.count())
                .select_from(WalletTransactionModel)
                .where(WalletTransactionModel.wallet_id == wallet_id)
            )
            return int(result.scalar_one())

    async def get_wallet(self, wallet_id: str) -> Optional[WalletModel]:
        async with self.database.session() as session:
            result = await session.execute(select(WalletModel).where(WalletModel.id == wallet_id))
            return result.scalar_one_or_none()


def _transaction_row(wallet_id: str, tx: NormalizedTransaction) -> Dict[str, Any]:
    _check_amount(f"amount of {tx.hash}", tx.amount)
    _check_amount(f"fee of {tx.hash}", tx.fee)
    return {
        "wallet_id": wallet_id,
        "hash": tx.hash,
        "amount": tx.amount,
        "transaction_type": tx.type.value,
        "transaction_date": tx.occurred_at,
        "date_estimated": tx.occurred_at_estimated,
        "fee": tx.fee,
        "confirmations": tx.confirmations,
        "block_height": tx.block_height,
        "double_spend": tx.double_spend,
        "created_at": datetime.now(timezone.utc),
    }


def _dedupe_by_hash(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    seen = set()
    unique = []
    for row in rows:
        if row["hash"] in seen:
            continue
        seen.add(row["hash"])
        unique.append(row)
    return unique


def _check_amount(column: str, value: Optional[Decimal]) -> None:
    """Refuse values the amount columns would round or overflow."""
    if value is None:
        return
    try:
        exact = value == value.quantize(_AMOUNT_QUANTUM)
    except InvalidOperation:
        exact = False
    if not exact or abs(value) >= _AMOUNT_LIMIT:
        raise PersistenceFailure(
            f"{column}={value} does not fit NUMERIC({AMOUNT.precision}, {AMOUNT.scale})"
        )
