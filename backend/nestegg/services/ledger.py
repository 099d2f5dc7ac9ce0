"""Transaction Ledger collaborator.

The hierarchy engine never writes transactions; it only asks the ledger how
many reference a category (deletion guard), their aggregate (statistics) and
a short recent list (category detail).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nestegg.core.errors import StoreError
from nestegg.models.transaction import Transaction


@dataclass(frozen=True)
class LedgerAggregate:
    count: int = 0
    sum_amount: int = 0


@dataclass(frozen=True)
class TransactionSummary:
    id: str
    amount: int
    note: str | None
    occurred_on: date


class TransactionLedger(ABC):
    @abstractmethod
    def count_transactions_for_category(self, category_id: str) -> int: ...

    @abstractmethod
    def aggregate_transactions_for_category(self, category_id: str) -> LedgerAggregate: ...

    @abstractmethod
    def recent_transactions_for_category(self, category_id: str, limit: int) -> list[TransactionSummary]: ...


class SqlTransactionLedger(TransactionLedger):
    """Ledger backed by the ``transactions`` table in the same session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def count_transactions_for_category(self, category_id: str) -> int:
        try:
            count = self.db.scalar(
                select(func.count(Transaction.id)).where(Transaction.category_id == category_id)
            )
        except SQLAlchemyError as exc:
            raise StoreError("Failed to count category transactions") from exc
        return int(count or 0)

    def aggregate_transactions_for_category(self, category_id: str) -> LedgerAggregate:
        try:
            count, total = self.db.execute(
                select(
                    func.count(Transaction.id),
                    func.coalesce(func.sum(Transaction.amount_yen), 0),
                ).where(Transaction.category_id == category_id)
            ).one()
        except SQLAlchemyError as exc:
            raise StoreError("Failed to aggregate category transactions") from exc
        return LedgerAggregate(count=int(count or 0), sum_amount=int(total or 0))

    def recent_transactions_for_category(self, category_id: str, limit: int) -> list[TransactionSummary]:
        if limit <= 0:
            return []
        try:
            rows = self.db.scalars(
                select(Transaction)
                .where(Transaction.category_id == category_id)
                .order_by(Transaction.occurred_on.desc(), Transaction.created_at.desc(), Transaction.id.desc())
                .limit(limit)
            ).all()
        except SQLAlchemyError as exc:
            raise StoreError("Failed to load category transactions") from exc

        return [
            TransactionSummary(id=r.id, amount=int(r.amount_yen), note=r.note, occurred_on=r.occurred_on)
            for r in rows
        ]
