from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from nestegg.core.datetime_utils import utcnow_naive
from nestegg.models.base import Base, new_id


class Transaction(Base):
    """Ledger entry owned by the transaction service; read here for guards and stats."""

    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    household_id: Mapped[str] = mapped_column(String(64), index=True)

    category_id: Mapped[str | None] = mapped_column(String(32), ForeignKey("categories.id"), nullable=True, index=True)

    amount_yen: Mapped[int] = mapped_column(Integer)
    occurred_on: Mapped[date] = mapped_column(Date, index=True)
    note: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow_naive, index=True)
