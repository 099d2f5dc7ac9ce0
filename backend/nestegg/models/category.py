from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, UnicodeText, func, literal_column, text
from sqlalchemy.orm import Mapped, mapped_column

from nestegg.core.datetime_utils import utcnow_naive
from nestegg.models.base import Base, new_id


class Category(Base):
    __tablename__ = "categories"

    TYPE_INCOME = "income"
    TYPE_EXPENSE = "expense"
    TYPES = (TYPE_INCOME, TYPE_EXPENSE)

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)

    # Tenant boundary; every store query filters on it.
    household_id: Mapped[str] = mapped_column(String(64), index=True)

    # 'income' | 'expense'
    type: Mapped[str] = mapped_column(String(10), default=TYPE_EXPENSE)

    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(UnicodeText, nullable=True)
    parent_id: Mapped[str | None] = mapped_column(String(32), ForeignKey("categories.id"), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=utcnow_naive, onupdate=utcnow_naive)

    # Soft-delete tombstone; set rows are invisible to the active tree.
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True, index=True)


# Level-scoped name uniqueness among active rows. Roots have a NULL parent,
# so the parent is folded to '' to make root names collide as well.
Index(
    "uq_categories_household_parent_name",
    Category.household_id,
    func.coalesce(Category.parent_id, literal_column("''")),
    Category.name,
    unique=True,
    sqlite_where=text("deleted_at IS NULL"),
    postgresql_where=text("deleted_at IS NULL"),
).ddl_if(dialect=("sqlite", "postgresql"))

# SQL Server has no expression indexes; roots there rely on validation alone.
Index(
    "uq_categories_household_parent_name_mssql",
    Category.household_id,
    Category.parent_id,
    Category.name,
    unique=True,
    mssql_where=text("deleted_at IS NULL"),
).ddl_if(dialect="mssql")
