from __future__ import annotations

from pydantic import BaseModel

from nestegg.schemas.category import CategoryOut


class CategoryRef(BaseModel):
    id: str
    name: str
    parent: CategoryOut | None = None


class CategoryStatisticsFigures(BaseModel):
    directTransactions: int
    directAmount: int
    descendantTransactions: int
    descendantAmount: int
    totalTransactions: int
    totalAmount: int
    # Size of the whole descendant set, not just direct children.
    childrenCount: int


class CategoryStatisticsOut(BaseModel):
    category: CategoryRef
    statistics: CategoryStatisticsFigures
