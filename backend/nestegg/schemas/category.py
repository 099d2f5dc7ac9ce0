from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    parentId: str | None = None
    description: str | None = None
    # Omitted: inherit the parent's type, or 'expense' for a root.
    type: str | None = Field(default=None, pattern="^(income|expense)$")


class CategoryUpdate(BaseModel):
    """Partial update. Omitted fields are left untouched; ``parentId: null`` makes the node a root."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    parentId: str | None = None
    description: str | None = None


class CategoryOut(BaseModel):
    id: str
    householdId: str
    type: str
    name: str
    description: str | None
    parentId: str | None
    createdAt: datetime
    updatedAt: datetime


class CategoryNodeOut(CategoryOut):
    parent: CategoryOut | None = None
    children: list["CategoryNodeOut"] = Field(default_factory=list)


class TransactionSummaryOut(BaseModel):
    id: str
    amountYen: int
    note: str | None
    occurredOn: date


class CategoryDetailOut(CategoryNodeOut):
    transactions: list[TransactionSummaryOut] = Field(default_factory=list)
