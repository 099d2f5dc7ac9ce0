"""Tenant-scoped access to the category tree.

``TreeStore`` is the only place that queries the ``categories`` table. It is
bound to one household at construction, so every statement it issues carries
the household predicate, and soft-deleted rows are filtered here rather than
at each call site.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Select, func, literal, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from nestegg.core.datetime_utils import utcnow_naive
from nestegg.core.errors import CategoryError, DuplicateName, StoreError
from nestegg.models.category import Category

_UPDATABLE_FIELDS = frozenset({"name", "description", "parent_id", "type"})


def _is_unique_violation(exc: IntegrityError) -> bool:
    # sqlite: "UNIQUE constraint failed", postgres: "duplicate key value",
    # sql server: "Cannot insert duplicate key"
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate" in message


class TreeStore:
    def __init__(self, db: Session, household_id: str) -> None:
        if not household_id:
            raise ValueError("household_id is required")
        self.db = db
        self.household_id = household_id

    @contextmanager
    def _errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except CategoryError:
            raise
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                raise DuplicateName() from exc
            raise StoreError(f"Failed to {action}: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to {action}") from exc

    def _scoped(self, stmt: Select, include_deleted: bool = False) -> Select:
        stmt = stmt.where(Category.household_id == self.household_id)
        if not include_deleted:
            stmt = stmt.where(Category.deleted_at.is_(None))
        return stmt

    def get(self, category_id: str | None, include_deleted: bool = False) -> Category | None:
        if category_id is None:
            return None
        with self._errors("load category"):
            return self.db.scalar(
                self._scoped(select(Category).where(Category.id == category_id), include_deleted)
            )

    def get_by_parent_and_name(
        self,
        parent_id: str | None,
        name: str,
        exclude_id: str | None = None,
    ) -> Category | None:
        stmt = select(Category).where(Category.name == name)
        # `parent_id == None` renders as `= NULL`, which never matches roots.
        if parent_id is None:
            stmt = stmt.where(Category.parent_id.is_(None))
        else:
            stmt = stmt.where(Category.parent_id == parent_id)
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)

        with self._errors("look up sibling name"):
            return self.db.scalar(self._scoped(stmt).limit(1))

    def list_children(self, parent_id: str) -> list[Category]:
        return self.list_children_of([parent_id])

    def list_children_of(self, parent_ids: Sequence[str]) -> list[Category]:
        """Direct children of any of ``parent_ids`` in a single round trip."""
        if not parent_ids:
            return []
        stmt = (
            select(Category)
            .where(Category.parent_id.in_(list(parent_ids)))
            .order_by(Category.name.asc(), Category.id.asc())
        )
        with self._errors("list child categories"):
            return list(self.db.scalars(self._scoped(stmt)).all())

    def list_roots(self) -> list[Category]:
        stmt = select(Category).where(Category.parent_id.is_(None)).order_by(Category.name.asc(), Category.id.asc())
        with self._errors("list root categories"):
            return list(self.db.scalars(self._scoped(stmt)).all())

    def count_children(self, category_id: str) -> int:
        stmt = select(func.count(Category.id)).where(Category.parent_id == category_id)
        with self._errors("count child categories"):
            return int(self.db.scalar(self._scoped(stmt)) or 0)

    def descendants_native(self, category_id: str, max_levels: int | None = None) -> list[Category]:
        """All active descendants via one recursive CTE, ordered by level then name.

        ``max_levels`` bounds the recursion so corrupt (cyclic) data cannot
        make the query run forever; rows reached twice are reported once.
        """
        tree = (
            select(Category.id.label("id"), literal(1).label("level"))
            .where(
                Category.household_id == self.household_id,
                Category.parent_id == category_id,
                Category.deleted_at.is_(None),
            )
            .cte("category_descendants", recursive=True)
        )

        child = aliased(Category)
        recursive_step = (
            select(child.id, (tree.c.level + 1).label("level"))
            .join(tree, child.parent_id == tree.c.id)
            .where(child.household_id == self.household_id, child.deleted_at.is_(None))
        )
        if max_levels is not None:
            recursive_step = recursive_step.where(tree.c.level < max_levels)
        tree = tree.union_all(recursive_step)

        stmt = (
            select(Category)
            .join(tree, Category.id == tree.c.id)
            .order_by(tree.c.level.asc(), Category.name.asc(), Category.id.asc())
        )
        with self._errors("query category descendants"):
            rows = self.db.scalars(stmt).all()

        seen: set[str] = {category_id}
        result: list[Category] = []
        for row in rows:
            if row.id in seen:
                continue
            seen.add(row.id)
            result.append(row)
        return result

    def create(
        self,
        *,
        name: str,
        type: str,
        parent_id: str | None = None,
        description: str | None = None,
    ) -> Category:
        row = Category(
            household_id=self.household_id,
            type=type,
            name=name,
            parent_id=parent_id,
            description=description,
        )
        with self._errors("create category"):
            self.db.add(row)
            self.db.flush()
            self.db.refresh(row)
        return row

    def update(self, row: Category, fields: dict[str, Any]) -> Category:
        if row.household_id != self.household_id:
            raise StoreError("Category belongs to another household")
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported category fields: {sorted(unknown)}")

        with self._errors("update category"):
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = utcnow_naive()
            self.db.flush()
        return row

    def soft_delete(self, row: Category) -> Category:
        if row.household_id != self.household_id:
            raise StoreError("Category belongs to another household")
        with self._errors("delete category"):
            now = utcnow_naive()
            row.deleted_at = now
            row.updated_at = now
            self.db.flush()
        return row
