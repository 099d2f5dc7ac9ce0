"""Category hierarchy service.

Every public method takes the household id explicitly and builds a
``TreeStore`` bound to it, so no operation can reach another household's
rows. Mutations validate first, then write and commit in one transaction;
any failure rolls the session back and propagates unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from nestegg.core.config import Settings, settings
from nestegg.core.datetime_utils import as_utc
from nestegg.core.errors import CategoryNotFound, HasChildren, HasTransactions, HierarchyCorrupt, InvalidName
from nestegg.models.category import Category
from nestegg.schemas.category import (
    CategoryDetailOut,
    CategoryNodeOut,
    CategoryOut,
    CategoryUpdate,
    TransactionSummaryOut,
)
from nestegg.schemas.stats import CategoryRef, CategoryStatisticsOut
from nestegg.services.descendants import DescendantResolver
from nestegg.services.ledger import SqlTransactionLedger, TransactionLedger
from nestegg.services.stats import StatisticsAggregator
from nestegg.services.tree_store import TreeStore
from nestegg.services.validator import HierarchyValidator

logger = logging.getLogger(__name__)


def to_category_out(row: Category) -> CategoryOut:
    return CategoryOut(
        id=row.id,
        householdId=row.household_id,
        type=row.type,
        name=row.name,
        description=row.description,
        parentId=row.parent_id,
        createdAt=as_utc(row.created_at),
        updatedAt=as_utc(row.updated_at),
    )


def to_node_out(
    row: Category,
    *,
    parent: Category | None = None,
    children: list[CategoryNodeOut] | None = None,
) -> CategoryNodeOut:
    return CategoryNodeOut(
        **to_category_out(row).model_dump(),
        parent=to_category_out(parent) if parent is not None else None,
        children=children or [],
    )


def _clean_name(name: str | None) -> str:
    if name is None or not name.strip():
        raise InvalidName()
    return name.strip()


@dataclass
class _Scope:
    store: TreeStore
    resolver: DescendantResolver
    validator: HierarchyValidator


class CategoryService:
    def __init__(
        self,
        db: Session,
        *,
        ledger: TransactionLedger | None = None,
        config: Settings | None = None,
    ) -> None:
        self.db = db
        self.config = config or settings
        self.ledger = ledger or SqlTransactionLedger(db)
        self.stats = StatisticsAggregator(self.ledger)

    def _scope(self, household_id: str) -> _Scope:
        store = TreeStore(self.db, household_id)
        resolver = DescendantResolver.from_settings(store, self.config)
        validator = HierarchyValidator(
            store,
            resolver,
            max_depth=self.config.max_depth,
            ancestor_walk_limit=self.config.ancestor_walk_limit,
        )
        return _Scope(store=store, resolver=resolver, validator=validator)

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def _require(scope: _Scope, category_id: str) -> Category:
        row = scope.store.get(category_id)
        if row is None:
            raise CategoryNotFound()
        return row

    def create(
        self,
        household_id: str,
        name: str,
        parent_id: str | None = None,
        description: str | None = None,
        type: str | None = None,
    ) -> CategoryNodeOut:
        scope = self._scope(household_id)
        name = _clean_name(name)

        with self._transaction():
            parent = scope.validator.validate_create(name, parent_id, type)
            if type is None:
                type = parent.type if parent is not None else Category.TYPE_EXPENSE
            row = scope.store.create(name=name, type=type, parent_id=parent_id, description=description)

        logger.info("Created category %s (%r) in household %s", row.id, row.name, household_id)
        return to_node_out(row, parent=parent)

    def find_one(self, household_id: str, category_id: str) -> CategoryDetailOut:
        scope = self._scope(household_id)
        row = self._require(scope, category_id)
        parent = scope.store.get(row.parent_id)
        children = [to_node_out(c) for c in scope.store.list_children(row.id)]
        by_id = {c.id: c for c in children}
        for grandchild in scope.store.list_children_of(list(by_id)):
            by_id[grandchild.parent_id].children.append(to_node_out(grandchild))
        recent =self.ledger.recent_transactions_for_category(row.id, self.config.recent_transactions_limit)

        return CategoryDetailOut(
            **to_category_out(row).model_dump(),
            parent=to_category_out(parent) if parent is not None else None,
            children=children,
            transactions=[
                TransactionSummaryOut(id=t.id, amountYen=t.amount, note=t.note, occurredOn=t.occurred_on)
                for t in recent
            ],
        )

    def find_all(self, household_id: str) -> list[CategoryNodeOut]:
        """Root categories with up to ``find_all_nesting`` levels of children attached.

        Deeper levels are reachable through ``find_one``/``get_category_path``.
        """
        scope = self._scope(household_id)
        roots = [to_node_out(r) for r in scope.store.list_roots()]

        frontier: dict[str, CategoryNodeOut] = {n.id: n for n in roots}
        for _ in range(self.config.find_all_nesting):
            if not frontier:
                break
            next_frontier: dict[str, CategoryNodeOut] = {}
            for child in scope.store.list_children_of(list(frontier)):
                node = to_node_out(child)
                frontier[child.parent_id].children.append(node)
                next_frontier[node.id] = node
            frontier = next_frontier

        return roots

    def get_category_tree(self, household_id: str) -> list[CategoryNodeOut]:
        return self.find_all(household_id)

    def update(
        self,
        household_id: str,
        category_id: str,
        changes: CategoryUpdate | Mapping[str, Any],
    ) -> CategoryNodeOut:
        """Partial update: only fields present in ``changes`` are applied.

        ``parentId`` explicitly set to ``None`` moves the category to the root level.
        """
        if not isinstance(changes, CategoryUpdate):
            changes = CategoryUpdate.model_validate(dict(changes))
        supplied = changes.model_fields_set
        scope = self._scope(household_id)

        with self._transaction():
            row = self._require(scope, category_id)
            new_name = _clean_name(changes.name) if "name" in supplied and changes.name is not None else None

            values: dict[str, Any] = {}
            effective_parent_id = row.parent_id
            if "parentId" in supplied:
                scope.validator.validate_move(row, changes.parentId, new_name)
                values["parent_id"] = changes.parentId
                effective_parent_id = changes.parentId

            if new_name is not None:
                scope.validator.validate_rename(row.id, new_name, effective_parent_id)
                values["name"] = new_name

            if "description" in supplied:
                values["description"] = changes.description

            if values:
                scope.store.update(row, values)

        logger.info("Updated category %s in household %s: %s", row.id, household_id, sorted(values))
        parent = scope.store.get(row.parent_id)
        children = [to_node_out(c) for c in scope.store.list_children(row.id)]
        return to_node_out(row, parent=parent, children=children)

    def remove(self, household_id: str, category_id: str) -> None:
        scope = self._scope(household_id)

        with self._transaction():
            row = self._require(scope, category_id)
            if scope.store.count_children(row.id) > 0:
                raise HasChildren()
            if self.ledger.count_transactions_for_category(row.id) > 0:
                raise HasTransactions()
            scope.store.soft_delete(row)

        logger.info("Deleted category %s in household %s", category_id, household_id)

    def get_category_path(self, household_id: str, category_id: str) -> list[CategoryOut]:
        """Ancestors of a category followed by the category itself, root first."""
        scope = self._scope(household_id)
        row = self._require(scope, category_id)

        path = [row]
        for _ in range(self.config.ancestor_walk_limit):
            if path[0].parent_id is None:
                break
            parent = scope.store.get(path[0].parent_id)
            if parent is None:
                break
            path.insert(0, parent)
        else:
            if path[0].parent_id is not None:
                raise HierarchyCorrupt()

        return [to_category_out(r) for r in path]

    def get_category_depth(self, household_id: str, category_id: str) -> int:
        scope = self._scope(household_id)
        row = self._require(scope, category_id)
        return scope.validator.depth_of(row.id)

    def get_descendants(self, household_id: str, category_id: str) -> list[CategoryOut]:
        scope = self._scope(household_id)
        row = self._require(scope, category_id)
        return [to_category_out(d) for d in scope.resolver.descendants(row.id)]

    def get_category_stats(self, household_id: str, category_id: str) -> CategoryStatisticsOut:
        scope = self._scope(household_id)
        row = self._require(scope, category_id)
        parent = scope.store.get(row.parent_id)
        descendants = scope.resolver.descendants(row.id)

        return CategoryStatisticsOut(
            category=CategoryRef(
                id=row.id,
                name=row.name,
                parent=to_category_out(parent) if parent is not None else None,
            ),
            statistics=self.stats.summarize(row.id, [d.id for d in descendants]),
        )
