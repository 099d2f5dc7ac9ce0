"""Descendant resolution with a recursive-CTE path and a breadth-first fallback.

Both strategies return the same set of active descendants, level by level
(every node appears after its parent). Within a level the recursive query
orders by name across the whole level, while breadth-first orders by name
within one frontier query; callers must not depend on sibling order across
parents.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from sqlalchemy.engine import Dialect

from nestegg.core.config import Settings
from nestegg.core.errors import StoreError
from nestegg.models.category import Category
from nestegg.services.tree_store import TreeStore

logger = logging.getLogger(__name__)


class DescendantStrategy(ABC):
    name: str = "abstract"

    @abstractmethod
    def descendants(self, store: TreeStore, category_id: str) -> list[Category]:
        """Active descendants of ``category_id`` (excluding itself), level-ordered."""


class RecursiveCteStrategy(DescendantStrategy):
    name = "recursive"

    def __init__(self, max_levels: int | None = None) -> None:
        self.max_levels = max_levels

    def descendants(self, store: TreeStore, category_id: str) -> list[Category]:
        return store.descendants_native(category_id, max_levels=self.max_levels)


class BreadthFirstStrategy(DescendantStrategy):
    """One ``list_children_of`` round trip per tree level."""

    name = "iterative"

    def descendants(self, store: TreeStore, category_id: str) -> list[Category]:
        result: list[Category] = []
        visited: set[str] = {category_id}
        frontier: list[str] = [category_id]

        while frontier:
            next_frontier: list[str] = []
            for child in store.list_children_of(frontier):
                # Guard against cycles in corrupt data.
                if child.id in visited:
                    continue
                visited.add(child.id)
                result.append(child)
                next_frontier.append(child.id)
            frontier = next_frontier

        return result


def supports_recursive_cte(dialect: Dialect) -> bool:
    if dialect.name == "sqlite":
        version = getattr(dialect.dbapi, "sqlite_version_info", (0,))
        return tuple(version) >= (3, 8, 3)
    if dialect.name in ("mysql", "mariadb"):
        version = dialect.server_version_info or (0,)
        if getattr(dialect, "is_mariadb", False):
            return tuple(version) >= (10, 2)
        return tuple(version) >= (8,)
    return dialect.name in ("postgresql", "mssql", "oracle")


class DescendantResolver:
    """Runs the primary strategy, switching to ``fallback`` when it fails.

    The primary runs inside a savepoint so a failed recursive query does not
    poison the surrounding transaction.
    """

    def __init__(
        self,
        store: TreeStore,
        primary: DescendantStrategy,
        fallback: DescendantStrategy | None = None,
    ) -> None:
        self.store = store
        self.primary = primary
        self.fallback = fallback

    @classmethod
    def from_settings(cls, store: TreeStore, config: Settings) -> DescendantResolver:
        recursive = RecursiveCteStrategy(max_levels=config.ancestor_walk_limit)
        iterative = BreadthFirstStrategy()

        mode = config.descendant_strategy
        if mode == "iterative":
            return cls(store, iterative)
        if mode == "auto" and not supports_recursive_cte(store.db.get_bind().dialect):
            logger.debug("Dialect lacks recursive CTE support; using breadth-first descendants")
            return cls(store, iterative)
        return cls(store, recursive, fallback=iterative)

    def descendants(self, category_id: str) -> list[Category]:
        if self.fallback is None:
            return self.primary.descendants(self.store, category_id)

        try:
            with self.store.db.begin_nested():
                return self.primary.descendants(self.store, category_id)
        except StoreError as exc:
            logger.warning(
                "%s descendant query failed for category %s (%s); falling back to %s",
                self.primary.name,
                category_id,
                exc.__cause__ or exc,
                self.fallback.name,
            )
            return self.fallback.descendants(self.store, category_id)
