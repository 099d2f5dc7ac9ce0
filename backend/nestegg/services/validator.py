"""Structural checks run before every category create/move/rename.

The validator only reads. It raises a ``CategoryError`` subclass on the first
violated rule and returns the resolved parent row (or ``None`` for a root)
when the mutation is legal.
"""

from __future__ import annotations

import logging

from nestegg.core.errors import (
    CircularReference,
    DepthExceeded,
    DuplicateName,
    HierarchyCorrupt,
    InvalidType,
    ParentNotFound,
    SelfParent,
    TypeMismatch,
)
from nestegg.models.category import Category
from nestegg.services.descendants import DescendantResolver
from nestegg.services.tree_store import TreeStore

logger = logging.getLogger(__name__)


def subtree_height(root_id: str, descendants: list[Category]) -> int:
    """Levels in the subtree rooted at ``root_id``; a leaf has height 1.

    ``descendants`` must be level-ordered, as both descendant strategies are.
    """
    levels: dict[str, int] = {root_id: 1}
    height = 1
    for node in descendants:
        level = levels.get(node.parent_id or "", 1) + 1
        levels[node.id] = level
        height = max(height, level)
    return height


class HierarchyValidator:
    def __init__(
        self,
        store: TreeStore,
        resolver: DescendantResolver,
        *,
        max_depth: int = 5,
        ancestor_walk_limit: int = 10,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.max_depth = max_depth
        self.ancestor_walk_limit = ancestor_walk_limit

    def depth_of(self, category_id: str) -> int:
        """Depth of a node by walking ``parent_id`` upward (root = 1)."""
        depth = 0
        current_id: str | None = category_id
        for _ in range(self.ancestor_walk_limit):
            if current_id is None:
                return depth
            row = self.store.get(current_id)
            if row is None:
                return depth
            depth += 1
            current_id = row.parent_id

        if current_id is None:
            return depth
        logger.error(
            "Ancestor walk from category %s exceeded %d steps in household %s",
            category_id,
            self.ancestor_walk_limit,
            self.store.household_id,
        )
        raise HierarchyCorrupt()

    def _require_parent(self, parent_id: str) -> Category:
        parent = self.store.get(parent_id)
        if parent is None:
            raise ParentNotFound()
        return parent

    def _check_unique(self, parent_id: str | None, name: str, exclude_id: str | None = None) -> None:
        if self.store.get_by_parent_and_name(parent_id, name, exclude_id=exclude_id) is not None:
            raise DuplicateName()

    def validate_create(self, name: str, parent_id: str | None, type: str | None = None) -> Category | None:
        if type is not None and type not in Category.TYPES:
            raise InvalidType()

        parent: Category | None = None
        if parent_id is not None:
            parent = self._require_parent(parent_id)
            if type is not None and parent.type != type:
                raise TypeMismatch()
            if self.depth_of(parent.id) >= self.max_depth:
                raise DepthExceeded(self.max_depth)

        self._check_unique(parent_id, name)
        return parent

    def validate_move(self, node: Category, new_parent_id: str | None, name: str | None = None) -> Category | None:
        name = name or node.name
        if new_parent_id is not None and new_parent_id == node.id:
            raise SelfParent()

        if new_parent_id is None:
            self._check_unique(None, name, exclude_id=node.id)
            return None

        descendants = self.resolver.descendants(node.id)
        if any(d.id == new_parent_id for d in descendants):
            raise CircularReference()

        parent = self._require_parent(new_parent_id)
        if parent.type != node.type:
            raise TypeMismatch()

        # Every node of the moved subtree must stay within the depth cap.
        if self.depth_of(parent.id) + subtree_height(node.id, descendants) > self.max_depth:
            raise DepthExceeded(self.max_depth)

        self._check_unique(parent.id, name, exclude_id=node.id)
        return parent

    def validate_rename(self, node_id: str, new_name: str, effective_parent_id: str | None) -> None:
        self._check_unique(effective_parent_id, new_name, exclude_id=node_id)
