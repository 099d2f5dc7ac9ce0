"""Typed errors raised by the category hierarchy engine.

Every error carries a stable ``code`` for callers and a ``status_code`` hint
used by the HTTP layer. Validation errors are always raised before any write.
"""

from __future__ import annotations


class CategoryError(Exception):
    code = "CATEGORY_ERROR"
    status_code = 400
    default_message = "Category operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class CategoryNotFound(CategoryError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Category not found"


class ParentNotFound(CategoryError):
    code = "PARENT_NOT_FOUND"
    default_message = "Parent category not found or not in same household"


class DuplicateName(CategoryError):
    code = "DUPLICATE_NAME"
    status_code = 409
    default_message = "Category with this name already exists at this level"


class DepthExceeded(CategoryError):
    code = "DEPTH_EXCEEDED"

    def __init__(self, max_depth: int = 5, message: str | None = None) -> None:
        self.max_depth = max_depth
        super().__init__(message or f"Category nesting cannot exceed {max_depth} levels")


class SelfParent(CategoryError):
    code = "SELF_PARENT"
    default_message = "Category cannot be its own parent"


class CircularReference(CategoryError):
    code = "CIRCULAR_REFERENCE"
    default_message = "Moving category would create a circular reference"


class HasChildren(CategoryError):
    code = "HAS_CHILDREN"
    status_code = 409
    default_message = "Cannot delete category with child categories"


class HasTransactions(CategoryError):
    code = "HAS_TRANSACTIONS"
    status_code = 409
    default_message = "Cannot delete category with existing transactions"


class TypeMismatch(CategoryError):
    code = "TYPE_MISMATCH"
    default_message = "Income/expense type mismatch"


class HierarchyCorrupt(CategoryError):
    code = "HIERARCHY_CORRUPT"
    status_code = 500
    default_message = "Category hierarchy is too deep or contains a circular reference"


class StoreError(CategoryError):
    """Passthrough of a storage failure; the original is chained as ``__cause__``."""

    code = "STORE_ERROR"
    status_code = 503
    default_message = "Category store is unavailable"


class InvalidName(CategoryError):
    code = "INVALID_NAME"
    default_message = "Category name must not be empty"


class InvalidType(CategoryError):
    code = "INVALID_TYPE"
    default_message = "Category type must be 'income' or 'expense'"
