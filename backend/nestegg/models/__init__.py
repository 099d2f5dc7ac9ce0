from nestegg.models.base import Base
from nestegg.models.category import Category
from nestegg.models.transaction import Transaction

__all__ = ["Base", "Category", "Transaction"]
