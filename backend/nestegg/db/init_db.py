from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from nestegg.models import Base

logger = logging.getLogger(__name__)


def init_db(engine: Engine) -> None:
    """Create missing tables for local runs. Production schemas come from alembic."""

    # Fail fast if database schema is behind code.
    inspector = inspect(engine)
    if inspector.has_table("categories"):
        cols = {c.get("name") for c in inspector.get_columns("categories")}
        if "deleted_at" not in cols:
            raise RuntimeError(
                "Database schema is outdated (missing column categories.deleted_at). "
                "Run: alembic upgrade head"
            )

    Base.metadata.create_all(engine)
    logger.info("Database schema ready")
