from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="NESTEGG_", env_file=".env", extra="ignore")

    # Any SQLAlchemy URL. Takes precedence over the SQL Server fields below.
    database_url: str | None = "sqlite:///./nestegg.db"

    # SQL Server via ODBC, used only when database_url is empty, e.g. .\SQLEXPRESS
    db_server: str | None = None
    db_name: str = "nestegg"
    db_trusted_connection: bool = True
    db_user: str | None = None
    db_password: str | None = None
    db_driver: str = "ODBC Driver 17 for SQL Server"

    # Hierarchy limits
    max_depth: int = Field(default=5, ge=1)
    ancestor_walk_limit: int = Field(default=10, ge=1)
    find_all_nesting: int = Field(default=3, ge=0)
    recent_transactions_limit: int = Field(default=10, ge=0)

    # 'auto' probes the dialect; 'recursive' | 'iterative' force a strategy
    descendant_strategy: str = Field(default="auto", pattern="^(auto|recursive|iterative)$")

    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    # Create missing tables on startup (local runs); deployments use alembic.
    auto_create_tables: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
