from __future__ import annotations

from typing import Any
from urllib.parse import quote_plus

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from nestegg.core.config import Settings, settings


def build_connection_url(config: Settings = settings) -> str:
    if config.database_url:
        return config.database_url

    if not config.db_server:
        raise ValueError("Set NESTEGG_DATABASE_URL or NESTEGG_DB_SERVER")

    # Use ODBC connection string to avoid URL-escaping pain on Windows instance names.
    # Some .env examples may contain double backslashes (e.g. .\\SQLEXPRESS). ODBC expects .\SQLEXPRESS.
    server = config.db_server.replace("\\\\", "\\")
    parts: list[str] = [
        f"DRIVER={{{config.db_driver}}}",
        f"SERVER={server}",
        f"DATABASE={config.db_name}",
        "TrustServerCertificate=yes",
    ]

    if config.db_trusted_connection:
        parts.append("Trusted_Connection=yes")
    else:
        if not config.db_user or not config.db_password:
            raise ValueError("SQL login requires NESTEGG_DB_USER and NESTEGG_DB_PASSWORD")
        parts.append(f"UID={config.db_user}")
        parts.append(f"PWD={config.db_password}")

    odbc_str = ";".join(parts)
    return "mssql+pyodbc:///?odbc_connect=" + quote_plus(odbc_str)


def build_engine(config: Settings = settings) -> Engine:
    url = build_connection_url(config)
    kwargs: dict[str, Any] = {"pool_pre_ping": True, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(url, **kwargs)


engine = build_engine()

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
