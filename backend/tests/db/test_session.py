import pytest
from sqlalchemy import create_engine, inspect, text

from nestegg.core.config import Settings
from nestegg.db.init_db import init_db
from nestegg.db.session import build_connection_url


class TestConnectionUrl:
    def test_database_url_wins(self):
        config = Settings(database_url="postgresql://u:p@db/nestegg", db_server="ignored", _env_file=None)

        assert build_connection_url(config) == "postgresql://u:p@db/nestegg"

    def test_sql_server_trusted_connection(self):
        config = Settings(database_url=None, db_server=r".\\SQLEXPRESS", _env_file=None)

        url = build_connection_url(config)

        assert url.startswith("mssql+pyodbc:///?odbc_connect=")
        assert "Trusted_Connection%3Dyes" in url
        assert "SERVER%3D.%5CSQLEXPRESS" in url

    def test_sql_server_login_requires_credentials(self):
        config = Settings(database_url=None, db_server="db", db_trusted_connection=False, _env_file=None)

        with pytest.raises(ValueError):
            build_connection_url(config)

    def test_nothing_configured(self):
        with pytest.raises(ValueError):
            build_connection_url(Settings(database_url=None, _env_file=None))


class TestInitDb:
    def test_creates_tables(self):
        engine = create_engine("sqlite://")

        init_db(engine)

        inspector = inspect(engine)
        assert inspector.has_table("categories")
        assert inspector.has_table("transactions")

    def test_outdated_schema_fails_fast(self):
        engine = create_engine("sqlite://")
        with engine.begin() as conn:
            conn.execute(text("CREATE TABLE categories (id VARCHAR(32) PRIMARY KEY, name VARCHAR(100))"))

        with pytest.raises(RuntimeError):
            init_db(engine)
