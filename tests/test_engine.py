"""Tests for translating connection strings into SQLAlchemy URLs."""

from __future__ import annotations

import pytest

from lightql import ConnectionError, build
from lightql.engine import url_from_spec, uses_backslash_escapes
from lightql.sql import quote_literal


class TestUrlFromSpec:
    """Test one URL per driver token."""

    def test_mysql(self) -> None:
        spec = build({"dbms": "mysql", "hostname": "db", "port": 3307, "database": "shop"})
        url = url_from_spec(spec, "me", "pw")
        assert url.drivername == "mysql+pymysql"
        assert (url.host, url.port, url.database) == ("db", 3307, "shop")
        assert (url.username, url.password) == ("me", "pw")

    def test_mysql_socket(self) -> None:
        spec = build({"dbms": "mariadb", "socket": "/run/mysqld.sock", "database": "shop"})
        url = url_from_spec(spec)
        assert url.host is None
        assert url.query == {"unix_socket": "/run/mysqld.sock"}

    def test_pgsql(self) -> None:
        spec = build({"dbms": "pgsql", "hostname": "db", "database": "shop"})
        url = url_from_spec(spec)
        assert url.drivername == "postgresql+psycopg2"
        assert (url.host, url.port, url.database) == ("db", None, "shop")

    def test_dblib_host_port(self) -> None:
        spec = build(
            {"dbms": "mssql", "driver": "dblib", "hostname": "sql", "port": 1433, "database": "shop"}
        )
        url = url_from_spec(spec)
        assert url.drivername == "mssql+pymssql"
        assert (url.host, url.port, url.database) == ("sql", 1433, "shop")

    def test_sqlsrv_server(self) -> None:
        spec = build({"dbms": "mssql", "hostname": "sql", "port": 1433, "database": "shop"})
        url = url_from_spec(spec)
        assert url.drivername == "mssql+pyodbc"
        assert (url.host, url.port, url.database) == ("sql", 1433, "shop")

    def test_oracle_service(self) -> None:
        spec = build(
            {"dbms": "oracle", "hostname": "ora", "database": "XE", "charset": "AL32UTF8"}
        )
        url = url_from_spec(spec)
        assert url.drivername == "oracle+oracledb"
        assert (url.host, url.port, url.database) == ("ora", 1521, None)
        assert url.query == {"service_name": "XE"}

    def test_sqlite_drops_credentials(self) -> None:
        spec = build({"dbms": "sqlite", "database": "/tmp/shop.db"})
        url = url_from_spec(spec, "me", "pw")
        assert url.render_as_string() == "sqlite:////tmp/shop.db"

    def test_unknown_driver(self) -> None:
        spec = build({"dsn": {"driver": "odbc", 0: "MyDSN"}})
        with pytest.raises(ConnectionError, match="could not find driver"):
            url_from_spec(spec)

    def test_invalid_port_in_override(self) -> None:
        spec = build({"dsn": {"driver": "pgsql", "host": "db", "port": "x"}})
        with pytest.raises(ConnectionError, match="invalid port"):
            url_from_spec(spec)


class TestBackslashEscapes:
    """Test literal quoting per SQLAlchemy dialect, without a server."""

    def test_mysql(self) -> None:
        from sqlalchemy.dialects.mysql import pymysql

        escapes = uses_backslash_escapes(pymysql.dialect())
        assert escapes
        assert quote_literal("50%", escapes) == "'50%'"
        assert quote_literal("a\\' OR 1=1 -- ", escapes) == "'a\\\\'' OR 1=1 -- '"

    def test_mysql_no_backslash_escapes_mode(self) -> None:
        from sqlalchemy.dialects.mysql import pymysql

        dialect = pymysql.dialect()
        dialect._backslash_escapes = False
        assert quote_literal("a\\b", uses_backslash_escapes(dialect)) == "'a\\b'"

    def test_pgsql(self) -> None:
        from sqlalchemy.dialects.postgresql import psycopg2

        dialect = psycopg2.dialect()
        assert quote_literal("50%", uses_backslash_escapes(dialect)) == "'50%'"
        # standard_conforming_strings on, as detected on connect
        dialect._backslash_escapes = False
        assert quote_literal("a\\b", uses_backslash_escapes(dialect)) == "'a\\b'"

    def test_sqlite(self) -> None:
        from sqlalchemy.dialects.sqlite import pysqlite

        assert not uses_backslash_escapes(pysqlite.dialect())
