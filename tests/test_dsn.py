"""Tests for the connection string builder."""

from __future__ import annotations

import pytest

from lightql import ConfigError, ConnectionConfig, Dialect, build, parse_dsn
from lightql.dsn import DIALECT_HANDLERS, format_dsn


class TestDialectDispatch:
    """Test one connection string per dialect."""

    def test_every_dialect_has_handler(self) -> None:
        """Test the dispatch table covers the whole enum."""
        assert set(DIALECT_HANDLERS) == set(Dialect)

    def test_mysql_host_and_port(self) -> None:
        spec = build(
            {"dbms": "mysql", "hostname": "db", "port": 3307, "database": "shop"}
        )
        assert spec.dsn == "mysql:dbname=shop;host=db;port=3307"
        assert spec.setup_statements == ("SET SQL_MODE=ANSI_QUOTES",)

    def test_mysql_socket_replaces_host(self) -> None:
        spec = build(
            {
                "dbms": "mysql",
                "hostname": "db",
                "port": 3307,
                "database": "shop",
                "socket": "/run/mysqld.sock",
            }
        )
        assert spec.dsn == "mysql:dbname=shop;unix_socket=/run/mysqld.sock"

    def test_mariadb_uses_mysql_driver(self) -> None:
        spec = build({"dbms": "MariaDB", "hostname": "db", "database": "shop"})
        assert spec.dsn == "mysql:dbname=shop;host=db"
        assert spec.setup_statements == ("SET SQL_MODE=ANSI_QUOTES",)

    def test_pgsql(self) -> None:
        spec = build(
            {"dbms": "pgsql", "hostname": "db", "port": "5433", "database": "shop"}
        )
        assert spec.dsn == "pgsql:host=db;dbname=shop;port=5433"
        assert spec.setup_statements == ()

    def test_postgres_alias(self) -> None:
        spec = build({"dbms": "postgres", "hostname": "db", "database": "shop"})
        assert spec.dsn == "pgsql:host=db;dbname=shop"

    def test_sybase(self) -> None:
        spec = build({"dbms": "sybase", "hostname": "db", "database": "shop"})
        assert spec.dsn == "dblib:host=db;dbname=shop"
        assert spec.setup_statements == ()

    def test_oracle_with_host_default_port(self) -> None:
        spec = build({"dbms": "oracle", "hostname": "ora", "database": "XE"})
        assert spec.dsn == "oci:dbname=//ora:1521/XE"

    def test_oracle_with_port_and_charset(self) -> None:
        spec = build(
            {
                "dbms": "oracle",
                "hostname": "ora",
                "port": 1522,
                "database": "XE",
                "charset": "AL32UTF8",
            }
        )
        assert spec.dsn == "oci:dbname=//ora:1522/XE;charset=AL32UTF8"
        # Oracle sets the charset through the connection string only
        assert spec.setup_statements == ()

    def test_oracle_without_host(self) -> None:
        spec = build({"dbms": "oracle", "database": "TNSNAME"})
        assert spec.dsn == "oci:dbname=TNSNAME"

    def test_mssql_default_sqlsrv(self) -> None:
        spec = build(
            {"dbms": "mssql", "hostname": "sql", "port": 1433, "database": "shop"}
        )
        assert spec.dsn == "sqlsrv:Server=sql,1433;Database=shop"
        assert spec.setup_statements == (
            "SET QUOTED_IDENTIFIER ON",
            "SET ANSI_NULLS ON",
        )

    def test_mssql_dblib_variant(self) -> None:
        spec = build(
            {
                "dbms": "mssql",
                "driver": "dblib",
                "hostname": "sql",
                "port": 1433,
                "database": "shop",
            }
        )
        assert spec.dsn == "dblib:host=sql:1433;dbname=shop"
        assert spec.setup_statements == (
            "SET QUOTED_IDENTIFIER ON",
            "SET ANSI_NULLS ON",
        )

    def test_sqlite_positional(self) -> None:
        spec = build({"dbms": "sqlite", "database": "/var/db/shop.sqlite"})
        assert spec.dsn == "sqlite:/var/db/shop.sqlite"
        assert spec.attributes == ((0, "/var/db/shop.sqlite"),)


class TestSetupStatements:
    """Test command ordering and charset handling."""

    def test_commands_run_before_dialect_statements(self) -> None:
        spec = build(
            {
                "dbms": "mysql",
                "hostname": "db",
                "database": "shop",
                "charset": "utf8mb4",
                "command": ["SET time_zone = '+00:00'"],
            }
        )
        assert spec.setup_statements == (
            "SET time_zone = '+00:00'",
            "SET SQL_MODE=ANSI_QUOTES",
            "SET NAMES 'utf8mb4'",
        )

    @pytest.mark.parametrize("dbms", ["mysql", "mariadb", "pgsql", "sybase", "mssql"])
    def test_charset_dialects(self, dbms: str) -> None:
        spec = build(
            {"dbms": dbms, "hostname": "h", "database": "d", "charset": "utf8"}
        )
        assert spec.setup_statements[-1] == "SET NAMES 'utf8'"

    def test_sqlite_ignores_charset(self) -> None:
        spec = build({"dbms": "sqlite", "database": "x.db", "charset": "utf8"})
        assert spec.setup_statements == ()


class TestOverride:
    """Test the raw DSN override."""

    def test_override_skips_dispatch(self) -> None:
        spec = build(
            {
                "dbms": "mysql",
                "hostname": "ignored",
                "database": "ignored",
                "dsn": {"driver": "mysql", "host": "db", "dbname": "shop"},
            }
        )
        assert spec.dsn == "mysql:host=db;dbname=shop"
        # the dialect statements come from dispatch, which was skipped
        assert "SET SQL_MODE=ANSI_QUOTES" not in spec.setup_statements

    def test_override_positional_entries(self) -> None:
        spec = build({"dsn": {"driver": "sqlite", 0: ":memory:"}})
        assert spec.dsn == "sqlite::memory:"

    def test_override_digit_string_keys_are_positional(self) -> None:
        spec = build({"dsn": {"driver": "odbc", "0": "MyDSN", "UID": "me"}})
        assert spec.dsn == "odbc:MyDSN;UID=me"

    def test_override_keeps_charset_statement(self) -> None:
        spec = build(
            {
                "dbms": "pgsql",
                "charset": "utf8",
                "dsn": {"driver": "pgsql", "host": "db", "dbname": "shop"},
            }
        )
        assert spec.setup_statements == ("SET NAMES 'utf8'",)

    def test_override_without_driver(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            build({"dsn": {"host": "db"}})
        assert "driver" in str(exc_info.value)


class TestConfigErrors:
    """Test missing required fields."""

    @pytest.mark.parametrize(
        "dbms", ["mysql", "mariadb", "pgsql", "sybase", "oracle", "mssql", "sqlite"]
    )
    def test_missing_database(self, dbms: str) -> None:
        with pytest.raises(ConfigError) as exc_info:
            build({"dbms": dbms, "hostname": "h"})
        assert "database" in str(exc_info.value)

    @pytest.mark.parametrize("dbms", ["mysql", "pgsql", "sybase", "mssql"])
    def test_missing_hostname(self, dbms: str) -> None:
        with pytest.raises(ConfigError) as exc_info:
            build({"dbms": dbms, "database": "d"})
        assert "hostname" in str(exc_info.value)

    def test_invalid_port(self) -> None:
        with pytest.raises(ConfigError):
            build({"dbms": "pgsql", "hostname": "h", "database": "d", "port": "abc"})

    def test_unknown_dialect_yields_empty_string(self) -> None:
        spec = build({"dbms": "db2", "hostname": "h", "database": "d"})
        assert spec.dsn == ":"
        assert spec.setup_statements == ()


class TestRoundTrip:
    """Test format/parse symmetry."""

    @pytest.mark.parametrize(
        ("config", "driver"),
        [
            ({"dbms": "mysql", "hostname": "h", "database": "d"}, "mysql"),
            ({"dbms": "mariadb", "socket": "/s", "database": "d"}, "mysql"),
            ({"dbms": "pgsql", "hostname": "h", "database": "d"}, "pgsql"),
            ({"dbms": "sybase", "hostname": "h", "database": "d"}, "dblib"),
            ({"dbms": "oracle", "hostname": "h", "database": "d"}, "oci"),
            ({"dbms": "mssql", "hostname": "h", "database": "d"}, "sqlsrv"),
            (
                {"dbms": "mssql", "driver": "dblib", "hostname": "h", "database": "d"},
                "dblib",
            ),
            ({"dbms": "sqlite", "database": "a;b=c.db"}, "sqlite"),
        ],
    )
    def test_driver_token_recovered(self, config: dict, driver: str) -> None:
        spec = build(ConnectionConfig(**config))
        parsed_driver, attributes = parse_dsn(spec.dsn)
        assert parsed_driver == driver
        assert format_dsn(parsed_driver, attributes) == spec.dsn

    def test_parse_without_prefix(self) -> None:
        with pytest.raises(ConfigError):
            parse_dsn("no-driver-here")
