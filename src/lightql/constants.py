"""Constants and enumerations for lightql."""

from __future__ import annotations

from enum import Enum

__all__ = [
    "CHARSET_DIALECTS",
    "COUNT_ALIAS",
    "DEFAULT_ORACLE_PORT",
    "DRIVER_URL_SCHEMES",
    "Dialect",
    "DriverToken",
    "OPERATORS",
    "SortMode",
]


class Dialect(str, Enum):
    """Database engine families understood by the connection builder."""

    MYSQL = "mysql"
    MARIADB = "mariadb"
    PGSQL = "pgsql"
    SYBASE = "sybase"
    ORACLE = "oracle"
    MSSQL = "mssql"
    SQLITE = "sqlite"

    @classmethod
    def parse(cls, value: str | None) -> Dialect | None:
        """
        Resolve a ``dbms`` tag to a dialect.

        Parameters
        ----------
        value : str | None
            Tag from the configuration, case-insensitive.

        Returns
        -------
        Dialect | None
            Matching dialect, or None when the tag is unknown or missing.
        """
        if value is None:
            return None
        tag = value.strip().lower()
        tag = _DIALECT_ALIASES.get(tag, tag)
        try:
            return cls(tag)
        except ValueError:
            return None


_DIALECT_ALIASES = {
    "postgres": "pgsql",
    "postgresql": "pgsql",
}


class DriverToken(str, Enum):
    """Driver prefixes of PDO-style connection strings."""

    MYSQL = "mysql"
    PGSQL = "pgsql"
    DBLIB = "dblib"
    OCI = "oci"
    SQLSRV = "sqlsrv"
    SQLITE = "sqlite"


class SortMode(str, Enum):
    """ORDER BY directions."""

    ASC = "ASC"
    DESC = "DESC"


# Driver token -> SQLAlchemy drivername used to open the connection
DRIVER_URL_SCHEMES: dict[str, str] = {
    DriverToken.MYSQL.value: "mysql+pymysql",
    DriverToken.PGSQL.value: "postgresql+psycopg2",
    DriverToken.DBLIB.value: "mssql+pymssql",
    DriverToken.OCI.value: "oracle+oracledb",
    DriverToken.SQLSRV.value: "mssql+pyodbc",
    DriverToken.SQLITE.value: "sqlite",
}

# Dialects that receive ``SET NAMES '<charset>'`` after connecting
CHARSET_DIALECTS = frozenset(
    {
        Dialect.MYSQL,
        Dialect.MARIADB,
        Dialect.PGSQL,
        Dialect.SYBASE,
        Dialect.MSSQL,
    }
)

# Comparison operators recognized as the leading word of a where() value.
# Order matters: the first match wins.
OPERATORS: tuple[str, ...] = ("!=", "<>", "<=", ">=", "=", "<", ">")

DEFAULT_ORACLE_PORT = 1521

COUNT_ALIAS = "cnt"
