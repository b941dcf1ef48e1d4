"""Connection string builder.

Turns a :class:`~lightql.config.ConnectionConfig` into a PDO-style
connection string (``driver:key1=val1;key2=val2``) and the list of
statements to run right after connecting.

Each dialect has its own handler; :data:`DIALECT_HANDLERS` maps every
:class:`~lightql.constants.Dialect` member to one.

Examples
--------
>>> spec = build({"dbms": "pgsql", "hostname": "db", "database": "shop"})
>>> spec.dsn
'pgsql:host=db;dbname=shop'
>>> spec.setup_statements
()
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loguru import logger

from lightql.config import ConnectionConfig
from lightql.constants import (
    CHARSET_DIALECTS,
    DEFAULT_ORACLE_PORT,
    Dialect,
    DriverToken,
)
from lightql.exceptions import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = [
    "DIALECT_HANDLERS",
    "Attribute",
    "ConnectionSpec",
    "build",
    "format_dsn",
    "is_positional",
    "parse_dsn",
]

# (key, value); integer keys are positional and rendered as bare values
Attribute = tuple[str | int, str]
Handler = Callable[[ConnectionConfig], tuple[str, list[Attribute], list[str]]]


@dataclass(frozen=True)
class ConnectionSpec:
    """
    Result of building a connection string.

    Attributes
    ----------
    driver : str
        Driver token (``mysql``, ``pgsql``, ``dblib``, ``oci``, ``sqlsrv``,
        ``sqlite``); empty for an unrecognized dialect
    attributes : tuple[Attribute, ...]
        Ordered connection attributes
    setup_statements : tuple[str, ...]
        Statements to run once, in order, after connecting
    """

    driver: str
    attributes: tuple[Attribute, ...] = ()
    setup_statements: tuple[str, ...] = ()

    @property
    def dsn(self) -> str:
        """Rendered connection string."""
        return format_dsn(self.driver, self.attributes)

    def __str__(self) -> str:
        return self.dsn


def is_positional(key: Any) -> bool:
    """Whether an attribute key is positional (an integer or all digits)."""
    if isinstance(key, bool):
        return False
    if isinstance(key, int):
        return True
    return isinstance(key, str) and key.isdigit()


def format_dsn(driver: str, attributes: Iterable[Attribute]) -> str:
    """
    Render a connection string.

    Parameters
    ----------
    driver : str
        Driver token
    attributes : Iterable[Attribute]
        Ordered attributes; positional ones are emitted as bare values

    Returns
    -------
    str
        ``driver:key1=val1;key2=val2``
    """
    stack = [
        str(value) if is_positional(key) else f"{key}={value}"
        for key, value in attributes
    ]
    return f"{driver}:{';'.join(stack)}"


def parse_dsn(dsn: str) -> tuple[str, list[Attribute]]:
    """
    Split a connection string back into driver token and attributes.

    Parameters
    ----------
    dsn : str
        Connection string as produced by :func:`format_dsn`

    Returns
    -------
    tuple[str, list[Attribute]]
        Driver token and attributes; segments without ``=`` get
        positional integer keys

    Raises
    ------
    ConfigError
        If the string has no ``driver:`` prefix
    """
    driver, sep, rest = dsn.partition(":")
    if not sep:
        msg = f"Connection string has no driver prefix: {dsn!r}"
        raise ConfigError(msg)

    # sqlite paths may contain ';' or '=', keep them whole
    if driver == DriverToken.SQLITE.value:
        return driver, [(0, rest)] if rest else []

    attributes: list[Attribute] = []
    position = 0
    for segment in rest.split(";") if rest else []:
        key, eq, value = segment.partition("=")
        if eq:
            attributes.append((key, value))
        else:
            attributes.append((position, segment))
            position += 1
    return driver, attributes


def _require(config: ConnectionConfig, *fields: str) -> None:
    dialect = config.dbms
    missing = [f for f in fields if not getattr(config, f)]
    if missing:
        msg = f"Dialect {dialect!r} requires: {', '.join(missing)}"
        raise ConfigError(msg)


def _mysql(config: ConnectionConfig) -> tuple[str, list[Attribute], list[str]]:
    _require(config, "database")
    attributes: list[Attribute] = [("dbname", config.database)]
    if config.socket:
        attributes.append(("unix_socket", config.socket))
    else:
        _require(config, "hostname")
        attributes.append(("host", config.hostname))
        if config.port is not None:
            attributes.append(("port", str(config.port)))
    # Standard quoted identifiers
    return DriverToken.MYSQL.value, attributes, ["SET SQL_MODE=ANSI_QUOTES"]


def _host_dbname_port(
    driver: DriverToken,
) -> Handler:
    def handler(config: ConnectionConfig) -> tuple[str, list[Attribute], list[str]]:
        _require(config, "hostname", "database")
        attributes: list[Attribute] = [
            ("host", config.hostname),
            ("dbname", config.database),
        ]
        if config.port is not None:
            attributes.append(("port", str(config.port)))
        return driver.value, attributes, []

    return handler


def _oracle(config: ConnectionConfig) -> tuple[str, list[Attribute], list[str]]:
    _require(config, "database")
    if config.hostname:
        port = config.port if config.port is not None else DEFAULT_ORACLE_PORT
        dbname = f"//{config.hostname}:{port}/{config.database}"
    else:
        dbname = config.database
    attributes: list[Attribute] = [("dbname", dbname)]
    if config.charset:
        attributes.append(("charset", config.charset))
    return DriverToken.OCI.value, attributes, []


def _mssql(config: ConnectionConfig) -> tuple[str, list[Attribute], list[str]]:
    _require(config, "hostname", "database")
    if config.driver == DriverToken.DBLIB.value:
        port = f":{config.port}" if config.port is not None else ""
        driver = DriverToken.DBLIB.value
        attributes: list[Attribute] = [
            ("host", f"{config.hostname}{port}"),
            ("dbname", config.database),
        ]
    else:
        port = f",{config.port}" if config.port is not None else ""
        driver = DriverToken.SQLSRV.value
        attributes = [
            ("Server", f"{config.hostname}{port}"),
            ("Database", config.database),
        ]
    commands = [
        "SET QUOTED_IDENTIFIER ON",
        "SET ANSI_NULLS ON",
    ]
    return driver, attributes, commands


def _sqlite(config: ConnectionConfig) -> tuple[str, list[Attribute], list[str]]:
    _require(config, "database")
    return DriverToken.SQLITE.value, [(0, config.database)], []


DIALECT_HANDLERS: dict[Dialect, Handler] = {
    Dialect.MYSQL: _mysql,
    Dialect.MARIADB: _mysql,
    Dialect.PGSQL: _host_dbname_port(DriverToken.PGSQL),
    Dialect.SYBASE: _host_dbname_port(DriverToken.DBLIB),
    Dialect.ORACLE: _oracle,
    Dialect.MSSQL: _mssql,
    Dialect.SQLITE: _sqlite,
}


def _override(dsn: Mapping[str | int, Any]) -> tuple[str, list[Attribute]]:
    driver = dsn.get("driver")
    if not driver:
        msg = "dsn override requires a 'driver' key"
        raise ConfigError(msg)
    attributes: list[Attribute] = [
        (int(key) if is_positional(key) else key, str(value))
        for key, value in dsn.items()
        if key != "driver"
    ]
    return str(driver), attributes


def build(config: ConnectionConfig | Mapping[str, Any]) -> ConnectionSpec:
    """
    Build the connection string and setup statements for a configuration.

    Parameters
    ----------
    config : ConnectionConfig | Mapping[str, Any]
        Connection configuration

    Returns
    -------
    ConnectionSpec
        Driver token, attributes and setup statements

    Raises
    ------
    ConfigError
        If a field the dialect needs is missing, or the override is malformed

    Notes
    -----
    An unrecognized ``dbms`` (without override) yields an empty driver token
    and no attributes. The resulting ``":"`` string cannot be opened.
    """
    if not isinstance(config, ConnectionConfig):
        config = ConnectionConfig.from_mapping(config)

    commands = list(config.command)
    dialect = config.dialect

    if config.dsn is not None:
        driver, attributes = _override(config.dsn)
    elif dialect is None:
        logger.warning(f"Unrecognized dialect {config.dbms!r}; empty connection string")
        driver, attributes = "", []
    else:
        driver, attributes, dialect_commands = DIALECT_HANDLERS[dialect](config)
        commands.extend(dialect_commands)

    if dialect in CHARSET_DIALECTS and config.charset:
        commands.append(f"SET NAMES '{config.charset}'")

    return ConnectionSpec(
        driver=driver,
        attributes=tuple(attributes),
        setup_statements=tuple(commands),
    )
