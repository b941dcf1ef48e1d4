"""Opening connections from a connection string.

The PDO-style connection string built by :mod:`lightql.dsn` is translated
into a SQLAlchemy URL, and the engine is configured so the setup
statements run on every new DBAPI connection.

Driver token → SQLAlchemy dialect:

=========  ======================
mysql      ``mysql+pymysql``
pgsql      ``postgresql+psycopg2``
dblib      ``mssql+pymssql``
sqlsrv     ``mssql+pyodbc``
oci        ``oracle+oracledb``
sqlite     ``sqlite``
=========  ======================
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL
from sqlalchemy.exc import ArgumentError
from sqlalchemy.pool import NullPool, StaticPool

from lightql.constants import DRIVER_URL_SCHEMES, DriverToken
from lightql.dsn import is_positional
from lightql.exceptions import ConnectionError

if TYPE_CHECKING:
    from sqlalchemy.engine import Dialect as SADialect
    from sqlalchemy.engine import Engine

    from lightql.config import ConnectionConfig
    from lightql.dsn import ConnectionSpec

__all__ = ["create_builder_engine", "url_from_spec", "uses_backslash_escapes"]


def _split_port(address: str, separator: str) -> tuple[str, int | None]:
    host, sep, port = address.rpartition(separator)
    if sep and port.isdigit():
        return host, int(port)
    return address, None


def url_from_spec(
    spec: ConnectionSpec,
    username: str | None = None,
    password: str | None = None,
) -> URL:
    """
    Translate a connection spec into a SQLAlchemy URL.

    Parameters
    ----------
    spec : ConnectionSpec
        Built connection string
    username, password : str | None
        Credentials

    Returns
    -------
    URL
        SQLAlchemy URL

    Raises
    ------
    ConnectionError
        If the driver token has no SQLAlchemy counterpart

    Examples
    --------
    >>> from lightql.dsn import build
    >>> url = url_from_spec(build({"dbms": "sqlite", "database": ":memory:"}))
    >>> url.render_as_string()
    'sqlite:///:memory:'
    """
    scheme = DRIVER_URL_SCHEMES.get(spec.driver)
    if scheme is None:
        msg = f"could not find driver for connection string {spec.dsn!r}"
        raise ConnectionError(msg)

    host: str | None = None
    port: int | None = None
    database: str | None = None
    query: dict[str, str] = {}

    for key, value in spec.attributes:
        if is_positional(key):
            database = value
        elif key == "host":
            # dblib accepts host:port
            host, port = _split_port(value, ":")
        elif key == "Server":
            # sqlsrv accepts host,port
            host, port = _split_port(value, ",")
        elif key == "port":
            if not value.isdigit():
                msg = f"invalid port {value!r} in connection string {spec.dsn!r}"
                raise ConnectionError(msg)
            port = int(value)
        elif key in ("dbname", "Database"):
            database = value
        else:
            query[key] = value

    if spec.driver == DriverToken.OCI.value:
        if database and database.startswith("//"):
            # //host:port/service
            address, _, service = database[2:].partition("/")
            host, port = _split_port(address, ":")
            database = None
            query["service_name"] = service
        # python-oracledb always talks UTF-8
        query.pop("charset", None)

    if spec.driver == DriverToken.SQLITE.value:
        username = password = None

    return URL.create(
        scheme,
        username=username,
        password=password,
        host=host,
        port=port,
        database=database,
        query=query,
    )


def uses_backslash_escapes(dialect: SADialect) -> bool:
    """
    Whether string literals of ``dialect`` treat backslash as an escape.

    The MySQL and PostgreSQL dialects detect this from the server when the
    first connection is made (``NO_BACKSLASH_ESCAPES`` in ``sql_mode``,
    ``standard_conforming_strings``); other dialects never escape.
    """
    return bool(getattr(dialect, "_backslash_escapes", False))


def create_builder_engine(spec: ConnectionSpec, config: ConnectionConfig) -> Engine:
    """
    Create the engine backing one builder.

    Parameters
    ----------
    spec : ConnectionSpec
        Built connection string and setup statements
    config : ConnectionConfig
        Configuration providing credentials and the driver option bag

    Returns
    -------
    Engine
        Engine in autocommit mode; setup statements run on each new
        DBAPI connection

    Raises
    ------
    ConnectionError
        If the URL cannot be built or the driver is not installed
    """
    url = url_from_spec(spec, config.username, config.password)
    connect_args: dict[str, Any] = dict(config.options)

    # A builder holds exactly one connection
    if spec.driver == DriverToken.SQLITE.value:
        connect_args.setdefault("check_same_thread", False)
        poolclass = StaticPool
    else:
        poolclass = NullPool

    try:
        engine = create_engine(
            url,
            connect_args=connect_args,
            poolclass=poolclass,
            isolation_level="AUTOCOMMIT",
        )
    except (ArgumentError, ImportError) as e:
        raise ConnectionError(str(e)) from e

    statements = spec.setup_statements
    if statements:

        # Runs before the dialect's first-connect initialization
        @event.listens_for(engine, "connect", insert=True)
        def run_setup_statements(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            try:
                for statement in statements:
                    logger.debug(f"setup: {statement}")
                    cursor.execute(statement)
            finally:
                cursor.close()

    return engine
