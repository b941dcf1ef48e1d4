"""Query builder and executor.

:class:`LightQL` owns one live connection and accumulates clause state for
a single table through chainable mutators. Terminal operations (``select``,
``join``, ``count``, ``insert``, ``update``, ``delete``) render the
statement, execute it, and reset the clause state, whether the statement
succeeded or not.

A builder is single-owner: clause state is mutated in place, so an instance
must not be shared between threads or tasks. Create one builder per worker.

Examples
--------
>>> db = LightQL({"dbms": "sqlite", "database": ":memory:"})
>>> _ = db.query("CREATE TABLE t (id INTEGER PRIMARY KEY, a INTEGER, b TEXT)")
>>> db.from_("t").insert({"a": "1", "b": db.quote("x")})
1
>>> db.where({"a": "= 1"}).select_first()
{'id': 1, 'a': 1, 'b': 'x'}
>>> db.count()
1
>>> db.close()
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from lightql import sql
from lightql.config import ConnectionConfig
from lightql.constants import SortMode
from lightql.dsn import build
from lightql.engine import create_builder_engine, uses_backslash_escapes
from lightql.exceptions import ConnectionError, QueryError, driver_error_detail

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, CursorResult, Engine, Row

    from lightql.dsn import ConnectionSpec

__all__ = ["LightQL", "PreparedStatement"]


def _query_error(exc: SQLAlchemyError, query: str) -> QueryError:
    message, code = driver_error_detail(exc)
    return QueryError(message, code=code, query=query)


class PreparedStatement:
    """
    Parameterized statement bound to a builder's connection.

    Parameters use the named ``:param`` style.

    Examples
    --------
    >>> stmt = db.prepare("SELECT * FROM t WHERE a = :a")
    >>> rows = stmt.execute({"a": 1}).mappings().all()
    """

    def __init__(
        self,
        owner: LightQL,
        query: str,
        options: Mapping[str, Any] | None = None,
    ) -> None:
        self._owner = owner
        self.query = query
        self._statement = text(query)
        if options:
            self._statement = self._statement.execution_options(**options)

    def execute(
        self,
        params: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> CursorResult:
        """
        Execute with bound parameters.

        Parameters
        ----------
        params : Mapping[str, Any], optional
            Parameter values by name
        **kwargs : Any
            More parameter values

        Returns
        -------
        CursorResult
            Statement result

        Raises
        ------
        ConnectionError
            If the owning builder is closed
        QueryError
            If execution fails
        """
        values = {**(params or {}), **kwargs}
        connection = self._owner._require_connection()
        logger.debug(f"execute prepared: {self.query} {list(values)}")
        try:
            return connection.execute(self._statement, values)
        except SQLAlchemyError as e:
            raise _query_error(e, self.query) from e


class LightQL:
    """
    Database connection wrapper building SQL from method chains.

    Parameters
    ----------
    config : ConnectionConfig | Mapping[str, Any]
        Connection configuration

    Attributes
    ----------
    spec : ConnectionSpec
        Connection string and setup statements
    state : ClauseState
        Accumulated clause fragments
    last_query : str
        Last statement executed by a terminal operation

    Raises
    ------
    ConfigError
        If the configuration is incomplete
    ConnectionError
        If the connection cannot be opened
    """

    def __init__(self, config: ConnectionConfig | Mapping[str, Any]) -> None:
        if not isinstance(config, ConnectionConfig):
            config = ConnectionConfig.from_mapping(config)
        self.config = config
        self.spec: ConnectionSpec = build(config)
        self.state = sql.ClauseState()
        self.last_query = ""
        self._engine: Engine | None = None
        self._connection: Connection | None = None
        self._connect()

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    @property
    def dsn(self) -> str:
        """Connection string used for this builder."""
        return self.spec.dsn

    @property
    def hostname(self) -> str | None:
        return self.config.hostname

    @property
    def database(self) -> str | None:
        return self.config.database

    @property
    def username(self) -> str | None:
        return self.config.username

    @property
    def dialect_name(self) -> str:
        """SQLAlchemy dialect name of the open engine."""
        if self._engine is None:
            msg = "Connection is closed"
            raise ConnectionError(msg)
        return self._engine.dialect.name

    @property
    def closed(self) -> bool:
        return self._connection is None

    def _connect(self) -> None:
        engine = create_builder_engine(self.spec, self.config)
        try:
            connection = engine.connect()
        except SQLAlchemyError as e:
            engine.dispose()
            message, _ = driver_error_detail(e)
            logger.error(f"Failed to connect to {self.dsn}: {message}")
            raise ConnectionError(message) from e
        self._engine = engine
        self._connection = connection
        logger.info(f"Connected to {self.dsn}")

    def _require_connection(self) -> Connection:
        if self._connection is None:
            msg = "Connection is closed"
            raise ConnectionError(msg)
        return self._connection

    def close(self) -> None:
        """Close the connection; later operations raise ConnectionError."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info(f"Closed connection to {self.dsn}")

    def __enter__(self) -> LightQL:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        status = "closed" if self.closed else "open"
        return f"<LightQL {self.dsn!r} table={self.state.table!r} {status}>"

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    @property
    def query_string(self) -> str:
        """Statement computed from the current state (empty after reset)."""
        return self.state.query_string

    @property
    def table(self) -> str | None:
        return self.state.table

    def from_(self, table: str) -> LightQL:
        """Change the target table."""
        self.state.table = table
        return self

    def where(self, condition: str | Mapping[Any, Any]) -> LightQL:
        """
        Add a where condition.

        Parameters
        ----------
        condition : str | Mapping[Any, Any]
            Raw boolean expression, or mapping of field → comparison.
            A comparison may start with one of ``!= <> <= >= = < >``
            (default ``=``); integer keys append the value verbatim.

        Returns
        -------
        LightQL
            self

        Notes
        -----
        Entries of one call are joined with ``AND``; successive calls are
        joined with ``OR``::

            db.where({"a": "= 1"}).where({"b": "2"})
            # WHERE (a = 1) OR (b = 2)
        """
        self.state.add_where(condition)
        return self

    def order(self, field: str, mode: str | SortMode = SortMode.ASC) -> LightQL:
        """Set the order clause, replacing any previous one."""
        self.state.set_order(field, mode)
        return self

    def limit(self, offset: int, count: int) -> LightQL:
        """Set ``LIMIT offset, count``, replacing any previous limit."""
        self.state.set_limit(offset, count)
        return self

    def group_by(self, field: str) -> LightQL:
        """Set the group field, replacing any previous one."""
        self.state.set_group(field)
        return self

    def distinct(self) -> LightQL:
        """Emit ``SELECT DISTINCT`` in the next select or join."""
        self.state.distinct = True
        return self

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _run(self, render, *args: Any) -> CursorResult:
        """Render from state, execute, and reset the state in every case."""
        try:
            query = render(self.state, *args)
            self.state.query_string = query
            self.last_query = query
            connection = self._require_connection()
            logger.debug(f"execute: {query}")
            try:
                return connection.exec_driver_sql(
                    query, execution_options={"no_parameters": True}
                )
            except SQLAlchemyError as e:
                error = _query_error(e, query)
                logger.debug(f"query failed: {error.message}")
                raise error from e
        finally:
            self.state.reset()

    def select(self, fields: sql.Fields = "*") -> CursorResult:
        """
        Select rows from the current table.

        Parameters
        ----------
        fields : str | Sequence[str] | Mapping[Any, Any], optional
            Field list string, sequence of fields, or mapping
            expression → alias (integer keys emitted bare), by default "*"

        Returns
        -------
        CursorResult
            Live result

        Raises
        ------
        QueryError
            If execution fails
        """
        return self._run(sql.render_select, fields)

    def select_array(self, fields: sql.Fields = "*") -> list[dict[str, Any]]:
        """Select rows as a list of dicts."""
        return [dict(row) for row in self.select(fields).mappings()]

    def select_object(self, fields: sql.Fields = "*") -> list[Row]:
        """Select rows as a list of row objects with attribute access."""
        return list(self.select(fields))

    def select_first(self, fields: sql.Fields = "*") -> dict[str, Any] | None:
        """
        Select the first row as a dict.

        Returns
        -------
        dict[str, Any] | None
            First row, or None when nothing matched
        """
        row = self.select(fields).mappings().first()
        return dict(row) if row is not None else None

    def join(
        self,
        fields: str | Sequence[str] | Mapping[Any, Any],
        params: sql.JoinParams,
    ) -> CursorResult:
        """
        Select rows with table joins.

        Parameters
        ----------
        fields : str | Sequence[str] | Mapping[Any, Any]
            Fields to select; sequences are joined with ``,``
        params : str | Sequence[JoinClause | Mapping[str, str]]
            Raw join clause, or descriptors with ``side``, ``table`` and
            ``cond``, rendered in order as ``side JOIN table ON cond``

        Returns
        -------
        CursorResult
            Live result

        Notes
        -----
        The group field is not applied to joins.
        """
        return self._run(sql.render_join, fields, params)

    def join_array(
        self,
        fields: str | Sequence[str] | Mapping[Any, Any],
        params: sql.JoinParams,
    ) -> list[dict[str, Any]]:
        """Join and return rows as a list of dicts."""
        return [dict(row) for row in self.join(fields, params).mappings()]

    def join_object(
        self,
        fields: str | Sequence[str] | Mapping[Any, Any],
        params: sql.JoinParams,
    ) -> list[Row]:
        """Join and return rows as row objects."""
        return list(self.join(fields, params))

    def count(self, fields: str | Sequence[str] = "*") -> int | dict[Any, int]:
        """
        Count rows.

        Returns
        -------
        int | dict[Any, int]
            Single count (0 when no row comes back, e.g. past a limit
            offset), or group value → count when a group is set
        """
        grouped = self.state.group is not None
        result = self._run(sql.render_count, fields)
        if grouped:
            return {row[0]: int(row[-1]) for row in result}
        row = result.first()
        return int(row[-1]) if row is not None else 0

    def insert(self, fields_and_values: Mapping[str, Any]) -> int:
        """
        Insert a row.

        Parameters
        ----------
        fields_and_values : Mapping[str, Any]
            Field → raw SQL value fragment. Values are not parameter-bound;
            quote string literals with :meth:`quote`.

        Returns
        -------
        int
            Number of inserted rows
        """
        return self._run(sql.render_insert, fields_and_values).rowcount

    def update(self, fields_and_values: str | Mapping[str, Any]) -> int:
        """
        Update rows matching the where clause.

        Parameters
        ----------
        fields_and_values : str | Mapping[str, Any]
            Field → raw SQL value fragment, or a raw ``SET`` clause

        Returns
        -------
        int
            Number of affected rows
        """
        return self._run(sql.render_update, fields_and_values).rowcount

    def delete(self) -> int:
        """Delete rows matching the where clause; return the affected count."""
        return self._run(sql.render_delete).rowcount

    # ------------------------------------------------------------------
    # Escape hatches
    # ------------------------------------------------------------------

    def prepare(
        self,
        query: str,
        options: Mapping[str, Any] | None = None,
    ) -> PreparedStatement:
        """Prepare a parameterized statement (``:name`` placeholders)."""
        self._require_connection()
        return PreparedStatement(self, query, options)

    def query(
        self,
        query: str,
        options: Mapping[str, Any] | None = None,
    ) -> CursorResult:
        """
        Execute a raw statement, bypassing the clause state.

        Raises
        ------
        ConnectionError
            If the builder is closed
        QueryError
            If execution fails
        """
        connection = self._require_connection()
        execution_options = {"no_parameters": True, **(options or {})}
        logger.debug(f"execute raw: {query}")
        try:
            return connection.exec_driver_sql(
                query, execution_options=execution_options
            )
        except SQLAlchemyError as e:
            raise _query_error(e, query) from e

    def quote(self, value: Any) -> str:
        """
        Quote a value as a string literal for the connected dialect.

        Single quotes are doubled. Backslashes are doubled too when the
        server treats them as escapes (MySQL without
        ``NO_BACKSLASH_ESCAPES``, PostgreSQL with
        ``standard_conforming_strings`` off). ``%`` is left alone since
        builder statements are sent without parameter substitution.

        Examples
        --------
        >>> db.quote("O'Reilly")
        "'O''Reilly'"
        """
        self._require_connection()
        return sql.quote_literal(value, uses_backslash_escapes(self._engine.dialect))
