"""CLI commands for lightql."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from lightql.config import ConnectionConfig, load_config
from lightql.exceptions import LightQLError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from lightql.database import LightQL

console = Console()

ConfigOpt = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        envvar="LIGHTQL_CONFIG",
        help="JSON connection configuration file",
    ),
]
DbmsOpt = Annotated[
    Optional[str],
    typer.Option("--dbms", help="Dialect (mysql, mariadb, pgsql, sybase, oracle, mssql, sqlite)"),
]
HostOpt = Annotated[Optional[str], typer.Option("--host", help="Server hostname")]
PortOpt = Annotated[Optional[int], typer.Option("--port", help="Server port")]
DatabaseOpt = Annotated[
    Optional[str], typer.Option("--database", "-d", help="Database name or SQLite path")
]
UserOpt = Annotated[Optional[str], typer.Option("--user", "-u", help="Username")]
PasswordOpt = Annotated[Optional[str], typer.Option("--password", "-p", help="Password")]
CharsetOpt = Annotated[Optional[str], typer.Option("--charset", help="Connection charset")]
SocketOpt = Annotated[Optional[str], typer.Option("--socket", help="Unix socket path")]
DriverOpt = Annotated[
    Optional[str], typer.Option("--driver", help="mssql sub-variant (dblib or sqlsrv)")
]
WhereOpt = Annotated[
    Optional[list[str]],
    typer.Option("--where", "-w", help="Where condition; repeated conditions are OR-ed"),
]


def resolve_config(
    config_file: Path | None,
    **overrides: object,
) -> ConnectionConfig:
    """Merge a configuration file with explicit command-line options."""
    base = load_config(config_file) if config_file else ConnectionConfig()
    renamed = {
        "hostname": overrides.pop("host", None),
        "username": overrides.pop("user", None),
        **overrides,
    }
    return base.merged(**renamed)


def _fail(error: Exception) -> typer.Exit:
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    return typer.Exit(code=1)


def _connect(config: ConnectionConfig) -> LightQL:
    from lightql.database import LightQL

    return LightQL(config)


def _print_rows(rows: Sequence[dict], columns: Iterable[str], title: str) -> None:
    if not rows:
        console.print("[yellow]No rows[/yellow]")
        return
    table = Table(title=title)
    for column in columns:
        table.add_column(str(column), style="cyan")
    for row in rows:
        table.add_row(*("NULL" if v is None else str(v) for v in row.values()))
    console.print(table)


def dsn_command(
    config_file: ConfigOpt = None,
    dbms: DbmsOpt = None,
    host: HostOpt = None,
    port: PortOpt = None,
    database: DatabaseOpt = None,
    charset: CharsetOpt = None,
    socket: SocketOpt = None,
    driver: DriverOpt = None,
) -> None:
    """
    Print the connection string and setup statements for a configuration.

    Nothing is opened; this only runs the connection builder.
    """
    from lightql.dsn import build

    try:
        config = resolve_config(
            config_file,
            dbms=dbms,
            host=host,
            port=port,
            database=database,
            charset=charset,
            socket=socket,
            driver=driver,
        )
        spec = build(config)
    except LightQLError as e:
        raise _fail(e) from e

    console.print(spec.dsn, highlight=False, markup=False)
    for statement in spec.setup_statements:
        console.print(f"  {statement}", highlight=False, markup=False)


def query_command(
    sql: Annotated[str, typer.Argument(help="SQL statement to execute")],
    config_file: ConfigOpt = None,
    dbms: DbmsOpt = None,
    host: HostOpt = None,
    port: PortOpt = None,
    database: DatabaseOpt = None,
    user: UserOpt = None,
    password: PasswordOpt = None,
    charset: CharsetOpt = None,
    socket: SocketOpt = None,
    driver: DriverOpt = None,
) -> None:
    """
    Execute a raw SQL statement.

    Rows are printed as a table; statements without rows print the number
    of affected rows.
    """
    try:
        config = resolve_config(
            config_file,
            dbms=dbms,
            host=host,
            port=port,
            database=database,
            user=user,
            password=password,
            charset=charset,
            socket=socket,
            driver=driver,
        )
        with _connect(config) as db:
            result = db.query(sql)
            if result.returns_rows:
                columns = list(result.keys())
                rows = [dict(r) for r in result.mappings()]
                _print_rows(rows, columns, title=f"{len(rows)} rows")
            else:
                console.print(f"[green]✓[/green] {result.rowcount} rows affected")
    except LightQLError as e:
        raise _fail(e) from e


def select_command(
    table: Annotated[str, typer.Argument(help="Table to select from")],
    fields: Annotated[str, typer.Option("--fields", "-f", help="Field list")] = "*",
    where: WhereOpt = None,
    order: Annotated[Optional[str], typer.Option("--order", help="Order field")] = None,
    desc: Annotated[bool, typer.Option("--desc", help="Descending order")] = False,
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", help="Maximum rows")] = None,
    offset: Annotated[int, typer.Option("--offset", help="Rows to skip")] = 0,
    distinct: Annotated[bool, typer.Option("--distinct", help="SELECT DISTINCT")] = False,
    config_file: ConfigOpt = None,
    dbms: DbmsOpt = None,
    host: HostOpt = None,
    port: PortOpt = None,
    database: DatabaseOpt = None,
    user: UserOpt = None,
    password: PasswordOpt = None,
) -> None:
    """
    Select rows from a table with the query builder.
    """
    try:
        config = resolve_config(
            config_file,
            dbms=dbms,
            host=host,
            port=port,
            database=database,
            user=user,
            password=password,
        )
        with _connect(config) as db:
            db.from_(table)
            for condition in where or []:
                db.where(condition)
            if order:
                db.order(order, "DESC" if desc else "ASC")
            if limit is not None:
                db.limit(offset, limit)
            if distinct:
                db.distinct()
            result = db.select(fields)
            columns = list(result.keys())
            rows = [dict(r) for r in result.mappings()]
            _print_rows(rows, columns, title=f"{table} ({len(rows)} rows)")
    except LightQLError as e:
        raise _fail(e) from e


def count_command(
    table: Annotated[str, typer.Argument(help="Table to count rows of")],
    where: WhereOpt = None,
    group_by: Annotated[
        Optional[str], typer.Option("--group-by", "-g", help="Count per value of this field")
    ] = None,
    config_file: ConfigOpt = None,
    dbms: DbmsOpt = None,
    host: HostOpt = None,
    port: PortOpt = None,
    database: DatabaseOpt = None,
    user: UserOpt = None,
    password: PasswordOpt = None,
) -> None:
    """
    Count rows of a table, optionally per group.
    """
    try:
        config = resolve_config(
            config_file,
            dbms=dbms,
            host=host,
            port=port,
            database=database,
            user=user,
            password=password,
        )
        with _connect(config) as db:
            db.from_(table)
            for condition in where or []:
                db.where(condition)
            if group_by:
                db.group_by(group_by)
            counts = db.count()
    except LightQLError as e:
        raise _fail(e) from e

    if isinstance(counts, dict):
        rows = [{group_by: key, "count": value} for key, value in counts.items()]
        _print_rows(rows, [group_by, "count"], title=f"{table} by {group_by}")
    else:
        console.print(str(counts), highlight=False)
