"""Console script for lightql."""

from __future__ import annotations

import typer

from lightql.cli.commands import count_command, dsn_command, query_command, select_command

app = typer.Typer(
    name="lightql",
    help="LightQL - build connection strings and run queries from the shell",
    no_args_is_help=True,
)

app.command(name="dsn")(dsn_command)
app.command(name="query")(query_command)
app.command(name="select")(select_command)
app.command(name="count")(count_command)


if __name__ == "__main__":
    app()
