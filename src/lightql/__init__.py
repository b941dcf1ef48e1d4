"""LightQL: a lightweight SQL query builder and connection wrapper."""

from __future__ import annotations

__all__ = [
    "ClauseState",
    "ConfigError",
    "ConnectionConfig",
    "ConnectionError",
    "ConnectionSpec",
    "Dialect",
    "Facade",
    "JoinClause",
    "LightQL",
    "LightQLError",
    "OneToMany",
    "PreparedStatement",
    "QueryError",
    "SortMode",
    "TableFacade",
    "build",
    "load_config",
    "one_to_many",
    "parse_dsn",
    "relations",
]

__version__ = "0.1.0"

from .annotations import OneToMany, one_to_many, relations
from .config import ConnectionConfig, load_config
from .constants import Dialect, SortMode
from .database import LightQL, PreparedStatement
from .dsn import ConnectionSpec, build, parse_dsn
from .exceptions import ConfigError, ConnectionError, LightQLError, QueryError  # noqa: A004
from .sessions import Facade, TableFacade
from .sql import ClauseState, JoinClause
