"""Connection configuration.

The configuration is validated with pydantic at the boundary (mapping, JSON
file or CLI options) and then handed to :func:`lightql.dsn.build`.

Examples
--------
>>> config = ConnectionConfig(dbms="mysql", hostname="db", database="shop")
>>> config.dialect
<Dialect.MYSQL: 'mysql'>

>>> config = ConnectionConfig.from_mapping(
...     {"dsn": {"driver": "sqlite", 0: "/tmp/shop.db"}}
... )
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from lightql.constants import Dialect
from lightql.exceptions import ConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = ["ConnectionConfig", "load_config"]


class ConnectionConfig(BaseModel):
    """
    Configuration describing how to reach a database.

    Attributes
    ----------
    dbms : str | None
        Dialect tag (mysql, mariadb, pgsql, sybase, oracle, mssql, sqlite)
    hostname : str | None
        Server address
    port : int | None
        Server port
    database : str | None
        Database name, Oracle service name, or SQLite file path
    username, password : str | None
        Credentials
    charset : str | None
        Connection character set
    socket : str | None
        Unix socket path (mysql / mariadb only)
    driver : str | None
        mssql sub-variant; ``"dblib"`` selects FreeTDS, anything else sqlsrv
    options : dict[str, Any]
        Driver option bag passed to the DBAPI ``connect()`` call
    command : list[str]
        Statements to run after connecting, before the dialect ones
    dsn : dict | None
        Connection string override; must carry a ``driver`` key
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    dbms: str | None = None
    hostname: str | None = None
    port: int | None = None
    database: str | None = None
    username: str | None = None
    password: str | None = Field(None, repr=False)
    charset: str | None = None
    socket: str | None = None
    driver: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)
    command: list[str] = Field(default_factory=list)
    dsn: dict[str | int, Any] | None = None

    @field_validator("dbms")
    @classmethod
    def _lower_dbms(cls, v: str | None) -> str | None:
        return v.strip().lower() if v is not None else None

    @field_validator("port", mode="before")
    @classmethod
    def _empty_port(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("dsn")
    @classmethod
    def _require_dsn_driver(
        cls, v: dict[str | int, Any] | None
    ) -> dict[str | int, Any] | None:
        if v is not None and not v.get("driver"):
            msg = "dsn override requires a 'driver' key"
            raise ValueError(msg)
        return v

    @property
    def dialect(self) -> Dialect | None:
        """Dialect resolved from ``dbms``, None when unknown."""
        return Dialect.parse(self.dbms)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ConnectionConfig:
        """
        Validate a plain mapping into a configuration.

        Parameters
        ----------
        data : Mapping[str, Any]
            Configuration keys and values

        Returns
        -------
        ConnectionConfig
            Validated configuration

        Raises
        ------
        ConfigError
            If validation fails
        """
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            raise ConfigError(str(e)) from e

    def merged(self, **overrides: Any) -> ConnectionConfig:
        """Return a copy with the non-None ``overrides`` applied."""
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return type(self).from_mapping(values)


def load_config(path: str | Path) -> ConnectionConfig:
    """
    Load a configuration from a JSON file.

    Parameters
    ----------
    path : str | Path
        JSON file holding a single object

    Returns
    -------
    ConnectionConfig
        Validated configuration

    Raises
    ------
    ConfigError
        If the file cannot be read, is not JSON, or does not validate
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text())
    except OSError as e:
        msg = f"Cannot read configuration file {path}: {e}"
        raise ConfigError(msg) from e
    except json.JSONDecodeError as e:
        msg = f"Invalid JSON in configuration file {path}: {e}"
        raise ConfigError(msg) from e

    if not isinstance(data, dict):
        msg = f"Configuration file {path} must contain a JSON object"
        raise ConfigError(msg)
    return ConnectionConfig.from_mapping(data)
