"""Exception hierarchy for lightql."""

from __future__ import annotations

from typing import Any

__all__ = [
    "ConfigError",
    "ConnectionError",
    "LightQLError",
    "QueryError",
    "driver_error_detail",
]


class LightQLError(Exception):
    """Base class for all lightql errors."""


class ConfigError(LightQLError):
    """Malformed or incomplete connection configuration."""


class ConnectionError(LightQLError):  # noqa: A001
    """
    Failure to open or use a database connection.

    The message is the underlying driver's message text, unchanged.
    """


class QueryError(LightQLError):
    """
    Statement execution failure.

    Parameters
    ----------
    message : str
        Driver error text
    code : Any, optional
        Driver error code (MySQL errno, PostgreSQL SQLSTATE, ...)
    query : str, optional
        Statement that failed
    """

    def __init__(
        self,
        message: str,
        code: Any = None,
        query: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.query = query


def driver_error_detail(exc: BaseException) -> tuple[str, Any]:
    """
    Extract the driver message and error code from an exception.

    SQLAlchemy wraps DBAPI exceptions; the driver exception is available as
    ``exc.orig`` and carries the text reported by the database.

    Parameters
    ----------
    exc : BaseException
        Exception raised while talking to the database

    Returns
    -------
    tuple[str, Any]
        Driver message and error code (None when the driver has none)
    """
    orig = getattr(exc, "orig", None)
    if orig is None:
        return str(exc), None

    code = None
    args = getattr(orig, "args", ())
    for attr in ("pgcode", "sqlite_errorcode", "code"):
        value = getattr(orig, attr, None)
        if value is not None:
            code = value
            break
    if code is None and len(args) > 1 and isinstance(args[0], int):
        # pymysql / pymssql style: (errno, message)
        code = args[0]
        message = args[1]
        if isinstance(message, bytes):
            message = message.decode(errors="replace")
        return str(message), code

    return str(orig), code
