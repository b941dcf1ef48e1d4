"""Clause state and SQL rendering.

Everything here is pure string assembly: :class:`ClauseState` holds the
fragments accumulated by the builder's mutators, and the ``render_*``
functions turn a state into a complete statement. Execution lives in
:mod:`lightql.database`.

Clauses are joined with single spaces, in this order::

    SELECT [DISTINCT] fields FROM table [WHERE w] [ORDER BY f m] [LIMIT o, c] [GROUP BY g]

Examples
--------
>>> state = ClauseState(table="t")
>>> state.add_where({"a": "= 1"})
>>> state.add_where({"b": "2"})
>>> render_select(state, "*")
'SELECT * FROM t WHERE (a = 1) OR (b = 2)'
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from lightql.constants import COUNT_ALIAS, OPERATORS, SortMode
from lightql.exceptions import QueryError

__all__ = [
    "ClauseState",
    "Fields",
    "JoinClause",
    "JoinParams",
    "quote_literal",
    "render_count",
    "render_delete",
    "render_insert",
    "render_join",
    "render_select",
    "render_select_fields",
    "render_update",
    "render_where_fragment",
    "split_operator",
]

# A raw SQL string, or keyed fields (integer keys are positional)
Fields = Union[str, Sequence[str], Mapping[Any, Any]]


@dataclass(frozen=True)
class JoinClause:
    """One ``side JOIN table ON cond`` descriptor."""

    side: str
    table: str
    cond: str

    def render(self) -> str:
        parts = (self.side, "JOIN", self.table, "ON", self.cond)
        return " ".join(p for p in parts if p)


JoinParams = Union[str, Sequence[Union[JoinClause, Mapping[str, str]]]]


def _positional(key: Any) -> bool:
    return isinstance(key, int) and not isinstance(key, bool)


def split_operator(value: Any) -> tuple[str, str]:
    """
    Detect a leading comparison operator in a where() value.

    Parameters
    ----------
    value : Any
        Comparison value, e.g. ``"<= 5"`` or ``1``

    Returns
    -------
    tuple[str, str]
        Operator (``=`` when none is found) and the value without it

    Examples
    --------
    >>> split_operator("<= 5")
    ('<=', '5')
    >>> split_operator(1)
    ('=', '1')
    """
    text = str(value)
    parts = text.split(None, 1)
    if parts and parts[0] in OPERATORS:
        rest = parts[1].strip() if len(parts) > 1 else ""
        return parts[0], rest
    return "=", text.strip()


def render_where_fragment(condition: str | Mapping[Any, Any]) -> str:
    """
    Render the parenthesized fragment of a single where() call.

    Entries of a mapping are joined with ``AND``.
    """
    if isinstance(condition, Mapping):
        terms = []
        for field, value in condition.items():
            if _positional(field):
                terms.append(str(value))
            else:
                operator, rest = split_operator(value)
                terms.append(f"{field} {operator} {rest}".rstrip())
        body = " AND ".join(terms)
    else:
        body = str(condition)
    return f"({body})"


@dataclass
class ClauseState:
    """
    Clause fragments accumulated between terminal operations.

    Attributes
    ----------
    table : str | None
        Target table; survives :meth:`reset`
    where : str | None
        ``(a = 1) OR (b = 2)`` style fragment, without the keyword
    order : str | None
        ``ORDER BY field MODE``
    limit : str | None
        ``LIMIT offset, count``
    group : str | None
        Group field, without the keyword
    distinct : bool
        Whether ``DISTINCT`` is emitted
    query_string : str
        Last statement computed from this state
    """

    table: str | None = None
    where: str | None = None
    order: str | None = None
    limit: str | None = None
    group: str | None = None
    distinct: bool = False
    query_string: str = ""

    def add_where(self, condition: str | Mapping[Any, Any]) -> None:
        """Append a where() call; successive calls are joined with ``OR``."""
        fragment = render_where_fragment(condition)
        self.where = fragment if self.where is None else f"{self.where} OR {fragment}"

    def set_order(self, field: str, mode: str | SortMode = SortMode.ASC) -> None:
        mode = mode.value if isinstance(mode, SortMode) else mode
        self.order = f"ORDER BY {field} {mode}"

    def set_limit(self, offset: int, count: int) -> None:
        # Two-argument MySQL form for every dialect
        self.limit = f"LIMIT {offset}, {count}"

    def set_group(self, field: str) -> None:
        self.group = field

    def reset(self) -> None:
        """Clear every clause; the table is kept."""
        self.where = None
        self.order = None
        self.limit = None
        self.group = None
        self.distinct = False
        self.query_string = ""

    def require_table(self) -> str:
        if not self.table:
            msg = "No table selected; call from_() first"
            raise QueryError(msg)
        return self.table

    @property
    def is_clean(self) -> bool:
        """Whether no clause is pending."""
        return (
            self.where is None
            and self.order is None
            and self.limit is None
            and self.group is None
            and not self.distinct
        )


def _join_clauses(*parts: str | None) -> str:
    return " ".join(p for p in parts if p)


def _where(state: ClauseState) -> str | None:
    return f"WHERE {state.where}" if state.where is not None else None


def render_select_fields(fields: Fields) -> str:
    """
    Render a select field list.

    A string is used as-is, a sequence is joined with ``", "``, and a
    mapping renders keyed entries as ``expr AS alias`` and positional
    entries bare.
    """
    if isinstance(fields, str):
        return fields
    if isinstance(fields, Mapping):
        rendered = [
            str(alias) if _positional(expr) else f"{expr} AS {alias}"
            for expr, alias in fields.items()
        ]
        return ", ".join(rendered)
    return ", ".join(str(f) for f in fields)


def _plain_fields(fields: str | Sequence[str] | Mapping[Any, Any]) -> str:
    if isinstance(fields, str):
        return fields
    if isinstance(fields, Mapping):
        return render_select_fields(fields)
    return ",".join(str(f) for f in fields)


def quote_literal(value: Any, backslash_escapes: bool = False) -> str:
    """
    Render ``value`` as a single-quoted SQL string literal.

    Parameters
    ----------
    value : Any
        Value; converted with ``str()``
    backslash_escapes : bool, optional
        Whether the server reads ``\\`` as an escape character, by default False

    Returns
    -------
    str
        Quoted literal

    Examples
    --------
    >>> quote_literal("O'Reilly")
    "'O''Reilly'"
    >>> quote_literal("50%")
    "'50%'"
    """
    text = str(value)
    if backslash_escapes:
        text = text.replace("\\", "\\\\")
    text = text.replace("'", "''")
    return f"'{text}'"


def render_select(state: ClauseState, fields: Fields = "*") -> str:
    """Render ``SELECT`` with where, order, limit and group clauses."""
    return _join_clauses(
        "SELECT",
        "DISTINCT" if state.distinct else None,
        render_select_fields(fields),
        "FROM",
        state.require_table(),
        _where(state),
        state.order,
        state.limit,
        f"GROUP BY {state.group}" if state.group is not None else None,
    )


def _render_join_params(params: JoinParams) -> str:
    if isinstance(params, str):
        return params
    rendered = []
    for param in params:
        if not isinstance(param, JoinClause):
            param = JoinClause(
                side=param.get("side", ""),
                table=param["table"],
                cond=param["cond"],
            )
        rendered.append(param.render())
    return " ".join(rendered)


def render_join(
    state: ClauseState,
    fields: str | Sequence[str] | Mapping[Any, Any],
    params: JoinParams,
) -> str:
    """
    Render ``SELECT ... JOIN``.

    The group field is never applied to joins.
    """
    return _join_clauses(
        "SELECT",
        "DISTINCT" if state.distinct else None,
        _plain_fields(fields),
        "FROM",
        state.require_table(),
        _render_join_params(params),
        _where(state),
        state.order,
        state.limit,
    )


def render_count(state: ClauseState, fields: str | Sequence[str] = "*") -> str:
    """Render ``SELECT [group, ]COUNT(fields) AS cnt``."""
    counted = _plain_fields(fields)
    group = state.group
    return _join_clauses(
        "SELECT",
        f"{group}," if group is not None else None,
        f"COUNT({counted}) AS {COUNT_ALIAS}",
        "FROM",
        state.require_table(),
        _where(state),
        state.limit,
        f"GROUP BY {group}" if group is not None else None,
    )


def render_insert(state: ClauseState, fields_and_values: Mapping[str, Any]) -> str:
    """
    Render ``INSERT INTO table(f1,f2) VALUES(v1,v2)``.

    Values are raw SQL fragments; quote literals beforehand.
    """
    if not fields_and_values:
        msg = "insert() needs at least one field"
        raise QueryError(msg)
    fields = ",".join(str(f) for f in fields_and_values)
    values = ",".join(str(v) for v in fields_and_values.values())
    return f"INSERT INTO {state.require_table()}({fields}) VALUES({values})"


def render_update(
    state: ClauseState,
    fields_and_values: str | Mapping[str, Any],
) -> str:
    """Render ``UPDATE table SET f1=v1, f2=v2 [WHERE w]``."""
    if isinstance(fields_and_values, Mapping):
        if not fields_and_values:
            msg = "update() needs at least one field"
            raise QueryError(msg)
        updates = ", ".join(f"{f}={v}" for f, v in fields_and_values.items())
    else:
        updates = fields_and_values
    return _join_clauses(
        "UPDATE",
        state.require_table(),
        "SET",
        updates,
        _where(state),
    )


def render_delete(state: ClauseState) -> str:
    """Render ``DELETE FROM table [WHERE w]``."""
    return _join_clauses("DELETE FROM", state.require_table(), _where(state))
