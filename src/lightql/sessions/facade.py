"""Entity facades.

:class:`Facade` is the CRUD contract for entity access. :class:`TableFacade`
implements it for flat dataclass entities stored one per row, on top of a
:class:`~lightql.database.LightQL` builder.
"""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from adaptix import Retort
from loguru import logger

from lightql.annotations import relations
from lightql.exceptions import QueryError

if TYPE_CHECKING:
    from lightql.database import LightQL

__all__ = ["Facade", "TableFacade"]

T = TypeVar("T")


class Facade(ABC, Generic[T]):
    """CRUD contract for entity facades."""

    @abstractmethod
    def create(self, entity: T) -> None:
        """Persist a new entity."""

    @abstractmethod
    def edit(self, entity: T) -> None:
        """Persist changes to an existing entity."""

    @abstractmethod
    def delete(self, entity: T) -> None:
        """Remove an entity."""

    @abstractmethod
    def find(self, id_value: Any) -> T | None:
        """Find an entity by id; None when missing."""

    @abstractmethod
    def find_all(self) -> list[T]:
        """Find all entities."""

    @abstractmethod
    def find_range(self, start: int, length: int) -> list[T]:
        """Find ``length`` entities starting at offset ``start``."""

    @abstractmethod
    def count(self) -> int:
        """Count entities."""


class TableFacade(Facade[T]):
    """
    Facade mapping a dataclass to the rows of one table.

    Parameters
    ----------
    db : LightQL
        Builder used for every operation; each call re-targets it to
        ``table`` with ``from_()``
    entity_class : type[T]
        Dataclass whose fields match the table columns
    table : str
        Table name
    id_field : str, optional
        Primary key field, by default "id"

    Notes
    -----
    Relation fields (see :func:`lightql.annotations.one_to_many`) are not
    written. Keys generated by the database are not read back into the
    entity after :meth:`create`.

    Examples
    --------
    >>> @dataclass
    ... class Item:
    ...     id: int | None = None
    ...     name: str = ""
    >>> items = TableFacade(db, Item, "item")
    >>> items.create(Item(name="pen"))
    >>> items.find(1)
    Item(id=1, name='pen')
    """

    def __init__(
        self,
        db: LightQL,
        entity_class: type[T],
        table: str,
        id_field: str = "id",
    ) -> None:
        if not dataclasses.is_dataclass(entity_class):
            msg = f"{entity_class!r} is not a dataclass"
            raise TypeError(msg)
        self.db = db
        self.entity_class = entity_class
        self.table = table
        self.id_field = id_field
        self._relation_fields = frozenset(relations(entity_class))
        self._retort = Retort()

    def _literal(self, value: Any) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, (int, float)):
            return str(value)
        return self.db.quote(value)

    def _columns(self, entity: T) -> dict[str, str]:
        data = self._retort.dump(entity, self.entity_class)
        return {
            name: self._literal(value)
            for name, value in data.items()
            if name not in self._relation_fields
        }

    def _load(self, row: dict[str, Any]) -> T:
        return self._retort.load(row, self.entity_class)

    def _id_condition(self, entity: T) -> dict[str, str]:
        id_value = getattr(entity, self.id_field)
        if id_value is None:
            msg = f"{type(entity).__name__} has no {self.id_field}"
            raise QueryError(msg)
        return {self.id_field: self._literal(id_value)}

    def create(self, entity: T) -> None:
        columns = self._columns(entity)
        if getattr(entity, self.id_field) is None:
            del columns[self.id_field]
        self.db.from_(self.table).insert(columns)
        logger.debug(f"created {type(entity).__name__} in {self.table}")

    def edit(self, entity: T) -> None:
        condition = self._id_condition(entity)
        columns = self._columns(entity)
        del columns[self.id_field]
        self.db.from_(self.table).where(condition).update(columns)

    def delete(self, entity: T) -> None:
        condition = self._id_condition(entity)
        self.db.from_(self.table).where(condition).delete()

    def find(self, id_value: Any) -> T | None:
        row = (
            self.db.from_(self.table)
            .where({self.id_field: self._literal(id_value)})
            .select_first()
        )
        return self._load(row) if row is not None else None

    def find_all(self) -> list[T]:
        return [self._load(r) for r in self.db.from_(self.table).select_array()]

    def find_range(self, start: int, length: int) -> list[T]:
        rows = self.db.from_(self.table).limit(start, length).select_array()
        return [self._load(r) for r in rows]

    def count(self) -> int:
        return int(self.db.from_(self.table).count())
