"""Entity relation annotations.

Relations are declared as dataclass field metadata::

    @dataclass
    class Author:
        id: int | None = None
        name: str = ""
        books: list = one_to_many("Book", mapped_by="author_id")

The facade layer skips relation fields when writing rows and leaves them
to their defaults when reading.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

__all__ = ["RELATION_KEY", "OneToMany", "one_to_many", "relations"]

RELATION_KEY = "lightql_relation"


@dataclass(frozen=True)
class OneToMany:
    """
    A property in a one-to-many relation with another entity.

    Attributes
    ----------
    entity : str
        Name of the referenced entity type
    mapped_by : str
        Property of the referenced entity that owns the relation
    """

    entity: str
    mapped_by: str


def one_to_many(entity: str, mapped_by: str) -> Any:
    """Declare a dataclass field as the "one" side of a one-to-many relation."""
    return dataclasses.field(
        default_factory=list,
        metadata={RELATION_KEY: OneToMany(entity=entity, mapped_by=mapped_by)},
    )


def relations(entity_class: type) -> dict[str, OneToMany]:
    """
    Collect the relation descriptors of a dataclass.

    Parameters
    ----------
    entity_class : type
        Dataclass type

    Returns
    -------
    dict[str, OneToMany]
        Field name → descriptor
    """
    return {
        f.name: f.metadata[RELATION_KEY]
        for f in dataclasses.fields(entity_class)
        if RELATION_KEY in f.metadata
    }
