"""pytest configuration for lightql tests."""

from __future__ import annotations

import pytest

from lightql import LightQL


@pytest.fixture
def db():
    """Create in-memory SQLite builder with an empty ``item`` table."""
    builder = LightQL({"dbms": "sqlite", "database": ":memory:"})
    builder.query(
        """
        CREATE TABLE item (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            cat TEXT,
            price INTEGER
        )
        """
    )
    yield builder
    builder.close()


@pytest.fixture
def seeded_db(db):
    """Builder whose ``item`` and ``tag`` tables hold sample rows.

    item:
        1 pen    office 3
        2 pencil office 1
        3 apple  food   2
        4 bread  food   4
        5 lamp   home   30
    """
    rows = [
        (1, "pen", "office", 3),
        (2, "pencil", "office", 1),
        (3, "apple", "food", 2),
        (4, "bread", "food", 4),
        (5, "lamp", "home", 30),
    ]
    for pk, name, cat, price in rows:
        db.query(
            f"INSERT INTO item (id, name, cat, price) VALUES ({pk}, '{name}', '{cat}', {price})"
        )

    db.query("CREATE TABLE tag (item_id INTEGER, label TEXT)")
    db.query("INSERT INTO tag (item_id, label) VALUES (1, 'blue')")
    db.query("INSERT INTO tag (item_id, label) VALUES (3, 'red')")
    return db.from_("item")


@pytest.fixture
def sqlite_file_config(tmp_path):
    """Configuration of a file-based SQLite database with a seeded table.

    Returns
    -------
    dict
        Configuration mapping usable by LightQL and the CLI
    """
    config = {"dbms": "sqlite", "database": str(tmp_path / "shop.db")}
    with LightQL(config) as builder:
        builder.query("CREATE TABLE item (id INTEGER PRIMARY KEY, name TEXT, cat TEXT)")
        builder.query("INSERT INTO item (name, cat) VALUES ('pen', 'office')")
        builder.query("INSERT INTO item (name, cat) VALUES ('apple', 'food')")
        builder.query("INSERT INTO item (name, cat) VALUES ('bread', 'food')")
    return config
