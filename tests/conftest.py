"""
py.test configuration
"""
import os

import pytest_asyncio

from dynaqlio import DatabaseInterface, DynamicModelFactory

DSN = os.environ.get("ASQL_DSN", "sqlite3:///:memory:")

SCHEMA = """
CREATE TABLE authors (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL
);
CREATE TABLE books (
    id INTEGER PRIMARY KEY,
    title TEXT NOT NULL,
    author_id INTEGER
);
CREATE TABLE reviews (
    id INTEGER PRIMARY KEY,
    name TEXT,
    body TEXT,
    author_id INTEGER
);
CREATE TABLE posts (
    id INTEGER PRIMARY KEY,
    title TEXT NOT NULL,
    author_id INTEGER,
    secret TEXT,
    created_at TEXT,
    updated_at TEXT,
    deleted_at TEXT
);
CREATE TABLE tags (
    name TEXT,
    label TEXT
);
CREATE TABLE memberships (
    user_id INTEGER NOT NULL,
    group_id INTEGER NOT NULL,
    role TEXT,
    PRIMARY KEY (user_id, group_id)
);
"""

SEED = """
INSERT INTO authors (id, name) VALUES (1, 'N1'), (2, 'N2'), (99, 'Lonely');
INSERT INTO books (id, title, author_id) VALUES (5, 'X', 2), (6, 'B', 1), (8, 'A', 1);
INSERT INTO reviews (id, name, body, author_id) VALUES (1, 'first', 'good', 1), (2, 'second', 'bad', NULL);
INSERT INTO posts (id, title, author_id) VALUES (1, 'hello', 1), (2, 'world', 1), (3, 'again', 2);
INSERT INTO tags (name, label) VALUES ('py', 'Python'), ('sql', 'SQL');
"""

TABLES = ("authors", "books", "reviews", "posts", "tags", "memberships")


@pytest_asyncio.fixture
async def db() -> DatabaseInterface:
    iface = DatabaseInterface(dsn=DSN)
    await iface.connect()
    await iface.execute_script(SCHEMA)
    await iface.execute_script(SEED)
    yield iface
    await iface.execute_script(";".join("DROP TABLE {}".format(t) for t in TABLES))
    await iface.close()


@pytest_asyncio.fixture
async def factory(db: DatabaseInterface) -> DynamicModelFactory:
    return db.get_factory()
