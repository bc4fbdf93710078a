"""
Tests the low-level API.
"""

import pytest

from dynaqlio import BaseTransaction, DatabaseInterface, IntegrityError

# mark all test_ functions as coroutines
pytestmark = pytest.mark.asyncio


async def test_db_connected(db: DatabaseInterface):
    assert db.connected
    assert db.connector is not None


async def test_acquire_transaction(db: DatabaseInterface):
    tr = db.get_transaction()

    assert isinstance(tr, BaseTransaction)


async def test_transaction_use(db: DatabaseInterface):
    tr = db.get_transaction()
    await tr.begin()

    # this just ensures the connection doesn't error
    await tr.execute("SELECT 1 + 1;")
    await tr.rollback()
    await tr.close()


async def test_transaction_fetch_one(db: DatabaseInterface):
    tr = db.get_transaction()
    await tr.begin()

    cursor = await tr.cursor("SELECT 1 + 1;")
    async with cursor:
        row = await cursor.fetch_row()
    # rowdict
    assert row[0] == 2
    await tr.rollback()
    await tr.close()


async def test_transaction_fetch_multiple(db: DatabaseInterface):
    tr = db.get_transaction()
    await tr.begin()

    cursor = await tr.cursor('SELECT 1 AS result UNION ALL SELECT 2;')
    previous = 0
    async with cursor:
        async for row in cursor:
            assert row["result"] > previous
            previous = row["result"]

    await tr.rollback()
    await tr.close()


async def test_transaction_fetch_many(db: DatabaseInterface):
    tr = db.get_transaction()
    await tr.begin()

    cursor = await tr.cursor('SELECT 1 AS result UNION ALL SELECT 2;')
    async with cursor:
        rows = await cursor.fetch_many(n=2)

    assert rows[0]["result"] == 1
    assert rows[1]["result"] == 2

    await tr.rollback()
    await tr.close()


async def test_session_rollback(db: DatabaseInterface):
    sess = db.get_session()
    try:
        await sess.start()
        await sess.execute("DELETE FROM books")
        await sess.rollback()
    finally:
        await sess.close()

    async with db.get_session() as sess:
        row = await sess.fetch("SELECT COUNT(*) AS total FROM books")

    assert row["total"] == 3


async def test_session_rolls_back_on_error(db: DatabaseInterface):
    with pytest.raises(RuntimeError):
        async with db.get_session() as sess:
            await sess.execute("DELETE FROM books")
            raise RuntimeError("boom")

    async with db.get_session() as sess:
        rows = await sess.fetch_all("SELECT id FROM books ORDER BY id")

    assert [r["id"] for r in rows] == [5, 6, 8]


async def test_integrity_error_is_translated(db: DatabaseInterface):
    with pytest.raises(IntegrityError):
        async with db.get_session() as sess:
            await sess.execute("INSERT INTO authors (id, name) VALUES (1, 'duplicate')")


async def test_table_exists(db: DatabaseInterface):
    assert await db.table_exists("authors")
    assert not await db.table_exists("nope")


async def test_get_columns(db: DatabaseInterface):
    columns = await db.get_columns("books")

    assert [c.name for c in columns] == ["id", "title", "author_id"]
    assert [c.primary_key for c in columns] == [True, False, False]
    assert not columns[1].nullable
    assert all(c.table_name == "books" for c in columns)


async def test_get_columns_missing_table(db: DatabaseInterface):
    assert await db.get_columns("nope") == []


async def test_connect_forwards_driver_options(monkeypatch):
    from dynaqlio.backends.sqlite3 import aiosqlite as md_aiosqlite

    real_connect = md_aiosqlite.aiosqlite.connect
    seen = {}

    def connect(database, **kwargs):
        seen.update(kwargs)
        return real_connect(database, **kwargs)

    monkeypatch.setattr(md_aiosqlite.aiosqlite, "connect", connect)

    iface = DatabaseInterface("sqlite3:///:memory:?timeout=2")
    await iface.connect(timeout=7.5, cached_statements=16)
    try:
        async with iface.get_session() as sess:
            row = await sess.fetch("SELECT 1 AS one")
    finally:
        await iface.close()

    assert row["one"] == 1
    assert seen == {"timeout": 7.5, "cached_statements": 16}
