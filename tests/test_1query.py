"""
Tests the query builders.
"""

import pytest

from dynaqlio import DatabaseInterface, DatabaseException

# mark all test_ functions as coroutines
pytestmark = pytest.mark.asyncio


async def test_select_all(db: DatabaseInterface):
    async with db.get_session() as sess:
        rows = await sess.select.from_("authors").all()

    assert [r["name"] for r in rows] == ["N1", "N2", "Lonely"]


async def test_select_where_in(db: DatabaseInterface):
    async with db.get_session() as sess:
        query = sess.select.from_("books")
        rows = await query.where(query.column("id", "books").in_([5, 8])) \
            .order_by(query.column("id", "books")).all()

    assert [r["id"] for r in rows] == [5, 8]


async def test_select_empty_in_matches_nothing(db: DatabaseInterface):
    async with db.get_session() as sess:
        query = sess.select.from_("books")
        rows = await query.where(query.column("id", "books").in_([])).all()

    assert rows == []


async def test_select_order_limit_offset(db: DatabaseInterface):
    async with db.get_session() as sess:
        query = sess.select.from_("books")
        rows = await query.order_by(query.column("title", "books").desc()) \
            .limit(2).offset(1).all()

    assert [r["title"] for r in rows] == ["B", "A"]


async def test_select_offset_without_limit(db: DatabaseInterface):
    async with db.get_session() as sess:
        query = sess.select.from_("books")
        rows = await query.order_by(query.column("id", "books")).offset(1).all()

    assert [r["id"] for r in rows] == [6, 8]


async def test_select_first(db: DatabaseInterface):
    async with db.get_session() as sess:
        query = sess.select.from_("authors")
        row = await query.where(query.column("id", "authors").eq(2)).first()

    assert row["name"] == "N2"


async def test_select_join(db: DatabaseInterface):
    async with db.get_session() as sess:
        query = sess.select.from_("books")
        on = query.column("id", "a").eq(query.column("author_id", "books"))
        query.select(query.column("title", "books"), query.column("name", "a").aliased("author"))
        row = await query.join("authors", "a", on).where(query.column("id", "books").eq(5)).first()

    assert dict(row) == {"title": "X", "author": "N2"}


async def test_insert_returns_key(db: DatabaseInterface):
    async with db.get_session() as sess:
        new_id = await sess.insert.into("authors").values({"name": "N3"}).returning("id")

    async with db.get_session() as sess:
        query = sess.select.from_("authors")
        row = await query.where(query.column("id", "authors").eq(new_id)).first()

    assert row["name"] == "N3"


async def test_insert_without_values(db: DatabaseInterface):
    with pytest.raises(DatabaseException):
        async with db.get_session() as sess:
            await sess.insert.into("authors")


async def test_bulk_update(db: DatabaseInterface):
    async with db.get_session() as sess:
        query = sess.update.table("books")
        count = await query.set("title", "Z").where(query.column("author_id").eq(1))

    assert count == 2


async def test_bulk_delete(db: DatabaseInterface):
    async with db.get_session() as sess:
        query = sess.delete.table("books")
        count = await query.where(query.column("id").in_([5, 6]))

    assert count == 2
    async with db.get_session() as sess:
        rows = await sess.select.from_("books").all()

    assert [r["id"] for r in rows] == [8]


async def test_table_prefix():
    iface = DatabaseInterface("sqlite3:///:memory:", table_prefix="app_")
    await iface.connect()
    try:
        await iface.execute_script("CREATE TABLE app_things (id INTEGER PRIMARY KEY, name TEXT);"
                                   "INSERT INTO app_things (id, name) VALUES (1, 'one');")
        assert await iface.table_exists("things")
        columns = await iface.get_columns("things")
        assert [c.name for c in columns] == ["id", "name"]

        async with iface.get_session() as sess:
            query = sess.select.from_("things")
            row = await query.where(query.column("id", "things").eq(1)).first()

        assert row["name"] == "one"
    finally:
        await iface.close()
