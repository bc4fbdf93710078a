"""
Tests model reads and writes.
"""
import re

import pytest

from dynaqlio import DatabaseException, DynamicModelFactory, Record

# mark all test_ functions as coroutines
pytestmark = pytest.mark.asyncio


async def test_find_by_keys(factory: DynamicModelFactory):
    books = await factory.table("books")

    rows = await books.find([5, 8])
    assert sorted(r["id"] for r in rows) == [5, 8]

    assert await books.find(1000) is None
    assert len(await books.find()) == 3


async def test_find_all_limit_offset(factory: DynamicModelFactory):
    books = await factory.table("books")

    rows = await books.set_order_by({"id": "asc"}).find_all(limit=2, offset=1)
    assert [r["id"] for r in rows] == [6, 8]

    rows = await books.set_order_by({"id": "asc"}).find_all(offset=2)
    assert [r["id"] for r in rows] == [8]


async def test_find_by(factory: DynamicModelFactory):
    books = await factory.table("books")

    rows = await books.find_by({"author_id": 1})
    assert sorted(r["id"] for r in rows) == [6, 8]

    rows = await books.find_by({"author_id": [1, 2], "title": "X"})
    assert [r["id"] for r in rows] == [5]

    row = await books.find_by({"author_id": 1}, first=True)
    assert row["author_id"] == 1

    assert await books.find_one_by({"title": "nope"}) is None


async def test_find_by_null(factory: DynamicModelFactory):
    reviews = await factory.table("reviews")

    rows = await reviews.find_by({"author_id": None})

    assert [r["id"] for r in rows] == [2]


async def test_set_order_by(factory: DynamicModelFactory):
    books = await factory.table("books")

    rows = await books.set_order_by([("title", "desc")]).find()
    assert [r["title"] for r in rows] == ["X", "B", "A"]

    # the order only applies to one call
    rows = await books.find()
    assert [r["id"] for r in rows] == [5, 6, 8]

    with pytest.raises(ValueError):
        books.set_order_by({"title": "sideways"})


async def test_order_by_related_column(factory: DynamicModelFactory):
    books = await factory.table("books")
    await books.belongs_to("authors")

    rows = await books.with_("authors").set_order_by({"authors.name": "desc", "id": "asc"}).find()

    assert [r["id"] for r in rows] == [5, 6, 8]


async def test_last(factory: DynamicModelFactory):
    books = await factory.table("books")

    assert (await books.last())["id"] == 8
    assert (await books.set_order_by({"title": "asc"}).last())["title"] == "X"


async def test_as_object(factory: DynamicModelFactory):
    books = await factory.table("books", options={"return_type": "object"})

    book = await books.find(5)
    assert isinstance(book, Record)
    assert book.title == "X"
    assert book.to_dict() == {"id": 5, "title": "X", "author_id": 2}

    book = await books.as_dict().find(5)
    assert book["title"] == "X"


async def test_insert(factory: DynamicModelFactory):
    authors = await factory.table("authors")

    new_id = await authors.insert({"name": "N3"})

    assert (await authors.find(new_id))["name"] == "N3"


async def test_insert_with_key(factory: DynamicModelFactory):
    authors = await factory.table("authors")

    assert await authors.insert({"id": 42, "name": "N42"}) == 42
    assert (await authors.find(42))["name"] == "N42"


async def test_insert_without_primary_key(factory: DynamicModelFactory):
    tags = await factory.table("tags")

    assert await tags.insert({"name": "js", "label": "JavaScript"}) is None
    assert len(await tags.find()) == 3


async def test_insert_nothing(factory: DynamicModelFactory):
    authors = await factory.table("authors")

    with pytest.raises(DatabaseException):
        await authors.insert({"bogus": 1})


async def test_update(factory: DynamicModelFactory):
    books = await factory.table("books")

    assert await books.update(5, {"title": "Y"}) == 1
    assert (await books.find(5))["title"] == "Y"

    assert await books.update([6, 8], {"author_id": 2}) == 2
    assert len(await books.find_by({"author_id": 2})) == 3


async def test_update_nothing(factory: DynamicModelFactory):
    books = await factory.table("books")

    with pytest.raises(DatabaseException):
        await books.update(5, {"bogus": 1})


async def test_update_by(factory: DynamicModelFactory):
    books = await factory.table("books")

    assert await books.update_by({"title": "same"}, {"author_id": 1}) == 2
    assert await books.update_by({"author_id": 7}) == 3


async def test_delete(factory: DynamicModelFactory):
    books = await factory.table("books")

    assert await books.delete(5) == 1
    assert await books.find(5) is None

    assert await books.delete_by({"author_id": 1}) == 2
    assert await books.find() == []


async def test_delete_requires_conditions(factory: DynamicModelFactory):
    books = await factory.table("books")

    with pytest.raises(DatabaseException):
        await books.delete_by({})

    with pytest.raises(DatabaseException):
        await books.delete(None)


async def test_soft_delete(factory: DynamicModelFactory):
    posts = await factory.table("posts", options={"use_soft_deletes": True})

    assert await posts.delete(1) == 1

    assert await posts.find(1) is None
    assert [r["id"] for r in await posts.find_all()] == [2, 3]
    assert [r["id"] for r in await posts.find_by({"author_id": 1})] == [2]

    hidden = await posts.with_deleted().find(1)
    assert hidden["deleted_at"] is not None

    # with_deleted only applies to one call
    assert await posts.find(1) is None


async def test_soft_delete_by_and_purge(factory: DynamicModelFactory):
    posts = await factory.table("posts", options={"use_soft_deletes": True})

    assert await posts.delete_by({"author_id": 1}) == 2
    assert len(await posts.with_deleted().find()) == 3

    assert await posts.delete(1, purge=True) == 1
    assert len(await posts.with_deleted().find()) == 2

    assert await posts.delete_by({"author_id": [1, 2]}, purge=True) == 2
    assert await posts.with_deleted().find() == []


async def test_use_soft_delete_toggle(factory: DynamicModelFactory):
    posts = await factory.table("posts")

    posts.use_soft_delete()
    await posts.delete(3)
    assert await posts.find(3) is None

    posts.use_soft_delete(False)
    assert (await posts.find(3))["deleted_at"] is not None

    books = await factory.table("books")
    with pytest.raises(Exception):
        books.use_soft_delete()


async def test_timestamps(factory: DynamicModelFactory):
    posts = await factory.table("posts", options={"use_timestamps": True})

    new_id = await posts.insert({"title": "stamped"})
    row = await posts.find(new_id)

    assert re.match(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$", row["created_at"])
    assert row["updated_at"] == row["created_at"]

    await posts.update(1, {"title": "touched"})
    row = await posts.find(1)
    assert row["created_at"] is None
    assert row["updated_at"] is not None


async def test_timestamp_formats(factory: DynamicModelFactory):
    posts = await factory.table("posts", options={"use_timestamps": True, "date_format": "date"})
    row = await posts.find(await posts.insert({"title": "dated"}))
    assert re.match(r"^\d{4}-\d{2}-\d{2}$", row["created_at"])

    posts = await factory.table("posts", options={"use_timestamps": True, "date_format": "int"})
    row = await posts.find(await posts.insert({"title": "unix"}))
    assert int(row["created_at"]) > 0


async def test_use_timestamp(factory: DynamicModelFactory):
    posts = await factory.table("posts")
    posts.use_timestamp(updated_field="deleted_at")

    await posts.update(2, {"title": "again"})

    assert (await posts.find(2))["deleted_at"] is not None


async def test_soft_delete_stamps_updated_field(factory: DynamicModelFactory):
    posts = await factory.table("posts", options={"use_soft_deletes": True,
                                                  "use_timestamps": True})

    await posts.delete(2)
    row = await posts.with_deleted().find(2)

    assert row["updated_at"] == row["deleted_at"]
