"""
Tests schema discovery.
"""

import pytest

from dynaqlio import DatabaseInterface, DynamicModelFactory, SchemaError, \
    SchemaIntrospectionError, TableNotFoundError
from dynaqlio.orm.schema.catalog import SchemaCatalog

# mark all test_ functions as coroutines
pytestmark = pytest.mark.asyncio


async def test_collect_field_info(db: DatabaseInterface):
    catalog = SchemaCatalog(db, "books")
    schema = await catalog.collect_field_info()

    assert list(schema) == schema.column_names == ["id", "title", "author_id"]
    assert schema["id"].primary_key
    assert schema.primary_key == "id"
    assert catalog.fields is schema


async def test_fields_before_collecting(db: DatabaseInterface):
    catalog = SchemaCatalog(db, "books")

    with pytest.raises(RuntimeError):
        catalog.fields


async def test_other_table_does_not_replace_cache(db: DatabaseInterface):
    catalog = SchemaCatalog(db, "books")
    own = await catalog.collect_field_info()

    other = await catalog.get_field_info("authors")

    assert list(other) == ["id", "name"]
    assert catalog.fields is own


async def test_get_field_info_primary_key(db: DatabaseInterface):
    catalog = SchemaCatalog(db, "authors")

    assert await catalog.get_field_info(primary_key=True) == "id"
    assert await catalog.get_field_info("books", primary_key=True) == "id"


async def test_missing_table(db: DatabaseInterface):
    catalog = SchemaCatalog(db, "nope")

    with pytest.raises(TableNotFoundError) as e:
        await catalog.collect_field_info()

    assert e.value.table_name == "nope"


async def test_introspection_failure_is_wrapped():
    catalog = SchemaCatalog(_FailingBind(), "books")

    with pytest.raises(SchemaIntrospectionError) as e:
        await catalog.collect_field_info()

    assert isinstance(e.value.__cause__, SchemaError)


class _FailingBind:
    async def get_columns(self, table_name):
        raise SchemaError("connection lost")


async def test_model_schema(factory: DynamicModelFactory):
    books = await factory.table("books")

    schema = await books.get_field_info()
    assert list(schema) == ["id", "title", "author_id"]
    assert books.get_primary_key() == "id"
    assert books.get_table_name() == "books"


async def test_table_without_primary_key(factory: DynamicModelFactory):
    tags = await factory.table("tags")

    assert tags.get_primary_key() is None
    assert await tags.get_field_info(primary_key=True) is None

    # reads without a key still work
    rows = await tags.find()
    assert [r["name"] for r in rows] == ["py", "sql"]

    # key-based operations do not
    with pytest.raises(SchemaError):
        await tags.find("py")

    with pytest.raises(SchemaError):
        await tags.delete("py")


async def test_composite_primary_key_uses_first_column(factory: DynamicModelFactory):
    memberships = await factory.table("memberships")

    assert memberships.catalog.fields.primary_keys == ["user_id", "group_id"]
    assert memberships.get_primary_key() == "user_id"


async def test_explicit_primary_key(factory: DynamicModelFactory):
    tags = await factory.table("tags", primary_key="name")
    assert tags.get_primary_key() == "name"

    row = await tags.find("sql")
    assert row["label"] == "SQL"


async def test_unknown_primary_key_is_discovered(factory: DynamicModelFactory):
    books = await factory.table("books", primary_key="nope")

    assert books.get_primary_key() == "id"

    await books.set_primary_key("title")
    assert books.get_primary_key() == "title"

    await books.set_primary_key()
    assert books.get_primary_key() == "id"
