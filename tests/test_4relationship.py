"""
Tests relationship declaration, joins and has-many assembly.
"""

import pytest

from dynaqlio import DynamicModelFactory, InvalidRelationConfigurationError, Record
from dynaqlio.orm.assembler import group_key
from dynaqlio.utils import singular

# mark all test_ functions as coroutines
pytestmark = pytest.mark.asyncio


async def test_singular():
    assert singular("authors") == "author"
    assert singular("categories") == "category"
    assert singular("author") == "author"


async def test_belongs_to_defaults(factory: DynamicModelFactory):
    books = await factory.table("books")
    await books.belongs_to("authors")

    relation = books.relations.belongs_to["authors"]
    assert relation.related_table == "authors"
    assert relation.related_primary_key == "id"
    assert relation.foreign_key == "author_id"


async def test_has_many_defaults(factory: DynamicModelFactory):
    authors = await factory.table("authors")
    await authors.has_many("books", order_by={"title": "asc"})

    relation = authors.relations.has_many["books"]
    assert relation.foreign_key == "author_id"
    assert relation.order_by == [("title", "asc")]


async def test_declaring_missing_foreign_key(factory: DynamicModelFactory):
    books = await factory.table("books")

    with pytest.raises(InvalidRelationConfigurationError):
        await books.belongs_to("authors", foreign_key="writer_id")

    authors = await factory.table("authors")
    with pytest.raises(InvalidRelationConfigurationError):
        await authors.has_many("books", foreign_key="writer_id")


async def test_declaring_missing_table(factory: DynamicModelFactory):
    from dynaqlio import TableNotFoundError

    books = await factory.table("books")

    with pytest.raises(TableNotFoundError):
        await books.belongs_to("publishers")


async def test_scenario_belongs_to(factory: DynamicModelFactory):
    books = await factory.table("books")
    await books.belongs_to("authors")

    row = await books.with_("authors").find(5)

    assert dict(row) == {"id": 5, "title": "X", "author_id": 2, "name": "N2"}


async def test_scenario_has_many(factory: DynamicModelFactory):
    authors = await factory.table("authors")
    await authors.has_many("books")

    row = await authors.with_("books").find(2)
    assert row["id"] == 2
    assert row["name"] == "N2"
    assert [dict(b) for b in row["books"]] == [{"id": 5, "title": "X", "author_id": 2}]

    lonely = await authors.with_("books").find(99)
    assert lonely["books"] == []


async def test_has_many_on_collection_is_ordered(factory: DynamicModelFactory):
    authors = await factory.table("authors")
    await authors.has_many("books", order_by=[("title", "asc")])

    rows = await authors.with_("books").find_all()

    by_id = {r["id"]: r for r in rows}
    assert [b["title"] for b in by_id[1]["books"]] == ["A", "B"]
    assert [b["id"] for b in by_id[2]["books"]] == [5]
    assert by_id[99]["books"] == []


async def test_has_many_with_custom_alias(factory: DynamicModelFactory):
    authors = await factory.table("authors")
    await authors.has_many("books", alias="works", order_by={"id": "desc"})

    row = await authors.with_("works").find(1)

    assert [b["id"] for b in row["works"]] == [8, 6]
    assert "books" not in row


async def test_collision_is_renamed(factory: DynamicModelFactory):
    reviews = await factory.table("reviews")
    await reviews.belongs_to("authors")

    row = await reviews.with_("authors").find(1)

    # reviews.name is kept, authors.name is renamed, authors.id is never selected
    assert dict(row) == {"id": 1, "name": "first", "body": "good", "author_id": 1,
                         "author_name": "N1"}


async def test_belongs_to_without_match(factory: DynamicModelFactory):
    reviews = await factory.table("reviews")
    await reviews.belongs_to("authors")

    row = await reviews.with_("authors").find(2)

    assert row["author_name"] is None


async def test_explicit_columns(factory: DynamicModelFactory):
    reviews = await factory.table("reviews")
    await reviews.belongs_to("authors", alias="writer")

    row = await reviews.with_("writer", "name, id AS writer_key").find(1)

    assert row["writer_name"] == "N1"
    assert row["writer_key"] == 1
    assert row["name"] == "first"


async def test_explicit_columns_list(factory: DynamicModelFactory):
    books = await factory.table("books")
    await books.belongs_to("authors")

    row = await books.with_("authors", ["name"]).find(5)

    assert dict(row) == {"id": 5, "title": "X", "author_id": 2, "name": "N2"}


async def test_activation_does_not_persist(factory: DynamicModelFactory):
    books = await factory.table("books")
    await books.belongs_to("authors")

    joined = await books.with_("authors").find(5)
    plain = await books.find(5)

    assert "name" in joined
    assert dict(plain) == {"id": 5, "title": "X", "author_id": 2}
    assert books.composer not in books.before_find
    assert books.assembler not in books.after_find
    assert not books.relations.selection


async def test_hooks_registered_once(factory: DynamicModelFactory):
    authors = await factory.table("authors")
    await authors.has_many("books")

    authors.with_("books").with_("books")

    assert len(authors.after_find) == 1
    # the soft delete scope is always first
    assert list(authors.before_find) == [authors.soft_delete_scope, authors.composer]
    assert authors.relations.is_active("books")

    authors.reset_relationship()
    assert not authors.relations.is_active("books")


async def test_activation_is_reset_when_the_read_fails(factory: DynamicModelFactory):
    books = await factory.table("books")
    await books.belongs_to("authors")

    with pytest.raises(Exception):
        await books.with_("authors").find_by({"nope": 1})

    assert not books.relations.selection
    assert books.composer not in books.before_find


async def test_undeclared_alias(factory: DynamicModelFactory):
    books = await factory.table("books")

    with pytest.raises(InvalidRelationConfigurationError):
        books.with_("authors")

    with pytest.raises(InvalidRelationConfigurationError):
        books.where_relation("authors", {"name": "N2"})


async def test_where_relation_requires_mapping(factory: DynamicModelFactory):
    books = await factory.table("books")
    await books.belongs_to("authors")

    with pytest.raises(TypeError):
        books.where_relation("authors", ["name"])


async def test_where_relation_on_belongs_to(factory: DynamicModelFactory):
    books = await factory.table("books")
    await books.belongs_to("authors")

    rows = await books.with_("authors").where_relation("authors", {"name": "N1"}).find()

    assert sorted(r["id"] for r in rows) == [6, 8]


async def test_where_relation_on_has_many(factory: DynamicModelFactory):
    authors = await factory.table("authors")
    await authors.has_many("books")

    row = await authors.with_("books").where_relation("books", {"title": ["A", "X"]}).find(1)

    assert [b["title"] for b in row["books"]] == ["A"]


async def test_has_many_as_objects(factory: DynamicModelFactory):
    authors = await factory.table("authors")
    await authors.has_many("books", order_by={"title": "asc"})

    author = await authors.as_object().with_("books").find(1)

    assert isinstance(author, Record)
    assert author.name == "N1"
    assert [b.title for b in author.books] == ["A", "B"]
    assert all(isinstance(b, Record) for b in author.books)

    # the return type only applies to one call
    assert isinstance(await authors.find(1), dict)


async def test_collection_with_id_is_not_a_single_row(factory: DynamicModelFactory):
    authors = await factory.table("authors")
    await authors.has_many("books")

    rows = await authors.with_("books").find_by({"id": [2]})

    assert isinstance(rows, list)
    assert [b["id"] for b in rows[0]["books"]] == [5]


async def test_single_row_without_id_is_a_row(factory: DynamicModelFactory):
    tags = await factory.table("tags", primary_key="name")
    await tags.has_many("books", foreign_key="title", alias="same_title")

    row = await tags.with_("same_title").find_one_by({"label": "Python"})

    assert row["name"] == "py"
    assert row["same_title"] == []


async def test_no_secondary_query_without_values(factory: DynamicModelFactory, monkeypatch):
    authors = await factory.table("authors")
    await authors.has_many("books")

    async def fail(*args, **kwargs):
        raise AssertionError("no secondary query expected")

    monkeypatch.setattr(authors.assembler, "fetch_related", fail)

    assert await authors.with_("books").find_by({"id": 1000}) == []
    assert await authors.with_("books").find(1000) is None


async def test_empty_linking_values_skip_the_secondary_query(factory: DynamicModelFactory,
                                                             monkeypatch):
    # without a primary key the linking column falls back to the related key, which tags lack
    tags = await factory.table("tags")
    await tags.has_many("books", foreign_key="title")

    async def fail(*args, **kwargs):
        raise AssertionError("no secondary query expected")

    monkeypatch.setattr(tags.assembler, "fetch_related", fail)

    rows = await tags.with_("books").find()

    assert [r["books"] for r in rows] == [[], []]


async def test_has_many_text_foreign_key(factory: DynamicModelFactory):
    posts = await factory.table("posts")
    await posts.update(2, {"secret": "1"})

    authors = await factory.table("authors")
    await authors.has_many("posts", foreign_key="secret", alias="secret_posts")

    row = await authors.with_("secret_posts").find(1)
    assert [p["id"] for p in row["secret_posts"]] == [2]

    rows = await authors.with_("secret_posts").find([1, 2])
    linked = {r["id"]: [p["id"] for p in r["secret_posts"]] for r in rows}
    assert linked == {1: [2], 2: []}


async def test_group_key():
    assert group_key(1) == group_key("1") == group_key(" 1 ")
    assert group_key(-3) == group_key("-3")
    assert group_key("01") == group_key(1)
    assert group_key("abc") == "abc"
    assert group_key(None) is None
    assert group_key(True) is True


async def test_joins_are_composed_before_user_hooks(factory: DynamicModelFactory):
    books = await factory.table("books")
    await books.belongs_to("authors")
    seen = []

    async def inspect_joins(model, event):
        seen.append(len(event.query.joins))

    books.before_find.add(inspect_joins)
    await books.with_("authors").find(5)

    assert seen == [1]
    assert list(books.before_find) == [books.soft_delete_scope, inspect_joins]
