"""
Dynamic models: table gateways whose schema is discovered at runtime.
"""
import collections.abc
import datetime
import logging
import time
import typing

from dynaqlio import db as md_db
from dynaqlio.exc import ConfigurationError, DatabaseException, SchemaError, TableNotFoundError
from dynaqlio.meta import AsyncObject
from dynaqlio.orm import assembler as md_assembler, composer as md_composer, \
    guard as md_guard, hooks as md_hooks, operators as md_operators, options as md_options, \
    query as md_query, relationship as md_relationship, result as md_result
from dynaqlio.orm.schema import catalog as md_catalog, column as md_column, table as md_table

logger = logging.getLogger(__name__)

ResultRow = typing.Union[typing.Mapping[str, typing.Any], 'md_result.Record']


class Model(AsyncObject):
    """
    A model bound to one table, whose columns and primary key are discovered from the database.

    Models are constructed asynchronously:

    .. code-block:: python3

        books = await Model(db, "books")
        await books.belongs_to("authors")
        book = await books.with_("authors").find(1)

    Hand-written models set :attr:`.table_name` (and optionally :attr:`.options`) on the class and
    declare their relationships in :meth:`.setup`:

    .. code-block:: python3

        class Authors(Model):
            table_name = "authors"
            options = ModelOptions(use_soft_deletes=True)

            async def setup(self):
                await self.has_many("books", order_by={"title": "asc"})

    Every read runs the ``before_find`` hooks, the query, then the ``after_find`` hooks. Per-call
    modifiers (:meth:`.as_dict`, :meth:`.as_object`, :meth:`.with_deleted`, :meth:`.set_order_by`,
    :meth:`.with_` and :meth:`.where_relation`) only affect the next read, even when it fails.
    """

    #: The table this model is bound to, for hand-written subclasses.
    table_name = None  # type: str

    #: The primary key override, for hand-written subclasses.
    primary_key = None  # type: str

    #: The :class:`.ModelOptions` (or a mapping of options), for hand-written subclasses.
    options = None  # type: md_options.ModelOptions

    async def __init__(self, db: 'md_db.DatabaseInterface', table_name: str = None, *,
                       primary_key: str = None,
                       options: 'typing.Union[md_options.ModelOptions, typing.Mapping]' = None):
        """
        :param db: The :class:`.DatabaseInterface` to run queries through.
        :param table_name: The table to bind to. Defaults to the class's :attr:`.table_name`.
        :param primary_key: The primary key column. Discovered from the schema when omitted or
            when the column does not exist.
        :param options: The :class:`.ModelOptions` of this model.
        """
        self.db = db

        table_name = table_name or type(self).table_name
        if not table_name:
            raise ConfigurationError("No table name was given for {}".format(type(self).__name__))

        #: The logical name of the table this model is bound to.
        self.table_name = table_name

        options = options if options is not None else type(self).options
        if options is None:
            options = md_options.ModelOptions()
        elif isinstance(options, collections.abc.Mapping):
            options = md_options.ModelOptions.from_mapping(options)

        #: The :class:`.ModelOptions` this model was created with.
        self.options = options

        if not await db.table_exists(table_name):
            raise TableNotFoundError(table_name)

        #: The :class:`.SchemaCatalog` of this model's table.
        self.catalog = md_catalog.SchemaCatalog(db, table_name)
        await self.catalog.collect_field_info()

        self.primary_key = None
        await self.set_primary_key(primary_key or type(self).primary_key)

        self.return_type = options.return_type
        self.use_soft_deletes = options.use_soft_deletes
        self.deleted_field = options.deleted_field
        self.use_timestamps = options.use_timestamps
        self.created_field = options.created_field
        self.updated_field = options.updated_field
        self.date_format = options.date_format

        if self.use_soft_deletes and self.deleted_field not in self.catalog.fields:
            raise ConfigurationError("Soft delete field '{}' does not exist on table '{}'"
                                     .format(self.deleted_field, table_name))

        #: The :class:`.FieldGuard` filtering every write.
        self.guard = md_guard.FieldGuard(self.catalog, options.protected_fields,
                                         options.allowed_fields)

        #: The :class:`.RelationshipRegistry` of this model.
        self.relations = md_relationship.RelationshipRegistry(self.catalog)

        self.soft_delete_scope = md_composer.SoftDeleteScope()
        self.composer = md_composer.QueryComposer()
        self.assembler = md_assembler.ResultAssembler()

        #: The hooks run before every read, with the query being composed.
        self.before_find = md_hooks.HookPipeline("before_find")
        self.before_find.add(self.soft_delete_scope)

        #: The hooks run after every read, with the result.
        self.after_find = md_hooks.HookPipeline("after_find")

        self._reset_call_state()

        logger.debug("Created model for table {} with primary key {}".format(
            table_name, self.primary_key))
        await self.setup()

    def __repr__(self):
        return "<{} table={!r} primary_key={!r}>".format(type(self).__name__, self.table_name,
                                                         self.primary_key)

    async def setup(self):
        """
        Called at the end of construction. Override this to declare relationships.
        """

    # per-call state
    def _reset_call_state(self):
        self._temp_return_type = self.return_type
        self._temp_use_soft_deletes = self.use_soft_deletes
        self._order_by = []

    @property
    def return_type_active(self) -> 'md_result.ReturnType':
        """
        The :class:`.ReturnType` of the next read.
        """
        return self._temp_return_type

    @property
    def soft_deletes_active(self) -> bool:
        """
        If soft-deleted rows are hidden from the next read.
        """
        return self._temp_use_soft_deletes

    def as_dict(self) -> 'Model':
        """
        Returns the rows of the next read as mappings.
        """
        self._temp_return_type = md_result.ReturnType.DICT
        return self

    def as_object(self) -> 'Model':
        """
        Returns the rows of the next read as :class:`.Record` objects.
        """
        self._temp_return_type = md_result.ReturnType.OBJECT
        return self

    def with_deleted(self) -> 'Model':
        """
        Includes soft-deleted rows in the next read.
        """
        self._temp_use_soft_deletes = False
        return self

    def set_order_by(self, order_by) -> 'Model':
        """
        Sets the order of the next read.

        :param order_by: A mapping of column -> direction, or a list of (column, direction) pairs.
            Columns may be qualified with a relationship alias, e.g. ``authors.name``.
        """
        if isinstance(order_by, collections.abc.Mapping):
            order_by = order_by.items()

        for column, direction in order_by or ():
            table, _, name = column.rpartition(".")
            ref = md_column.ColumnRef(table or self.table_name, name, quoter=self.db.quote)
            self._order_by.append(md_operators.sorter_for(ref, direction))

        return self

    # accessors
    def get_primary_key(self) -> typing.Optional[str]:
        return self.primary_key

    def get_table_name(self) -> str:
        return self.table_name

    async def get_field_info(self, table_name: str = None, primary_key: bool = False) \
            -> 'typing.Union[md_table.TableSchema, str, None]':
        """
        Re-reads the schema of this model's table (or of another table).

        :param table_name: The table to inspect. Defaults to this model's table, whose cached schema
            is refreshed.
        :param primary_key: If True, returns the name of the primary key instead of the schema.
        """
        return await self.catalog.get_field_info(table_name, primary_key=primary_key)

    async def set_primary_key(self, primary_key: str = None) -> 'Model':
        """
        Sets the primary key of this model.

        The column is kept only if it exists; otherwise the primary key is discovered from the
        schema.
        """
        if primary_key is not None and primary_key in self.catalog.fields:
            self.primary_key = primary_key
        else:
            self.primary_key = await self.catalog.get_field_info(primary_key=True)

        return self

    def _require_primary_key(self) -> str:
        if self.primary_key is None:
            raise SchemaError("Table '{}' has no primary key".format(self.table_name))

        return self.primary_key

    def use_soft_delete(self, enabled: bool = True, deleted_field: str = None) -> 'Model':
        """
        Enables or disables soft deletes.

        :param deleted_field: The column marking deleted rows. It is only changed if the column
            exists.
        """
        if deleted_field is not None and deleted_field in self.catalog.fields:
            self.deleted_field = deleted_field

        if enabled and self.deleted_field not in self.catalog.fields:
            raise ConfigurationError("Soft delete field '{}' does not exist on table '{}'"
                                     .format(self.deleted_field, self.table_name))

        self.use_soft_deletes = enabled
        self._temp_use_soft_deletes = enabled
        return self

    def use_timestamp(self, enabled: bool = True, created_field: str = "created_at",
                      updated_field: str = "updated_at") -> 'Model':
        """
        Enables or disables the stamping of the created/updated columns on writes.
        """
        self.use_timestamps = enabled
        self.created_field = created_field
        self.updated_field = updated_field
        return self

    def set_allowed_fields(self, fields: typing.Iterable[str]) -> 'Model':
        self.guard.set_allowed_fields(fields)
        return self

    def set_protected_fields(self, fields: typing.Iterable[str]) -> 'Model':
        self.guard.set_protected_fields(fields)
        return self

    # relationships
    async def belongs_to(self, related_table: str, foreign_key: str = None,
                         alias: str = None) -> 'Model':
        """
        Declares that this table refers to ``related_table`` (one-to-one or many-to-one).

        :param related_table: The related table.
        :param foreign_key: The column of this table referring to the related table. Defaults to
            ``<singular related table>_id``.
        :param alias: The relationship name. Defaults to the related table name.
        """
        await self.relations.declare_belongs_to(related_table, foreign_key, alias)
        return self

    async def has_many(self, related_table: str, foreign_key: str = None, alias: str = None,
                       order_by=None) -> 'Model':
        """
        Declares that rows of ``related_table`` refer to this table (one-to-many).

        :param related_table: The related table.
        :param foreign_key: The column of the related table referring to this table. Defaults to
            ``<singular table name>_id``.
        :param alias: The relationship name. Defaults to the related table name.
        :param order_by: A mapping of column -> direction (or pairs) for the related rows.
        """
        await self.relations.declare_has_many(related_table, foreign_key, alias, order_by)
        return self

    def where_relation(self, alias: str, conditions: typing.Mapping[str, typing.Any]) -> 'Model':
        """
        Filters the related rows of a relationship in the next read.
        """
        self.relations.where_relation(alias, conditions)
        return self

    def with_(self, alias: str, columns: typing.Union[str, typing.Iterable[str]] = None) -> 'Model':
        """
        Loads a declared relationship in the next read.

        :param alias: The relationship alias.
        :param columns: The related columns to select for a belongs-to relationship, as a list or a
            comma separated string. Entries may rename a column with ``col AS name``.
        """
        self.relations.activate(alias, columns)
        # joins are composed before any user hook sees the query
        self.before_find.insert(1, self.composer)
        self.after_find.add(self.assembler)
        return self

    def reset_relationship(self):
        """
        Deactivates every relationship and removes the relationship hooks.
        """
        self.before_find.remove(self.composer)
        self.after_find.remove(self.assembler)
        self.relations.clear()

    # reads
    async def _run_find(self, shape: 'md_result.ResultShape',
                        build: 'typing.Callable[[md_query.SelectQuery], None]' = None,
                        *, pick_last: bool = False, **event_kwargs):
        try:
            async with self.db.get_session() as sess:
                query = sess.select.from_(self.table_name)
                event = md_result.ReadEvent(query, shape, **event_kwargs)
                await self.before_find.invoke(self, event)

                if build is not None:
                    build(query)

                if self._order_by:
                    query.order_by(*self._order_by)

                rows = await query.all()

            rows = [md_result.convert_row(row, self._temp_return_type) for row in rows]
            if shape is md_result.ResultShape.ROWS:
                event.data = rows
            elif rows:
                event.data = rows[-1] if pick_last else rows[0]

            await self.after_find.invoke(self, event)
            return event.data
        finally:
            self._reset_call_state()
            self.reset_relationship()

    def _where(self, query: 'md_query.SelectQuery', where: typing.Mapping[str, typing.Any]):
        query.where(*md_composer.where_conditions(query, self.table_name, where))

    async def find(self, id: typing.Any = None) \
            -> 'typing.Union[ResultRow, typing.List[ResultRow], None]':
        """
        Finds rows by primary key.

        :param id: A single key (returns one row or None), a list/tuple/set of keys (returns a list
            of rows) or None (returns every row).
        """
        if id is None:
            return await self._run_find(md_result.ResultShape.ROWS)

        primary_key = self._require_primary_key()

        if isinstance(id, (list, tuple, set, frozenset)):
            def build(query):
                query.where(query.column(primary_key, self.table_name).in_(id))

            return await self._run_find(md_result.ResultShape.ROWS, build, id=id)

        def build(query):
            query.where(query.column(primary_key, self.table_name).eq(id)).limit(1)

        return await self._run_find(md_result.ResultShape.ROW, build, id=id)

    async def find_all(self, limit: int = 0, offset: int = 0) -> typing.List[ResultRow]:
        """
        Finds every row.

        :param limit: The maximum number of rows to return. 0 means no limit.
        :param offset: The number of rows to skip.
        """
        def build(query):
            if limit:
                query.limit(limit)
            if offset:
                query.offset(offset)

        return await self._run_find(md_result.ResultShape.ROWS, build, limit=limit, offset=offset)

    async def find_by(self, where: typing.Mapping[str, typing.Any] = None, first: bool = False) \
            -> 'typing.Union[ResultRow, typing.List[ResultRow], None]':
        """
        Finds rows matching conditions.

        :param where: column -> value (equality) or column -> list of values (membership).
        :param first: If True, returns the first matching row (or None) instead of a list.
        """
        where = where or {}

        def build(query):
            self._where(query, where)
            if first:
                query.limit(1)

        shape = md_result.ResultShape.ROW if first else md_result.ResultShape.ROWS
        return await self._run_find(shape, build, where=where)

    async def find_one_by(self, where: typing.Mapping[str, typing.Any] = None) \
            -> typing.Optional[ResultRow]:
        """
        Finds the first row matching conditions.
        """
        return await self.find_by(where, first=True)

    async def last(self) -> typing.Optional[ResultRow]:
        """
        Finds the last row, in the order set with :meth:`.set_order_by` or else by primary key.
        """
        def build(query):
            if not self._order_by and self.primary_key is not None:
                query.order_by(query.column(self.primary_key, self.table_name))

        return await self._run_find(md_result.ResultShape.ROW, build, pick_last=True)

    # writes
    def _now(self) -> typing.Union[str, int]:
        if self.date_format == "int":
            return int(time.time())

        now = datetime.datetime.now()
        if self.date_format == "date":
            return now.strftime("%Y-%m-%d")

        return now.strftime("%Y-%m-%d %H:%M:%S")

    def _stamp(self, data: typing.MutableMapping[str, typing.Any], *fields: str):
        if not self.use_timestamps:
            return data

        now = self._now()
        for field in fields:
            if field and field in self.catalog.fields and field not in data:
                data[field] = now

        return data

    def _conditions(self, query: 'md_query.BulkQuery', where: typing.Mapping[str, typing.Any]):
        # UPDATE and DELETE don't alias the table, so the columns are unqualified
        return md_composer.where_conditions(query, None, where)

    def _key_conditions(self, query: 'md_query.BulkQuery', id: typing.Any):
        primary_key = self._require_primary_key()
        if isinstance(id, (list, tuple, set, frozenset)):
            return [query.column(primary_key).in_(id)]

        return [query.column(primary_key).eq(id)]

    async def insert(self, data: typing.Mapping[str, typing.Any]) -> typing.Any:
        """
        Inserts a row.

        The payload is filtered by the :class:`.FieldGuard`, then timestamped.

        :return: The primary key of the new row, or None if the table has no primary key.
        """
        data = self._stamp(self.guard.protect(data), self.created_field, self.updated_field)

        async with self.db.get_session() as sess:
            query = sess.insert.into(self.table_name).values(data)
            if self.primary_key is None:
                await query.run()
                return None

            if self.primary_key in data:
                await query.run()
                return data[self.primary_key]

            return await query.returning(self.primary_key).run()

    async def _update(self, data: typing.Mapping[str, typing.Any], conditions) -> int:
        data = self._stamp(self.guard.protect(data), self.updated_field)
        if not data:
            raise DatabaseException("There is no data to update in '{}'".format(self.table_name))

        async with self.db.get_session() as sess:
            query = sess.update.table(self.table_name)
            for column, value in data.items():
                query.set(column, value)

            query.where(*conditions(query))
            return await query.run()

    async def update(self, id: typing.Any, data: typing.Mapping[str, typing.Any]) -> int:
        """
        Updates rows by primary key.

        :param id: A single key, or a list/tuple/set of keys.
        :param data: The values to set. Filtered by the :class:`.FieldGuard`.
        :return: The number of rows updated.
        """
        self._require_primary_key()
        return await self._update(data, lambda query: self._key_conditions(query, id))

    async def update_by(self, data: typing.Mapping[str, typing.Any],
                        where: typing.Mapping[str, typing.Any] = None) -> int:
        """
        Updates every row matching conditions. Without conditions, every row is updated.

        :return: The number of rows updated.
        """
        return await self._update(data, lambda query: self._conditions(query, where or {}))

    async def _delete(self, conditions, purge: bool) -> int:
        async with self.db.get_session() as sess:
            if self.use_soft_deletes and not purge:
                now = self._now()
                query = sess.update.table(self.table_name).set(self.deleted_field, now)
                if self.use_timestamps and self.updated_field in self.catalog.fields:
                    query.set(self.updated_field, now)
            else:
                query = sess.delete.table(self.table_name)

            query.where(*conditions(query))
            return await query.run()

    async def delete(self, id: typing.Any, purge: bool = False) -> int:
        """
        Deletes rows by primary key.

        With soft deletes enabled the rows are only marked as deleted, unless ``purge`` is True.

        :param id: A single key, or a list/tuple/set of keys.
        :return: The number of rows deleted.
        """
        self._require_primary_key()
        if id is None:
            raise DatabaseException("Deletes are not allowed without a key")

        return await self._delete(lambda query: self._key_conditions(query, id), purge)

    async def delete_by(self, where: typing.Mapping[str, typing.Any],
                        purge: bool = False) -> int:
        """
        Deletes every row matching conditions.

        :return: The number of rows deleted.
        """
        if not where:
            raise DatabaseException("Deletes are not allowed unless they contain conditions")

        return await self._delete(lambda query: self._conditions(query, where), purge)
