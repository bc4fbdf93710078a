"""
Query builders. Each builder collects clauses, then renders them to SQL and parameters with
:meth:`.BaseQuery.generate_sql` when it is run through its :class:`.Session`.
"""
import abc
import collections
import itertools
import typing

from dynaqlio.exc import DatabaseException
from dynaqlio.meta import AsyncABC
from dynaqlio.orm import operators as md_operators, session as md_session
from dynaqlio.orm.schema import column as md_column


class BaseQuery(AsyncABC):
    def __init__(self, sess: 'md_session.Session'):
        """
        :param sess: The :class:`.Session` this query runs in.
        """
        self.session = sess

    @property
    def bind(self):
        """
        The :class:`.DatabaseInterface` behind the session.
        """
        return self.session.bind

    def column(self, name: typing.Union[str, 'md_column.ColumnRef'], table: str = None) \
            -> 'md_column.ColumnRef':
        """
        Makes a :class:`.ColumnRef` quoted for the dialect in use.

        :param name: The bare column name. A :class:`.ColumnRef` is returned unchanged.
        :param table: The table name or alias qualifying the column, if any.
        """
        if isinstance(name, md_column.ColumnRef):
            return name

        return md_column.ColumnRef(table, name, quoter=self.bind.quote)

    @abc.abstractmethod
    def generate_sql(self) -> typing.Tuple[str, typing.Mapping[str, typing.Any]]:
        """
        :return: The SQL of this query, and the parameters to run it with.
        """

    @abc.abstractmethod
    async def run(self):
        pass

    def _generate_conditions(self, conditions, counter: itertools.count, params: dict) -> str:
        fragments = []
        for condition in conditions:
            res = condition.generate_sql(self.bind.emit_param, counter)
            params.update(res.parameters)
            fragments.append(res.sql)

        # multiple conditions are always ANDed
        return " AND ".join(fragments)


class SelectQuery(BaseQuery):
    """
    A SELECT over one table, with optional joins, conditions, ordering and paging.

    Get one from :attr:`.Session.select`:

    .. code-block:: python3

        async with db.get_session() as sess:
            books = sess.select.from_("books")
            author_id = books.column("author_id", "books")
            rows = await books.where(author_id.eq(2)).order_by(author_id.desc()).all()

    Tables are given by logical name. The table prefix of the :class:`.DatabaseInterface` is
    applied in the generated SQL, and the logical name becomes the alias.
    """

    def __init__(self, session: 'md_session.Session'):
        super().__init__(session)

        #: The logical name of the table selected from.
        self.table = None  # type: str

        #: Projection SQL fragments. Every column of :attr:`.table` is selected when empty.
        self.columns = []

        #: ``(kind, table, alias, on)`` tuples.
        self.joins = []

        self.conditions = []
        self.row_limit = None
        self.row_offset = None

        #: :class:`.Sorter` objects, most significant first.
        self.orderers = []

    def __call__(self, table: str):
        return self.from_(table)

    def generate_sql(self) -> typing.Tuple[str, dict]:
        if self.table is None:
            raise DatabaseException("No table was set on this query")

        counter = itertools.count()
        params = {}
        bind = self.bind

        projection = ", ".join(self.columns) or "{}.*".format(bind.quote(self.table))
        parts = ["SELECT {} FROM {}".format(projection, bind.table_reference(self.table))]

        for kind, table, alias, on in self.joins:
            res = on.generate_sql(bind.emit_param, counter)
            params.update(res.parameters)
            parts.append("{} JOIN {} ON {}".format(kind, bind.table_reference(table, alias),
                                                   res.sql))

        where = self._generate_conditions(self.conditions, counter, params)
        if where:
            parts.append("WHERE {}".format(where))

        if self.orderers:
            sorts = (o.generate_sql(bind.emit_param, counter).sql for o in self.orderers)
            parts.append("ORDER BY {}".format(", ".join(sorts)))

        limit = self.row_limit
        # OFFSET needs a LIMIT on some dialects
        if limit is None and self.row_offset is not None:
            limit = bind.dialect.unbounded_limit

        if limit is not None:
            parts.append("LIMIT {}".format(limit))

        if self.row_offset is not None:
            parts.append("OFFSET {}".format(self.row_offset))

        return " ".join(parts), params

    async def first(self) -> typing.Optional[typing.Mapping[str, typing.Any]]:
        """
        :return: The first matching row, or None.
        """
        sql, params = self.generate_sql()
        return await self.session.fetch(sql, params)

    async def all(self) -> typing.List[typing.Mapping[str, typing.Any]]:
        """
        :return: Every matching row.
        """
        return await self.session.run_select_query(self)

    async def run(self):
        return await self.all()

    def from_(self, table: str) -> 'SelectQuery':
        self.table = table
        return self

    def select(self, *columns: typing.Union[str, 'md_column.ColumnRef']) -> 'SelectQuery':
        """
        Adds to the projection.

        :param columns: :class:`.ColumnRef` objects, or raw projection SQL such as
            ``"authors"."name" AS "author_name"``.
        """
        for column in columns:
            if isinstance(column, md_column.ColumnRef):
                column = column.quoted_fullname
            self.columns.append(column)

        return self

    def join(self, table: str, alias: str, on: 'md_operators.BaseOperator',
             kind: str = "LEFT") -> 'SelectQuery':
        """
        Joins another table.

        :param table: The logical name of the joined table.
        :param alias: The name the joined table is referenced by in conditions and projection.
        :param on: The join condition.
        :param kind: ``LEFT``, ``INNER``, and so on.
        """
        self.joins.append((kind.upper(), table, alias, on))
        return self

    def where(self, *conditions: 'md_operators.BaseOperator') -> 'SelectQuery':
        for condition in conditions:
            self.add_condition(condition)

        return self

    def limit(self, row_limit: int) -> 'SelectQuery':
        self.row_limit = int(row_limit)
        return self

    def offset(self, offset: int) -> 'SelectQuery':
        self.row_offset = int(offset)
        return self

    def order_by(self, *col: 'typing.Union[md_column.ColumnRef, md_operators.Sorter]',
                 sort_order: str = "asc"):
        """
        Appends to the ORDER BY clause.

        :param col: :class:`.Sorter` objects (see :meth:`.ColumnRef.asc`), or columns which are
            sorted by ``sort_order``.
        """
        if not col:
            raise TypeError("order_by needs at least one column or sorter")

        for item in col:
            if not isinstance(item, md_operators.Sorter):
                item = md_operators.sorter_for(self.column(item), sort_order)
            self.orderers.append(item)

        return self

    def add_condition(self, condition: 'md_operators.BaseOperator') -> 'SelectQuery':
        self.conditions.append(condition)
        return self


class InsertQuery(BaseQuery):
    """
    An INSERT of a single row.

    .. code-block:: python3

        new_id = await sess.insert.into("books").values({"title": "Dune"}).returning("id")
    """

    def __init__(self, sess: 'md_session.Session'):
        super().__init__(sess)

        #: The logical name of the table inserted into.
        self.table = None  # type: str

        #: column -> value
        self.row = collections.OrderedDict()

        #: The column whose value for the new row is returned, usually the primary key.
        self.return_column = None  # type: str

    def __await__(self):
        return self.run().__await__()

    async def run(self) -> typing.Any:
        """
        :return: The value of :attr:`.return_column` for the new row, or None.
        """
        return await self.session.run_insert_query(self)

    def into(self, table: str) -> 'InsertQuery':
        self.table = table
        return self

    def values(self, values: typing.Mapping[str, typing.Any]) -> 'InsertQuery':
        self.row.update(values)
        return self

    def returning(self, column: str) -> 'InsertQuery':
        self.return_column = column
        return self

    def generate_sql(self) -> typing.Tuple[str, dict]:
        if not self.row:
            raise DatabaseException("There is no data to insert into '{}'".format(self.table))

        bind = self.bind
        params = {}
        names = []
        placeholders = []

        for idx, (column, value) in enumerate(self.row.items()):
            name = "param_{}".format(idx)
            params[name] = value
            names.append(bind.quote(column))
            placeholders.append(bind.emit_param(name))

        sql = "INSERT INTO {} ({}) VALUES ({})".format(
            bind.prefix_table(self.table), ", ".join(names), ", ".join(placeholders)
        )
        if self.return_column is not None and bind.dialect.has_returns:
            sql += " RETURNING {}".format(bind.quote(self.return_column))

        return sql, params


class BulkQuery(BaseQuery, metaclass=abc.ABCMeta):
    """
    The base of statements that change every row matching their conditions.

    The table is not aliased, so column references in the conditions should be unqualified.
    """

    def __init__(self, sess: 'md_session.Session'):
        super().__init__(sess)

        #: The logical name of the table changed.
        self._table = None  # type: str

        self.conditions = []

    def __call__(self, *args, **kwargs):
        return self.table(*args, **kwargs)

    def __await__(self):
        return self.run().__await__()

    def table(self, table: str):
        self._table = table
        return self

    def where(self, *conditions: 'md_operators.BaseOperator'):
        self.conditions.extend(conditions)
        return self

    def _where_sql(self, counter: itertools.count, params: dict) -> str:
        where = self._generate_conditions(self.conditions, counter, params)
        return " WHERE {}".format(where) if where else ""

    async def run(self) -> int:
        """
        :return: The number of rows changed.
        """
        return await self.session.run_write_query(self)


class BulkUpdateQuery(BulkQuery):
    """
    An UPDATE of every matching row.

    .. code-block:: python3

        query = sess.update.table("books")
        count = await query.set("title", "Dune").where(query.column("id").eq(1))
    """

    def __init__(self, sess: 'md_session.Session'):
        super().__init__(sess)

        #: :class:`.ValueSetter` objects, one per column.
        self.setters = []

    def set(self, column: typing.Union[str, 'md_column.ColumnRef'], value: typing.Any):
        self.setters.append(md_operators.ValueSetter(self.column(column), value))
        return self

    def generate_sql(self):
        if not self.setters:
            raise DatabaseException("There is no data to update in '{}'".format(self._table))

        counter = itertools.count()
        params = {}

        assignments = []
        for setter in self.setters:
            res = setter.generate_sql(self.bind.emit_param, counter)
            params.update(res.parameters)
            assignments.append(res.sql)

        sql = "UPDATE {} SET {}".format(self.bind.prefix_table(self._table),
                                        ", ".join(assignments))
        return sql + self._where_sql(counter, params), params


class BulkDeleteQuery(BulkQuery):
    """
    A DELETE of every matching row.

    .. code-block:: python3

        query = sess.delete.table("books")
        count = await query.where(query.column("id").in_([1, 2]))
    """

    def generate_sql(self):
        params = {}
        sql = "DELETE FROM {}".format(self.bind.prefix_table(self._table))
        return sql + self._where_sql(itertools.count(), params), params
