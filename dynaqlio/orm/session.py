import enum
import functools
import logging
import typing
import warnings

from dynaqlio import db as md_db
from dynaqlio.backends.base import BaseTransaction
from dynaqlio.orm import query as md_query
from dynaqlio.orm.schema import column as md_column

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    NOT_READY = 0
    READY = 1
    CLOSED = 2


def enforce_open(func):
    """
    Guards a session method so that it only runs between :meth:`.Session.start` and
    :meth:`.Session.close`.
    """

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        if self._state is not SessionState.READY:
            raise RuntimeError("Session {} is {}".format(func.__name__, self._state.name.lower()))

        return func(self, *args, **kwargs)

    return wrapper


class Session(object):
    """
    A unit of work against the database: every statement run through a session shares one
    transaction, which is committed when the ``async with`` block exits cleanly and rolled back
    otherwise.

    Models open a session per operation; it is also the low-level way to run SQL by hand.

    .. code-block:: python3

        async with db.get_session() as sess:
            rows = await sess.select.from_("books").all()
    """

    def __init__(self, bind: 'md_db.DatabaseInterface'):
        """
        :param bind: The :class:`.DatabaseInterface` this session gets its transaction from.
        """
        self.bind = bind

        self._state = SessionState.NOT_READY

        #: The :class:`.BaseTransaction` statements run in. Only set while the session is open.
        self.transaction = None  # type: BaseTransaction

    def __repr__(self):
        return "<Session state={}>".format(self._state.name)

    async def __aenter__(self) -> 'Session':
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is not None:
                await self.rollback()
            else:
                await self.commit()
        finally:
            await self.close()

        return False

    def __del__(self):
        if self._state is SessionState.READY:
            warnings.warn("Session left open; its transaction was never finished", stacklevel=2)

    @property
    def select(self) -> 'md_query.SelectQuery':
        """
        :return: A new :class:`.SelectQuery` bound to this session.
        """
        return md_query.SelectQuery(self)

    @property
    def insert(self) -> 'md_query.InsertQuery':
        """
        :return: A new :class:`.InsertQuery` bound to this session.
        """
        return md_query.InsertQuery(self)

    @property
    def update(self) -> 'md_query.BulkUpdateQuery':
        """
        :return: A new :class:`.BulkUpdateQuery` bound to this session.
        """
        return md_query.BulkUpdateQuery(self)

    @property
    def delete(self) -> 'md_query.BulkDeleteQuery':
        """
        :return: A new :class:`.BulkDeleteQuery` bound to this session.
        """
        return md_query.BulkDeleteQuery(self)

    async def start(self) -> 'Session':
        """
        Opens the transaction of this session. ``async with`` does this for you.
        """
        if self._state is not SessionState.NOT_READY:
            raise RuntimeError("Session was already started")

        self.transaction = self.bind.get_transaction()
        await self.transaction.begin()
        logger.debug("Session started on {}".format(self.transaction))

        self._state = SessionState.READY
        return self

    @enforce_open
    async def checkpoint(self, checkpoint_name: str):
        """
        Creates a savepoint that :meth:`.rollback` can return to.

        :raises NotImplementedError: If the dialect has no savepoints.
        """
        if not self.bind.dialect.has_checkpoints:
            raise NotImplementedError("{} has no savepoints".format(
                type(self.bind.dialect).__name__))

        return await self.transaction.create_savepoint(checkpoint_name)

    @enforce_open
    async def commit(self) -> 'Session':
        """
        Commits the work done so far. The session stays open.
        """
        logger.debug("Committing session")
        await self.transaction.commit()
        return self

    @enforce_open
    async def rollback(self, checkpoint: str = None) -> 'Session':
        """
        Discards the work done so far, or the work done since ``checkpoint``.
        """
        logger.debug("Rolling back session (checkpoint: {})".format(checkpoint))
        await self.transaction.rollback(checkpoint=checkpoint)
        return self

    @enforce_open
    async def close(self):
        """
        Releases the transaction. Anything not committed is lost.
        """
        await self.transaction.close()
        self.transaction = None
        self._state = SessionState.CLOSED

    @enforce_open
    async def fetch(self, sql: str, params: typing.Mapping[str, typing.Any] = None):
        """
        Runs SQL and returns its first row, or None.
        """
        cur = await self.transaction.cursor(sql, params)
        async with cur:
            return await cur.fetch_row()

    @enforce_open
    async def fetch_all(self, sql: str, params: typing.Mapping[str, typing.Any] = None):
        """
        Runs SQL and returns every row.
        """
        cur = await self.transaction.cursor(sql, params)
        async with cur:
            return await cur.fetch_all()

    @enforce_open
    async def execute(self, sql: str, params: typing.Mapping[str, typing.Any] = None) -> int:
        """
        Runs SQL that returns no rows.

        :return: The number of rows affected.
        """
        return await self.transaction.execute(sql, params)

    @enforce_open
    async def cursor(self, sql: str, params: typing.Mapping[str, typing.Any] = None):
        """
        Runs SQL and returns the :class:`.BaseResultSet` to iterate over.
        """
        return await self.transaction.cursor(sql, params)

    async def get_columns(self, table_name: str) -> 'typing.List[md_column.ColumnInfo]':
        """
        Gets the columns of a table, as reported by the database.

        :param table_name: The logical name of the table. The table prefix is applied.
        :return: A list of :class:`.ColumnInfo`, in table order. Empty if the table doesn't exist.
        """
        dialect = self.bind.dialect
        physical = self.bind.physical_name(table_name)
        sql = dialect.get_column_sql(physical, emitter=self.bind.emit_param)
        rows = await self.fetch_all(sql, {"table_name": physical})
        return list(dialect.transform_rows_to_columns(*rows, table_name=table_name))

    async def table_exists(self, table_name: str) -> bool:
        """
        Checks if a table (or view) exists.

        :param table_name: The logical name of the table. The table prefix is applied.
        """
        physical = self.bind.physical_name(table_name)
        sql = self.bind.dialect.get_table_exists_sql(emitter=self.bind.emit_param)
        row = await self.fetch(sql, {"table_name": physical})
        return row is not None

    async def run_select_query(self, query: 'md_query.SelectQuery') -> list:
        sql, params = query.generate_sql()
        return await self.fetch_all(sql, params)

    async def run_insert_query(self, query: 'md_query.InsertQuery'):
        """
        Runs an insert.

        :return: The value of the query's return column for the new row, or None when the query
            has no return column.
        """
        sql, params = query.generate_sql()

        if query.return_column is None:
            await self.execute(sql, params)
            return None

        dialect = self.bind.dialect
        if dialect.has_returns:
            row = await self.fetch(sql, params)
            return None if row is None else row[query.return_column]

        await self.execute(sql, params)
        row = await self.fetch("SELECT {};".format(dialect.lastval_method))
        return next(iter(row.values()))

    async def run_write_query(self, query: 'md_query.BulkQuery') -> int:
        """
        Runs a bulk update or delete.

        :return: The number of rows changed.
        """
        if not isinstance(query, md_query.BulkQuery):
            raise TypeError("{} is not a bulk query".format(type(query).__name__))

        sql, params = query.generate_sql()
        return await self.execute(sql, params)

    run_update_query = run_write_query
    run_delete_query = run_write_query
