"""
The interfaces every backend implements: a dialect describing the server's SQL, a connector owning
the connection (or pool), transactions that run statements, and result sets that yield rows.
"""
import collections.abc
import typing
from abc import abstractmethod
from collections import OrderedDict
from urllib.parse import ParseResult, parse_qs

from dynaqlio.meta import AsyncABC


class BaseDialect:
    """
    Describes the SQL of a database server: which optional features it has, how identifiers are
    quoted, and how the columns of a table are discovered.

    The feature properties are False unless a dialect says otherwise; the schema methods must be
    implemented.
    """

    @property
    def has_checkpoints(self) -> bool:
        """
        Whether transactions can have savepoints.
        """
        return False

    @property
    def has_returns(self) -> bool:
        """
        Whether INSERT can return the values of the new row (``RETURNING``).
        """
        return False

    @property
    def lastval_method(self) -> str:
        """
        The SQL expression giving the last generated key, such as ``LASTVAL()``. Used when the
        dialect has no ``RETURNING``.
        """
        raise NotImplementedError

    @property
    def unbounded_limit(self) -> typing.Optional[str]:
        """
        A LIMIT meaning "every row", for servers that need a LIMIT before an OFFSET.
        """
        return None

    def quote_identifier(self, identifier: str) -> str:
        return '"{}"'.format(identifier.replace('"', '""'))

    def get_column_sql(self, table_name: str, *, emitter: typing.Callable[[str], str]) -> str:
        """
        Gets the SQL listing the columns of a table. It receives the physical table name as the
        ``table_name`` parameter, where the server accepts a parameter there.
        """
        raise NotImplementedError

    def get_table_exists_sql(self, *, emitter: typing.Callable[[str], str]) -> str:
        """
        Gets the SQL returning a row when the table given as ``table_name`` exists.
        """
        raise NotImplementedError

    def transform_rows_to_columns(self, *rows: typing.Mapping[str, typing.Any],
                                  table_name: str) -> 'typing.Iterator':
        """
        Turns the rows of :meth:`.get_column_sql` into :class:`.ColumnInfo` objects, in table order.
        """
        raise NotImplementedError


class BaseResultSet(collections.abc.AsyncIterator, AsyncABC):
    """
    The rows of a query, iterated asynchronously. Closing it releases the driver cursor.

    .. code-block:: python3

        async with await transaction.cursor("SELECT * FROM books") as cur:
            async for row in cur:
                ...
    """

    @property
    @abstractmethod
    def keys(self) -> typing.Iterable[str]:
        """
        The column names of the rows.
        """

    @abstractmethod
    async def fetch_row(self) -> typing.Mapping[str, typing.Any]:
        """
        :return: The next row, or None when exhausted.
        """

    @abstractmethod
    async def fetch_many(self, n: int) -> typing.List[typing.Mapping[str, typing.Any]]:
        """
        :return: Up to ``n`` more rows.
        """

    @abstractmethod
    async def close(self):
        pass

    async def fetch_all(self) -> typing.List[typing.Mapping[str, typing.Any]]:
        """
        :return: Every remaining row.
        """
        return [row async for row in self]

    async def __anext__(self):
        row = await self.fetch_row()
        if row is None:
            raise StopAsyncIteration

        return row

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False


class BaseTransaction(AsyncABC):
    """
    A database transaction: the statements between a BEGIN and a COMMIT or ROLLBACK.

    Used as an async context manager, it commits on a clean exit and rolls back on an error.
    Drivers translate their errors into :class:`.IntegrityError`, :class:`.OperationalError` or
    :class:`.DatabaseException`.
    """

    def __init__(self, connector: 'BaseConnector'):
        #: The :class:`.BaseConnector` this transaction belongs to.
        self.connector = connector

    async def __aenter__(self) -> 'BaseTransaction':
        await self.begin()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                await self.commit()
            else:
                await self.rollback()
        finally:
            await self.close()

        return False

    @abstractmethod
    async def begin(self):
        pass

    @abstractmethod
    async def rollback(self, checkpoint: str = None):
        """
        :param checkpoint: The savepoint to return to. The whole transaction is rolled back if
            omitted.
        """

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def execute(self, sql: str, params: typing.Mapping[str, typing.Any] = None) -> int:
        """
        Runs a statement that returns no rows.

        :return: The number of rows affected, where the driver reports it.
        """

    @abstractmethod
    async def close(self):
        """
        Releases the connection of this transaction.
        """

    @abstractmethod
    async def cursor(self, sql: str, params: typing.Mapping[str, typing.Any] = None) \
            -> 'BaseResultSet':
        """
        Runs a statement and returns its rows as a :class:`.BaseResultSet`.
        """

    async def create_savepoint(self, name: str):
        raise NotImplementedError

    async def release_savepoint(self, name: str):
        raise NotImplementedError


class BaseConnector(AsyncABC):
    """
    Owns the connection (or connection pool) of a :class:`.DatabaseInterface`, and hands out
    transactions on it.

    The parts of the DSN are available as attributes, and its query string as :attr:`.params`.
    """

    def __init__(self, dsn: ParseResult):
        self._parse_result = dsn
        self.dsn = dsn.geturl()
        self.host = dsn.hostname
        self.port = dsn.port
        self.username = dsn.username
        self.password = dsn.password
        self.db = dsn.path[1:]
        self.params = {k: v[0] for k, v in parse_qs(dsn.query).items()}

    @abstractmethod
    async def connect(self, **kwargs) -> 'BaseConnector':
        """
        :param kwargs: Passed to the driver, overriding the DSN query parameters.
        """

    @abstractmethod
    async def close(self):
        pass

    @abstractmethod
    def get_transaction(self) -> BaseTransaction:
        """
        :return: A new, not yet begun, :class:`~.BaseTransaction`.
        """

    @abstractmethod
    def emit_param(self, name: str) -> str:
        """
        :return: The placeholder this driver expects for parameter ``name``.
        """


class DictRow(OrderedDict):
    """
    A row keeping the column order of its query. Items can also be read or written by position.
    """

    def __getitem__(self, item):
        if isinstance(item, int):
            try:
                return list(self.values())[item]
            except IndexError:
                raise KeyError(item)

        return super().__getitem__(item)

    def __setitem__(self, key, value, **kwargs):
        if isinstance(key, int):
            key = list(self.keys())[key]

        return super().__setitem__(key, value, **kwargs)
