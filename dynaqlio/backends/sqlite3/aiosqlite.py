"""
A backend using the `aiosqlite <https://github.com/omnilib/aiosqlite>`_ driver.
"""
import asyncio
import contextlib
import logging
import sqlite3
import typing

import aiosqlite

from dynaqlio.backends.base import BaseConnector, BaseResultSet, BaseTransaction, DictRow
from dynaqlio.exc import DatabaseException, IntegrityError, OperationalError

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def _translate_errors():
    try:
        yield
    except sqlite3.IntegrityError as e:
        raise IntegrityError(*e.args) from e
    except sqlite3.OperationalError as e:
        raise OperationalError(*e.args) from e
    except sqlite3.Error as e:
        raise DatabaseException(*e.args) from e


class AiosqliteResultSet(BaseResultSet):
    """
    A result set for a sqlite3 database.
    """

    def __init__(self, cursor: aiosqlite.Cursor):
        self.cursor = cursor

    @property
    def keys(self) -> typing.Iterable[str]:
        if self.cursor.description is None:
            return ()

        return [d[0] for d in self.cursor.description]

    async def close(self):
        await self.cursor.close()

    async def fetch_many(self, n: int) -> typing.List[typing.Mapping[str, typing.Any]]:
        """
        Fetches many rows.
        """
        with _translate_errors():
            rows = await self.cursor.fetchmany(n)

        return [DictRow(r) for r in rows if r is not None]

    async def fetch_row(self) -> typing.Mapping[str, typing.Any]:
        """
        Fetches one row.
        """
        with _translate_errors():
            row = await self.cursor.fetchone()

        return DictRow(row) if row is not None else None


class AiosqliteTransaction(BaseTransaction):
    """
    Represents a sqlite3 transaction.

    Every transaction shares the single connection of its connector, so that in-memory databases
    are visible to every session. Transactions are expected to be used one after another, not
    interleaved.
    """

    def __init__(self, connector: 'AiosqliteConnector'):
        super().__init__(connector)

        #: The connection for this transaction.
        self.connection = None  # type: aiosqlite.Connection

        self._lock = asyncio.Lock()

    async def begin(self):
        """
        Begins the current transaction.
        """
        if self.connector.connection is None:
            raise DatabaseException("The sqlite3 connector is not connected")

        self.connection = self.connector.connection
        return self

    async def execute(self, sql: str, params: typing.Mapping[str, typing.Any] = None) -> int:
        """
        Executes SQL in the current transaction.
        """
        logger.debug("Executing query {} with params {}".format(sql, params))
        async with self._lock:
            with _translate_errors():
                cur = await self.connection.execute(sql, params or {})
                rowcount = cur.rowcount
                await cur.close()

        return rowcount

    async def cursor(self, sql: str, params: typing.Mapping[str, typing.Any] = None) \
            -> 'AiosqliteResultSet':
        """
        Gets a cursor for the specified SQL.
        """
        logger.debug("Executing query {} with params {}".format(sql, params))
        async with self._lock:
            with _translate_errors():
                cur = await self.connection.execute(sql, params or {})

        return AiosqliteResultSet(cur)

    async def commit(self):
        """
        Commits the current transaction.
        """
        async with self._lock:
            with _translate_errors():
                await self.connection.commit()

    async def rollback(self, checkpoint: str = None):
        """
        Rolls back the current transaction.
        """
        if checkpoint is not None:
            await self.execute("ROLLBACK TRANSACTION TO SAVEPOINT {};".format(checkpoint))
            return

        async with self._lock:
            with _translate_errors():
                await self.connection.rollback()

    async def create_savepoint(self, name: str):
        """
        Creates a savepoint for this transaction.
        """
        await self.execute("SAVEPOINT {};".format(name))

    async def release_savepoint(self, name: str):
        """
        Releases a savepoint in this transaction.
        """
        await self.execute("RELEASE SAVEPOINT {};".format(name))

    async def close(self):
        """
        Closes the current transaction, rolling back anything stale left on the connection.
        """
        if self.connection is not None and self.connection.in_transaction:
            await self.rollback()

        self.connection = None


class AiosqliteConnector(BaseConnector):
    """
    A connector powered by aiosqlite.

    The database path is the path of the DSN: ``sqlite3:///relative.db``,
    ``sqlite3:////absolute/path.db`` or ``sqlite3:///:memory:``.
    """

    def __init__(self, parsed):
        super().__init__(parsed)

        #: The single aiosqlite connection shared by every transaction.
        self.connection = None  # type: aiosqlite.Connection

    async def connect(self, **kwargs) -> 'AiosqliteConnector':
        """
        Opens the sqlite3 database. ``kwargs`` are passed to :func:`aiosqlite.connect`.
        """
        database = self.db or ":memory:"
        if "timeout" in self.params:
            kwargs.setdefault("timeout", float(self.params["timeout"]))

        logger.info("Opening sqlite3 database {}".format(database))
        with _translate_errors():
            self.connection = await aiosqlite.connect(database, **kwargs)
        # this allows dict-like access
        self.connection.row_factory = aiosqlite.Row
        return self

    async def close(self):
        """
        Closes this connector.
        """
        if self.connection is not None:
            await self.connection.close()
            self.connection = None

    def get_transaction(self) -> 'AiosqliteTransaction':
        return AiosqliteTransaction(self)

    def emit_param(self, name: str) -> str:
        return ":{}".format(name)


CONNECTOR_TYPE = AiosqliteConnector
