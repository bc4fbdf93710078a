"""
MySQL and MariaDB through aiomysql. Transactions borrow a connection from an aiomysql pool and
return it when closed.
"""
import contextlib
import logging
import typing

import aiomysql
import pymysql

from dynaqlio.backends.base import BaseConnector, BaseResultSet, BaseTransaction, DictRow
from dynaqlio.exc import DatabaseException, IntegrityError, OperationalError

logger = logging.getLogger(__name__)

# rows come back as DictRow, like every other backend
aiomysql.DictCursor.dict_type = DictRow


@contextlib.contextmanager
def _translate_errors():
    try:
        yield
    except pymysql.err.IntegrityError as e:
        raise IntegrityError(*e.args) from e
    except pymysql.err.OperationalError as e:
        raise OperationalError(*e.args) from e
    except pymysql.err.MySQLError as e:
        raise DatabaseException(*e.args) from e


class AiomysqlResultSet(BaseResultSet):
    """
    Rows read from an aiomysql :class:`aiomysql.DictCursor`.
    """

    def __init__(self, cursor: aiomysql.DictCursor):
        self.cursor = cursor

    @property
    def keys(self):
        if self.cursor.description is None:
            return ()

        return [d[0] for d in self.cursor.description]

    async def close(self):
        return await self.cursor.close()

    async def fetch_row(self) -> typing.Dict[typing.Any, typing.Any]:
        return await self.cursor.fetchone()

    async def fetch_many(self, n: int):
        return list(await self.cursor.fetchmany(size=n))

    async def fetch_all(self):
        return list(await self.cursor.fetchall())


class AiomysqlTransaction(BaseTransaction):
    """
    A transaction on one pooled connection.
    """

    def __init__(self, connector: 'AiomysqlConnector'):
        super().__init__(connector)

        #: The pooled connection, held from :meth:`.begin` to :meth:`.close`.
        self.connection = None  # type: aiomysql.Connection

    async def close(self):
        await self.connector.pool.release(self.connection)
        self.connection = None

    async def begin(self):
        self.connection = await self.connector.pool.acquire()  # type: aiomysql.Connection
        await self.connection.begin()
        return self

    async def execute(self, sql: str, params: typing.Mapping[str, typing.Any] = None) -> int:
        logger.debug("Running {} with params {}".format(sql, params))
        cursor = await self.connection.cursor(aiomysql.DictCursor)
        try:
            with _translate_errors():
                return await cursor.execute(sql, params or None)
        finally:
            await cursor.close()

    async def cursor(self, sql: str, params: typing.Mapping[str, typing.Any] = None) \
            -> 'AiomysqlResultSet':
        logger.debug("Running {} with params {}".format(sql, params))
        cursor = await self.connection.cursor(aiomysql.DictCursor)
        with _translate_errors():
            await cursor.execute(sql, params or None)
        return AiomysqlResultSet(cursor)

    async def rollback(self, checkpoint: str = None):
        if checkpoint is not None:
            await self.execute("ROLLBACK TO SAVEPOINT {};".format(checkpoint))
            return

        await self.connection.rollback()

    async def commit(self):
        with _translate_errors():
            await self.connection.commit()

    async def create_savepoint(self, name: str):
        await self.execute("SAVEPOINT {};".format(name))

    async def release_savepoint(self, name: str):
        await self.execute("RELEASE SAVEPOINT {};".format(name))


class AiomysqlConnector(BaseConnector):
    """
    Owns the aiomysql connection pool. Extra DSN query parameters are passed to
    :func:`aiomysql.create_pool`.
    """

    def __init__(self, dsn):
        super().__init__(dsn)

        #: The :class:`aiomysql.Pool`; None until connected.
        self.pool = None  # type: aiomysql.Pool

    async def connect(self, **kwargs) -> 'AiomysqlConnector':
        options = dict(self.params, **kwargs)
        port = self.port or 3306
        logger.info("Connecting to MySQL on {}:{}/{}".format(self.host, port, self.db))
        with _translate_errors():
            self.pool = await aiomysql.create_pool(host=self.host, user=self.username,
                                                   password=self.password, port=port,
                                                   db=self.db, **options)
        return self

    async def close(self, forcefully: bool = False):
        """
        Closes the pool, waiting for borrowed connections unless ``forcefully`` is set.
        """
        if forcefully:
            self.pool.terminate()
        else:
            self.pool.close()
        await self.pool.wait_closed()

    def get_transaction(self) -> BaseTransaction:
        return AiomysqlTransaction(self)

    def emit_param(self, name: str) -> str:
        if pymysql.paramstyle == "pyformat":
            return "%({})s".format(name)
        elif pymysql.paramstyle == "named":
            return ":{}".format(name)
        else:
            raise ValueError("Cannot work with paramstyle {}".format(pymysql.paramstyle))


CONNECTOR_TYPE = AiomysqlConnector
