"""
PostgreSQL through asyncpg. Connections come from an asyncpg pool; a transaction holds one pooled
connection from begin until close.
"""
import logging
import typing
import warnings

import asyncpg

from dynaqlio.backends.base import BaseConnector, BaseResultSet, BaseTransaction, DictRow
from dynaqlio.exc import DatabaseException, IntegrityError, OperationalError

logger = logging.getLogger(__name__)


def get_param_query(sql: str, params: typing.Mapping[str, typing.Any]) \
        -> typing.Tuple[str, tuple]:
    """
    Rewrites the ``{name}`` placeholders of a statement into the ``$n`` placeholders asyncpg takes.

    :return: The rewritten SQL, and the arguments in placeholder order.
    """
    if not params:
        return sql, ()

    positions = {name: "${}".format(n) for n, name in enumerate(params, start=1)}
    return sql.format(**positions), tuple(params.values())


def _parse_status(status: str) -> int:
    # the status is the command tag, such as "UPDATE 3"
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return -1


class AsyncpgResultSet(BaseResultSet):
    """
    The records of a query. asyncpg fetches them all at once, so this only walks the list.
    """

    def __init__(self, records: 'typing.List[asyncpg.Record]'):
        self._records = list(records)
        self._index = 0

    @property
    def keys(self) -> typing.Iterable[str]:
        if not self._records:
            return ()

        return list(self._records[0].keys())

    async def fetch_many(self, n: int):
        rows = self._records[self._index:self._index + n]
        self._index += len(rows)
        return [DictRow(r.items()) for r in rows]

    async def fetch_row(self):
        if self._index >= len(self._records):
            return None

        row = self._records[self._index]
        self._index += 1
        return DictRow(row.items())

    async def close(self):
        self._records = []


class AsyncpgTransaction(BaseTransaction):
    """
    A transaction on one connection of the pool, using asyncpg's own transaction object.
    """

    def __init__(self, conn: 'AsyncpgConnector'):
        super().__init__(conn)

        #: The pooled connection, held from :meth:`.begin` to :meth:`.close`.
        self.acquired_connection = None  # type: asyncpg.connection.Connection

        #: The :class:`asyncpg.transaction.Transaction`.
        self.transaction = None

    async def begin(self, **transaction_options):
        self.acquired_connection = await self.connector.pool.acquire()
        self.transaction = self.acquired_connection.transaction(**transaction_options)
        await self.transaction.start()
        logger.debug("Started transaction {}".format(self.transaction))

        return self

    async def commit(self):
        await self.transaction.commit()

    async def rollback(self, checkpoint: str = None):
        if checkpoint is not None:
            await self.acquired_connection.execute("ROLLBACK TO {}".format(checkpoint))
        else:
            await self.transaction.rollback()

    async def close(self):
        await self.connector.pool.release(self.acquired_connection)
        self.acquired_connection = None

    async def _run(self, method: str, sql: str, params: typing.Mapping[str, typing.Any]):
        query, args = get_param_query(sql, params)
        logger.debug("Running {} with args {}".format(query, args))

        try:
            return await getattr(self.acquired_connection, method)(query, *args)
        except asyncpg.IntegrityConstraintViolationError as e:
            raise IntegrityError(*e.args) from e
        except asyncpg.ObjectNotInPrerequisiteStateError as e:
            raise OperationalError(*e.args) from e
        except asyncpg.PostgresError as e:
            raise DatabaseException(*e.args) from e

    async def execute(self, sql: str, params: typing.Mapping[str, typing.Any] = None) -> int:
        status = await self._run("execute", sql, params)
        return _parse_status(status)

    async def cursor(self, sql: str, params: typing.Mapping[str, typing.Any] = None) \
            -> AsyncpgResultSet:
        records = await self._run("fetch", sql, params)
        return AsyncpgResultSet(records)

    async def create_savepoint(self, name: str):
        await self.acquired_connection.execute("SAVEPOINT {};".format(name))

    async def release_savepoint(self, name: str):
        await self.acquired_connection.execute("RELEASE SAVEPOINT {};".format(name))


class AsyncpgConnector(BaseConnector):
    """
    Owns the asyncpg connection pool. Extra DSN query parameters are passed to
    :func:`asyncpg.create_pool`.
    """

    def __init__(self, parsed):
        super().__init__(parsed)

        #: The :class:`asyncpg.pool.Pool` connection pool.
        self.pool = None  # type: asyncpg.pool.Pool

    def __del__(self):
        if self.pool is not None and not self.pool._closed:
            warnings.warn("Unclosed asyncpg pool {}".format(self.pool))

    async def close(self):
        await self.pool.close()

    def emit_param(self, name: str) -> str:
        # renumbered into $n by get_param_query
        return "{{{name}}}".format(name=name)

    async def connect(self, **kwargs) -> 'AsyncpgConnector':
        options = dict(self.params, **kwargs)
        port = self.port or 5432
        logger.info("Connecting to PostgreSQL on {}:{}/{}".format(self.host, port, self.db))
        self.pool = await asyncpg.create_pool(host=self.host, port=port, user=self.username,
                                              password=self.password, database=self.db,
                                              **options)
        return self

    def get_transaction(self) -> 'AsyncpgTransaction':
        return AsyncpgTransaction(self)


CONNECTOR_TYPE = AsyncpgConnector
