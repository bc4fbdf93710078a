"""
The database interface: the entry point that owns the connection to the server and hands out
sessions and model factories.
"""
import importlib
import logging
import typing
from urllib.parse import ParseResult, urlparse

from dynaqlio.backends.base import BaseConnector, BaseDialect, BaseTransaction
from dynaqlio.orm import factory as md_factory, session as md_session
from dynaqlio.orm.schema import column as md_column
from dynaqlio.utils import separate_statements

logger = logging.getLogger("dynaqlio")


def load_backend(scheme: str) -> typing.Tuple[BaseDialect, typing.Type[BaseConnector]]:
    """
    Loads the dialect and connector type named by a DSN scheme.

    The scheme is ``<db>`` or ``<db>+<connector>``; ``dynaqlio.backends.<db>`` provides the
    dialect and the default connector.
    """
    db_type, _, connector_name = scheme.partition("+")

    package_path = "dynaqlio.backends.{}".format(db_type)
    package = importlib.import_module(package_path)
    connector_name = connector_name or package.DEFAULT_CONNECTOR

    dialect = getattr(package, "{}Dialect".format(db_type.title()))()

    logger.debug("Loading connector {}.{}".format(package_path, connector_name))
    connector_mod = importlib.import_module("{}.{}".format(package_path, connector_name))
    return dialect, connector_mod.CONNECTOR_TYPE


class DatabaseInterface(object):
    """
    The connection to a database server, and the factory of everything that runs queries on it.

    .. code-block:: python3

        db = DatabaseInterface("postgresql://postgres@127.0.0.1/library", table_prefix="app_")
        await db.connect()

        books = await db.get_factory().table("books")

    Tables are always referred to by their logical name; ``table_prefix`` is prepended to get the
    physical name of a table in the database.
    """

    def __init__(self, dsn: str = None, *, table_prefix: str = ""):
        """
        :param dsn: The DSN to connect to, such as ``sqlite3:///library.db``. It can also be given
            to :meth:`.connect`.
        :param table_prefix: A prefix applied to the name of every table.
        """
        self._dsn = dsn

        self.table_prefix = table_prefix or ""

        #: The :class:`.BaseConnector` in use; None until connected.
        self.connector = None  # type: BaseConnector

        #: The :class:`.BaseDialect` of the server.
        self.dialect = None  # type: BaseDialect

    def __repr__(self):
        return "<DatabaseInterface dsn={!r} connected={}>".format(self._dsn, self.connected)

    async def __aenter__(self):
        if not self.connected:
            await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    @property
    def connected(self) -> bool:
        return self.connector is not None

    async def connect(self, dsn: str = None, **kwargs) -> BaseConnector:
        """
        Connects to the database server. For SQLite this opens the database file.

        :param dsn: The DSN, if it was not given to the constructor.
        :param kwargs: Passed to the driver (see :meth:`.BaseConnector.connect`), overriding the
            DSN query parameters.
        :return: The connected :class:`~.BaseConnector`.
        """
        if dsn is not None:
            self._dsn = dsn

        if self._dsn is None:
            raise ValueError("No DSN was provided to connect to")

        parsed_dsn = urlparse(self._dsn)  # type: ParseResult
        self.dialect, connector_type = load_backend(parsed_dsn.scheme)

        connector = connector_type(parsed_dsn)
        await connector.connect(**kwargs)
        self.connector = connector
        return connector

    def emit_param(self, name: str) -> str:
        """
        :return: The placeholder of parameter ``name`` for the driver in use.
        """
        return self.connector.emit_param(name)

    def quote(self, identifier: str) -> str:
        """
        Quotes an identifier with the quoting rules of the current dialect.
        """
        return self.dialect.quote_identifier(identifier)

    def physical_name(self, table_name: str) -> str:
        """
        Gets the name of a table in the database, with the table prefix applied.
        """
        return "{}{}".format(self.table_prefix, table_name)

    def prefix_table(self, table_name: str) -> str:
        """
        Gets the quoted physical name of a table, with the table prefix applied.
        """
        return self.quote(self.physical_name(table_name))

    def table_reference(self, table_name: str, alias: str = None) -> str:
        """
        Gets the SQL used to reference a table in a FROM or JOIN clause.

        The table is aliased to ``alias`` (or its logical name) whenever that differs from its
        physical name, so that columns can always be qualified by the logical name.
        """
        alias = alias or table_name
        physical = self.physical_name(table_name)
        if physical == alias:
            return self.quote(physical)

        return "{} AS {}".format(self.quote(physical), self.quote(alias))

    def get_transaction(self) -> BaseTransaction:
        """
        Gets a low-level :class:`.BaseTransaction`.

        .. code-block:: python3

            async with db.get_transaction() as transaction:
                results = await transaction.cursor("SELECT 1;")
        """
        return self.connector.get_transaction()

    def get_session(self) -> 'md_session.Session':
        """
        Gets a new :class:`.Session` bound to this instance.
        """
        return md_session.Session(self)

    def get_factory(self, registry: 'md_factory.ModelRegistry' = None) \
            -> 'md_factory.DynamicModelFactory':
        """
        Gets a new :class:`.DynamicModelFactory` that builds models bound to this instance.

        :param registry: The :class:`.ModelRegistry` of hand-written model types to consult.
        """
        return md_factory.DynamicModelFactory(self, registry)

    async def get_columns(self, table_name: str) -> 'typing.List[md_column.ColumnInfo]':
        """
        Gets the columns of a table, in their own session.

        :param table_name: The logical name of the table.
        """
        async with self.get_session() as sess:
            return await sess.get_columns(table_name)

    async def table_exists(self, table_name: str) -> bool:
        """
        Checks if a table exists, in its own session.

        :param table_name: The logical name of the table.
        """
        async with self.get_session() as sess:
            return await sess.table_exists(table_name)

    async def execute_script(self, sql: str):
        """
        Executes every statement of a SQL script inside one session.

        This is part of the **low-level API**, and is mostly useful for creating tables.
        """
        async with self.get_session() as sess:
            for statement in separate_statements(sql):
                await sess.execute(statement)

    async def close(self):
        """
        Closes the current database interface.
        """
        if self.connector is not None:
            await self.connector.close()
            self.connector = None
