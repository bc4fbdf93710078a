"""
Runtime schema discovery for dynamic models.
"""
import logging
import typing

from dynaqlio.exc import DatabaseException, SchemaIntrospectionError, TableNotFoundError
from dynaqlio.orm.schema import table as md_table

logger = logging.getLogger(__name__)


class SchemaCatalog(object):
    """
    Fetches and caches the column metadata of one table.

    The cached schema lives as long as the catalog (and so as long as the model owning it). It is
    never refreshed automatically; call :meth:`.collect_field_info` to re-read it.

    Schemas of other tables can be fetched through the same catalog; those are returned but never
    replace the cached schema of the catalog's own table.
    """

    def __init__(self, bind, table_name: str):
        """
        :param bind: The :class:`.DatabaseInterface` to fetch metadata through.
        :param table_name: The name of the table this catalog describes.
        """
        self.bind = bind
        self.table_name = table_name

        #: The cached :class:`.TableSchema`, or None if it has not been collected yet.
        self.schema = None  # type: md_table.TableSchema

    def __repr__(self):
        return "<SchemaCatalog table={!r}>".format(self.table_name)

    @property
    def fields(self) -> 'md_table.TableSchema':
        """
        The cached schema of this catalog's table.
        """
        if self.schema is None:
            raise RuntimeError("The schema of table '{}' has not been collected"
                               .format(self.table_name))

        return self.schema

    async def fetch(self, table_name: str) -> 'md_table.TableSchema':
        """
        Fetches the schema of any table, without caching it.

        :param table_name: The name of the table to inspect.
        :return: A new :class:`.TableSchema`.
        """
        logger.debug("Fetching column metadata for table {}".format(table_name))
        try:
            columns = list(await self.bind.get_columns(table_name))
        except DatabaseException as e:
            raise SchemaIntrospectionError(
                "Could not fetch the columns of table '{}'".format(table_name)
            ) from e

        # no SQL table can exist without columns
        if not columns:
            raise TableNotFoundError(table_name)

        return md_table.TableSchema(table_name, columns)

    async def collect_field_info(self, table_name: str = None) -> 'md_table.TableSchema':
        """
        Queries the database for column metadata.

        When ``table_name`` is omitted (or is this catalog's own table) the cached schema is
        rebuilt.

        :param table_name: The table to inspect. Defaults to this catalog's table.
        :return: The :class:`.TableSchema` fetched.
        """
        if table_name is None:
            table_name = self.table_name

        schema = await self.fetch(table_name)
        if table_name == self.table_name:
            self.schema = schema

        return schema

    async def get_field_info(self, table_name: str = None, primary_key: bool = False) \
            -> 'typing.Union[md_table.TableSchema, str, None]':
        """
        Re-collects the field info of a table, then returns either the schema or the name of its
        primary key.

        :param table_name: The table to inspect. Defaults to this catalog's table.
        :param primary_key: If True, return the name of the first column flagged as primary key
            (None when no column is flagged) instead of the whole schema.
        """
        schema = await self.collect_field_info(table_name)

        if primary_key:
            return schema.primary_key

        return schema
