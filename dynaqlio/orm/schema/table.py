"""
The schema of a single table, as discovered from the database.
"""
import collections
import collections.abc
import typing

from cached_property import cached_property

from dynaqlio.orm.schema import column as md_column


class TableSchema(collections.abc.Mapping):
    """
    An ordered, read-only mapping of column name -> :class:`.ColumnInfo` for one table.

    .. code-block:: python3

        schema = await catalog.collect_field_info()
        schema["id"].primary_key  # True
        list(schema)  # ["id", "title", "author_id"]
    """

    def __init__(self, table_name: str, columns: 'typing.Iterable[md_column.ColumnInfo]'):
        """
        :param table_name: The (logical) name of the table.
        :param columns: The columns of the table, in table order.
        """
        self.table_name = table_name
        self._columns = collections.OrderedDict((col.name, col) for col in columns)

    def __getitem__(self, item: str) -> 'md_column.ColumnInfo':
        return self._columns[item]

    def __iter__(self):
        return iter(self._columns)

    def __len__(self):
        return len(self._columns)

    def __repr__(self):
        return "<TableSchema table={!r} columns={}>".format(self.table_name, list(self._columns))

    @cached_property
    def column_names(self) -> typing.List[str]:
        """
        The names of every column, in table order.
        """
        return list(self._columns)

    @cached_property
    def primary_keys(self) -> typing.List[str]:
        """
        The names of every column flagged as primary key, in table order.
        """
        return [name for name, col in self._columns.items() if col.primary_key]

    @property
    def primary_key(self) -> typing.Optional[str]:
        """
        The first column flagged as primary key, or None if the table has no primary key.

        Tables with a composite key report the first of their key columns, in table order.
        """
        try:
            return self.primary_keys[0]
        except IndexError:
            return None
