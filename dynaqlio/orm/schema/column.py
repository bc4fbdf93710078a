"""
Column metadata discovered from the database, and qualified column references used when
building queries.
"""
import typing

from dynaqlio.orm import operators as md_operators
from dynaqlio.sentinels import NO_DEFAULT


def _default_quoter(identifier: str) -> str:
    return '"{}"'.format(identifier.replace('"', '""'))


class ColumnInfo(object):
    """
    Represents the metadata of a single column, as reported by the database.

    These are not created by user code; they are produced by a dialect's
    ``transform_rows_to_columns`` when a :class:`.SchemaCatalog` inspects a table.
    """

    __slots__ = ("name", "type", "primary_key", "nullable", "default", "table_name")

    def __init__(self, name: str, type_: str, *,
                 primary_key: bool = False,
                 nullable: bool = True,
                 default: typing.Any = NO_DEFAULT,
                 table_name: str = None):
        """
        :param name: The name of the column.
        :param type_: The data type of the column, as reported by the server.
        :param primary_key: Is this column (part of) the primary key?
        :param nullable: Can this column be NULL?
        :param default: The server-side default of this column, if any.
        :param table_name: The name of the table this column belongs to.
        """
        self.name = name
        self.type = type_
        self.primary_key = primary_key
        self.nullable = nullable
        self.default = default
        self.table_name = table_name

    def __repr__(self):
        return "<ColumnInfo table={!r} name={!r} type={!r} primary_key={}>".format(
            self.table_name, self.name, self.type, self.primary_key
        )

    def __eq__(self, other):
        if not isinstance(other, ColumnInfo):
            return NotImplemented

        return (self.name, self.type, self.primary_key, self.nullable, self.table_name) == \
               (other.name, other.type, other.primary_key, other.nullable, other.table_name)

    def __hash__(self):
        return hash((self.table_name, self.name))


class ColumnRef(object):
    """
    A reference to a column, optionally qualified by a table name or alias.

    Comparison helpers return operators that can be passed to :meth:`.SelectQuery.where`:

    .. code-block:: python3

        ref = ColumnRef("books", "author_id")
        query.where(ref.eq(2), ref.in_([1, 2, 3]))
    """

    def __init__(self, table: typing.Optional[str], name: str,
                 quoter: typing.Callable[[str], str] = None):
        """
        :param table: The table name or alias qualifying this column, or None.
        :param name: The bare column name.
        :param quoter: The identifier quoting function of the dialect in use.
        """
        self.table = table
        self.name = name
        self.quoter = quoter or _default_quoter

    def __repr__(self):
        return "<ColumnRef {}>".format(self.fullname)

    @property
    def fullname(self) -> str:
        """
        The unquoted ``table.column`` name.
        """
        if self.table is None:
            return self.name

        return "{}.{}".format(self.table, self.name)

    @property
    def quoted_name(self) -> str:
        """
        The quoted bare name of this column.
        """
        return self.quoter(self.name)

    @property
    def quoted_fullname(self) -> str:
        """
        The quoted, table-qualified name of this column.
        """
        if self.table is None:
            return self.quoted_name

        return "{}.{}".format(self.quoter(self.table), self.quoted_name)

    def aliased(self, alias: str = None) -> str:
        """
        Gets the projection SQL for this column, renamed to ``alias`` if given.
        """
        if alias is None or alias == self.name:
            return self.quoted_fullname

        return "{} AS {}".format(self.quoted_fullname, self.quoter(alias))

    # operator helpers
    def eq(self, value: typing.Any) -> 'md_operators.Eq':
        return md_operators.Eq(self, value)

    def ne(self, value: typing.Any) -> 'md_operators.NEq':
        return md_operators.NEq(self, value)

    def in_(self, values: typing.Iterable[typing.Any]) -> 'md_operators.In':
        return md_operators.In(self, list(values))

    def is_null(self) -> 'md_operators.IsNull':
        return md_operators.IsNull(self)

    def is_not_null(self) -> 'md_operators.IsNotNull':
        return md_operators.IsNotNull(self)

    def asc(self) -> 'md_operators.AscSorter':
        return md_operators.AscSorter(self)

    def desc(self) -> 'md_operators.DescSorter':
        return md_operators.DescSorter(self)

    def set(self, value: typing.Any) -> 'md_operators.ValueSetter':
        return md_operators.ValueSetter(self, value)
