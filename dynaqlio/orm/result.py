"""
Result rows and the events passed through the read hooks.
"""
import enum
import typing

from dynaqlio.sentinels import NO_VALUE


class ReturnType(enum.Enum):
    """
    The shape of each row returned by a read.
    """
    #: Rows are returned as :class:`.DictRow` mappings.
    DICT = "dict"

    #: Rows are returned as :class:`.Record` objects, with attribute access.
    OBJECT = "object"


class ResultShape(enum.Enum):
    """
    Whether a read produced a single row or a collection of rows.

    This is decided by the read operation itself, never by looking at the data.
    """
    ROW = "row"
    ROWS = "rows"


class Record(object):
    """
    A result row with attribute access.

    .. code-block:: python3

        book = await books.as_object().find(1)
        print(book.title, book.author_name)
    """

    def __init__(self, values: typing.Mapping[str, typing.Any] = None):
        self.__dict__.update(values or {})

    def __repr__(self):
        return "<Record {}>".format(
            " ".join("{}={!r}".format(k, v) for k, v in self.__dict__.items())
        )

    def __eq__(self, other):
        if not isinstance(other, Record):
            return NotImplemented

        return self.__dict__ == other.__dict__

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """
        :return: A dict copy of this record.
        """
        return dict(self.__dict__)


class ReadEvent(object):
    """
    Carries the state of a single read through the ``before_find`` and ``after_find`` hooks.

    Before the read, hooks modify :attr:`.query`; after it, hooks modify :attr:`.data`.
    """

    def __init__(self, query, shape: ResultShape, *,
                 id: typing.Any = None,
                 where: typing.Mapping[str, typing.Any] = None,
                 limit: int = None,
                 offset: int = None):
        #: The :class:`.SelectQuery` being composed.
        self.query = query

        #: The shape of the result; see :class:`.ResultShape`.
        self.shape = shape

        self.id = id
        self.where = where
        self.limit = limit
        self.offset = offset

        #: The result of the read: a row, None, or a list of rows.
        self.data = None

    def __repr__(self):
        return "<ReadEvent shape={} id={!r} where={!r}>".format(self.shape.name, self.id,
                                                                self.where)

    def rows(self) -> list:
        """
        :return: The result as a list of rows, whatever its shape.
        """
        return shape_rows(self.data, self.shape)


def shape_rows(data, shape: ResultShape) -> list:
    """
    Normalizes a result into a list of rows.
    """
    if data is None:
        return []

    if shape is ResultShape.ROW:
        return [data]

    return list(data)


def get_value(row, name: str, default=NO_VALUE):
    """
    Gets a field of a row, whichever the row's :class:`.ReturnType`.
    """
    if isinstance(row, Record):
        return getattr(row, name, default)

    return row.get(name, default)


def set_value(row, name: str, value):
    """
    Sets a field of a row, whichever the row's :class:`.ReturnType`.
    """
    if isinstance(row, Record):
        setattr(row, name, value)
    else:
        row[name] = value


def convert_row(row: typing.Mapping[str, typing.Any], return_type: ReturnType):
    """
    Converts a fetched row into the requested :class:`.ReturnType`.
    """
    if row is None or return_type is ReturnType.DICT:
        return row

    return Record(row)
