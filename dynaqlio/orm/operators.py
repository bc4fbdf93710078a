"""
SQL conditions, sorters and setters.

Each operator renders itself with ``generate_sql(emitter, counter)``: ``counter`` numbers the
parameters of the whole statement, and ``emitter`` turns a parameter name into the placeholder of
the driver in use.
"""
import abc
import itertools
import typing

from dynaqlio.orm.schema import column as md_column


class OperatorResponse:
    """
    The SQL fragment of an operator, and the parameters it refers to.
    """
    __slots__ = ("sql", "parameters")

    def __init__(self, sql: str, parameters: dict = None):
        self.sql = sql
        self.parameters = parameters if parameters is not None else {}


class BaseOperator(abc.ABC):
    def get_param(self, emitter: typing.Callable[[str], str], counter: itertools.count) \
            -> typing.Tuple[str, str]:
        """
        Allocates the next parameter of the statement.

        :return: The placeholder to put in the SQL, and the parameter name to put in the params.
        """
        name = "param_{}".format(next(counter))
        return emitter(name), name

    @abc.abstractmethod
    def generate_sql(self, emitter: typing.Callable[[str], str], counter: itertools.count) \
            -> OperatorResponse:
        """
        Renders this operator.

        :param emitter: Makes a placeholder out of a parameter name.
        :param counter: The parameter counter of the statement being generated.
        """


class Sorter(BaseOperator, metaclass=abc.ABCMeta):
    """
    An ORDER BY term.
    """

    def __init__(self, *columns: 'md_column.ColumnRef'):
        self.cols = columns

    @property
    @abc.abstractmethod
    def sort_order(self) -> str:
        pass

    def generate_sql(self, emitter: typing.Callable[[str], str], counter: itertools.count):
        names = ", ".join(col.quoted_fullname for col in self.cols)
        return OperatorResponse("{} {}".format(names, self.sort_order))


class AscSorter(Sorter):
    sort_order = "ASC"


class DescSorter(Sorter):
    sort_order = "DESC"


def sorter_for(column: 'md_column.ColumnRef', direction: str) -> Sorter:
    """
    Gets the sorter for a textual sort direction (``asc`` or ``desc``, any case).
    """
    direction = (direction or "asc").strip().lower()
    if direction == "asc":
        return AscSorter(column)
    elif direction == "desc":
        return DescSorter(column)

    raise ValueError("Unknown sort order {}".format(direction))


class ColumnValueMixin(object):
    def __init__(self, column: 'md_column.ColumnRef', value: typing.Any):
        self.column = column
        self.value = value


class ValueSetter(BaseOperator, ColumnValueMixin):
    """
    ``col = value``, in the SET clause of an UPDATE. The column is never qualified.
    """

    def generate_sql(self, emitter: typing.Callable[[str], str], counter: itertools.count):
        placeholder, name = self.get_param(emitter, counter)
        return OperatorResponse("{} = {}".format(self.column.quoted_name, placeholder),
                                {name: self.value})


class In(BaseOperator, ColumnValueMixin):
    """
    ``col IN (...)``. An empty collection matches nothing.
    """

    def generate_sql(self, emitter: typing.Callable[[str], str], counter: itertools.count):
        params = {}
        placeholders = []
        for item in self.value:
            placeholder, name = self.get_param(emitter, counter)
            params[name] = item
            placeholders.append(placeholder)

        if not placeholders:
            return OperatorResponse("1 = 0")

        sql = "{} IN ({})".format(self.column.quoted_fullname, ", ".join(placeholders))
        return OperatorResponse(sql, params)


class _NullCheck(BaseOperator):
    check = None

    def __init__(self, column: 'md_column.ColumnRef'):
        self.column = column

    def generate_sql(self, emitter: typing.Callable[[str], str], counter: itertools.count):
        return OperatorResponse("{} {}".format(self.column.quoted_fullname, self.check))


class IsNull(_NullCheck):
    check = "IS NULL"


class IsNotNull(_NullCheck):
    check = "IS NOT NULL"


class ComparisonOp(ColumnValueMixin, BaseOperator):
    """
    A binary comparison; subclasses set ``operator``.

    The right-hand side is a parameter, unless it is another :class:`.ColumnRef`, as in join
    conditions.
    """
    operator = None

    def generate_sql(self, emitter: typing.Callable[[str], str], counter: itertools.count):
        if isinstance(self.value, md_column.ColumnRef):
            rhs, params = self.value.quoted_fullname, {}
        else:
            rhs, name = self.get_param(emitter, counter)
            params = {name: self.value}

        sql = "{} {} {}".format(self.column.quoted_fullname, self.operator, rhs)
        return OperatorResponse(sql, params)


class Eq(ComparisonOp):
    operator = "="


class NEq(ComparisonOp):
    operator = "!="


def condition_for(column: 'md_column.ColumnRef', value: typing.Any) -> BaseOperator:
    """
    Gets the condition for a ``column -> value`` filter entry.

    Lists, tuples and sets become membership tests, ``None`` becomes ``IS NULL``, anything else is
    an equality check.
    """
    if isinstance(value, (list, tuple, set, frozenset)):
        return In(column, list(value))
    elif value is None:
        return IsNull(column)

    return Eq(column, value)
