"""
Relationship declarations between tables, and the per-read relationship selection.
"""
import collections
import collections.abc
import logging
import typing

from dynaqlio.exc import InvalidRelationConfigurationError
from dynaqlio.orm.schema import catalog as md_catalog, table as md_table
from dynaqlio.utils import singular, split_columns

logger = logging.getLogger(__name__)

#: The accepted sort directions of a has-many ``order_by``.
SORT_DIRECTIONS = ("asc", "desc")


class BelongsTo(object):
    """
    A one-to-one or many-to-one relationship: the foreign key lives on this table and points at the
    primary key of the related table.

    Active belongs-to relationships are loaded with a join.
    """

    def __init__(self, related_table: str, related_primary_key: typing.Optional[str],
                 foreign_key: str, alias: str,
                 related_schema: 'md_table.TableSchema' = None):
        #: The name of the related table.
        self.related_table = related_table

        #: The primary key of the related table, as discovered when declared.
        self.related_primary_key = related_primary_key

        #: The column of this table that refers to the related table.
        self.foreign_key = foreign_key

        #: The name the related data is known by.
        self.alias = alias

        #: The schema of the related table, as fetched when declared.
        self.related_schema = related_schema

    def __repr__(self):
        return "<BelongsTo {} -> {}.{} AS {}>".format(self.foreign_key, self.related_table,
                                                      self.related_primary_key, self.alias)


class HasMany(object):
    """
    A one-to-many relationship: the foreign key lives on the related table and points at this
    table's primary key.

    Active has-many relationships are loaded with a secondary query after the read.
    """

    def __init__(self, related_table: str, related_primary_key: typing.Optional[str],
                 foreign_key: str, alias: str,
                 order_by: typing.Sequence[typing.Tuple[str, str]] = ()):
        #: The name of the related table.
        self.related_table = related_table

        #: The primary key of the related table, as discovered when declared.
        self.related_primary_key = related_primary_key

        #: The column of the related table that refers to this table.
        self.foreign_key = foreign_key

        #: The name the related rows are attached under.
        self.alias = alias

        #: The (column, direction) pairs the related rows are sorted by.
        self.order_by = list(order_by)

    def __repr__(self):
        return "<HasMany {}.{} AS {}>".format(self.related_table, self.foreign_key, self.alias)


def normalize_order_by(order_by) -> typing.List[typing.Tuple[str, str]]:
    """
    Normalizes an ordering into a list of ``(column, direction)`` pairs.

    Accepts None, a mapping of column -> direction, or an iterable of pairs.
    """
    if not order_by:
        return []

    if isinstance(order_by, collections.abc.Mapping):
        items = order_by.items()
    else:
        items = order_by

    pairs = []
    for column, direction in items:
        direction = (direction or "asc").strip().lower()
        if direction not in SORT_DIRECTIONS:
            raise InvalidRelationConfigurationError(
                "Unknown sort direction {!r} for column {}".format(direction, column)
            )
        pairs.append((column, direction))

    return pairs


class RelationshipRegistry(object):
    """
    Holds the relationships declared on a model, and which of them are active for the next read.

    Belongs-to and has-many aliases live in separate namespaces; re-declaring an alias of the same
    kind replaces it.
    """

    def __init__(self, catalog: 'md_catalog.SchemaCatalog'):
        """
        :param catalog: The :class:`.SchemaCatalog` of the table owning the relationships.
        """
        self.catalog = catalog

        #: alias -> :class:`.BelongsTo`
        self.belongs_to = collections.OrderedDict()

        #: alias -> :class:`.HasMany`
        self.has_many = collections.OrderedDict()

        #: alias -> explicit column list (or None) of the relationships active for the next read.
        self.selection = collections.OrderedDict()

        #: alias -> conditions on the related table.
        self.filters = collections.OrderedDict()

    def __repr__(self):
        return "<RelationshipRegistry table={!r} belongs_to={} has_many={}>".format(
            self.table_name, list(self.belongs_to), list(self.has_many)
        )

    @property
    def table_name(self) -> str:
        return self.catalog.table_name

    def is_declared(self, alias: str) -> bool:
        return alias in self.belongs_to or alias in self.has_many

    def _ensure_declared(self, alias: str):
        if not self.is_declared(alias):
            raise InvalidRelationConfigurationError(
                "No relationship with alias '{}' is declared on table '{}'"
                .format(alias, self.table_name)
            )

    async def declare_belongs_to(self, related_table: str, foreign_key: str = None,
                                 alias: str = None) -> BelongsTo:
        """
        Declares a belongs-to relationship.

        The related table's schema is fetched immediately to discover its primary key.

        :param related_table: The related table.
        :param foreign_key: The column of this table pointing at the related table. Defaults to
            ``<singular related table>_id``.
        :param alias: The relationship name. Defaults to the related table name.
        """
        foreign_key = foreign_key or "{}_id".format(singular(related_table))
        alias = alias or related_table

        related_schema = await self.catalog.fetch(related_table)

        if foreign_key not in self.catalog.fields:
            raise InvalidRelationConfigurationError(
                "Foreign key '{}' does not exist on table '{}'".format(foreign_key, self.table_name)
            )

        relation = BelongsTo(related_table, related_schema.primary_key, foreign_key, alias,
                             related_schema=related_schema)
        self.belongs_to[alias] = relation
        logger.debug("Declared {!r} on {}".format(relation, self.table_name))
        return relation

    async def declare_has_many(self, related_table: str, foreign_key: str = None,
                               alias: str = None, order_by=None) -> HasMany:
        """
        Declares a has-many relationship.

        :param related_table: The related (child) table.
        :param foreign_key: The column of the related table pointing at this table. Defaults to
            ``<singular table name>_id``.
        :param alias: The relationship name. Defaults to the related table name.
        :param order_by: How the related rows are sorted; see :func:`.normalize_order_by`.
        """
        foreign_key = foreign_key or "{}_id".format(singular(self.table_name))
        alias = alias or related_table
        order_by = normalize_order_by(order_by)

        related_schema = await self.catalog.fetch(related_table)

        if foreign_key not in related_schema:
            raise InvalidRelationConfigurationError(
                "Foreign key '{}' does not exist on table '{}'".format(foreign_key, related_table)
            )

        relation = HasMany(related_table, related_schema.primary_key, foreign_key, alias,
                           order_by=order_by)
        self.has_many[alias] = relation
        logger.debug("Declared {!r} on {}".format(relation, self.table_name))
        return relation

    def where_relation(self, alias: str, conditions: typing.Mapping[str, typing.Any]):
        """
        Sets the conditions on the related table of a relationship, for the next read.

        :param alias: The alias of a declared relationship.
        :param conditions: column -> value (equality) or column -> list of values (membership).
        """
        if not isinstance(conditions, collections.abc.Mapping):
            raise TypeError("Relationship conditions must be a mapping, not {}"
                            .format(type(conditions).__name__))

        self._ensure_declared(alias)
        self.filters[alias] = dict(conditions)

    def activate(self, alias: str, columns: typing.Union[str, typing.Iterable[str]] = None):
        """
        Activates a relationship for the next read.

        :param alias: The alias of a declared relationship.
        :param columns: The related columns to select (belongs-to only), as a list or a comma
            separated string. Defaults to every column.
        """
        self._ensure_declared(alias)
        self.selection[alias] = split_columns(columns) or None

    def is_active(self, alias: str) -> bool:
        return alias in self.selection

    def active_belongs_to(self) -> typing.List[BelongsTo]:
        return [rel for alias, rel in self.belongs_to.items() if self.is_active(alias)]

    def active_has_many(self) -> typing.List[HasMany]:
        return [rel for alias, rel in self.has_many.items() if self.is_active(alias)]

    def clear(self):
        """
        Clears the selection and the conditions. Declarations are kept.
        """
        self.selection.clear()
        self.filters.clear()
