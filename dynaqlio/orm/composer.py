"""
Hooks that compose the primary query of a read before it runs.
"""
import logging
import re
import typing

from dynaqlio.exc import SchemaError
from dynaqlio.orm import hooks as md_hooks, operators as md_operators, query as md_query, \
    relationship as md_relationship, result as md_result
from dynaqlio.orm.schema import table as md_table
from dynaqlio.utils import singular

logger = logging.getLogger(__name__)

_AS_PATTERN = re.compile(r"^(?P<column>\S+)\s+as\s+(?P<name>\S+)$", re.IGNORECASE)


def where_conditions(query: 'md_query.BaseQuery', table: typing.Optional[str],
                     conditions: typing.Mapping[str, typing.Any]) \
        -> 'typing.List[md_operators.BaseOperator]':
    """
    Turns a mapping of column -> value into query conditions on ``table``.

    Collections become membership tests, None becomes ``IS NULL``, anything else is an equality.
    """
    return [md_operators.condition_for(query.column(column, table), value)
            for column, value in (conditions or {}).items()]


class QueryComposer(md_hooks.Hook):
    """
    Joins and projects every active belongs-to relationship into the primary query.

    Each relationship is joined as ``LEFT JOIN related AS alias ON alias.pk = table.fk``. Every column
    of the model's table is selected once; related columns whose name collides with one of them are
    renamed ``<singular alias>_<column>``, and the related primary key is left out unless requested.
    """

    def __repr__(self):
        return "<QueryComposer>"

    async def __call__(self, model, event: 'md_result.ReadEvent'):
        relations = model.relations.active_belongs_to()
        if not relations:
            return

        query = event.query  # type: md_query.SelectQuery
        self_schema = model.catalog.fields
        table = model.table_name

        query.select(*(query.column(name, table) for name in self_schema.column_names))

        for relation in relations:
            if relation.related_primary_key is None:
                raise SchemaError("Cannot join '{}': table '{}' has no primary key"
                                  .format(relation.alias, relation.related_table))

            on = query.column(relation.related_primary_key, relation.alias) \
                .eq(query.column(relation.foreign_key, table))
            query.join(relation.related_table, relation.alias, on)

            columns = model.relations.selection.get(relation.alias)
            query.select(*self.project(query, relation, columns, self_schema))

            conditions = model.relations.filters.get(relation.alias)
            if conditions:
                query.where(*where_conditions(query, relation.alias, conditions))

            logger.debug("Joined relationship {} onto {}".format(relation.alias, table))

    def project(self, query: 'md_query.SelectQuery', relation: 'md_relationship.BelongsTo',
                columns: typing.Optional[typing.List[str]],
                self_schema: 'md_table.TableSchema') -> typing.List[str]:
        """
        Gets the projection SQL for the related side of a belongs-to relationship.

        :param columns: The explicit columns requested, or None for every non-key column.
        """
        if not columns:
            columns = [name for name, info in relation.related_schema.items()
                       if not info.primary_key]

        projection = []
        for entry in columns:
            match = _AS_PATTERN.match(entry)
            if match is not None:
                ref = query.column(match.group("column"), relation.alias)
                projection.append(ref.aliased(match.group("name")))
                continue

            ref = query.column(entry, relation.alias)
            if entry in self_schema:
                projection.append(ref.aliased("{}_{}".format(singular(relation.alias), entry)))
            else:
                projection.append(ref.aliased())

        return projection


class SoftDeleteScope(md_hooks.Hook):
    """
    Hides soft-deleted rows, by adding ``table.deleted_field IS NULL`` to the primary query.

    It is always the first ``before_find`` hook of a model, and only applies when soft deletes are
    enabled for the current read.
    """

    def __repr__(self):
        return "<SoftDeleteScope>"

    async def __call__(self, model, event: 'md_result.ReadEvent'):
        if not model.soft_deletes_active:
            return

        query = event.query
        query.where(query.column(model.deleted_field, model.table_name).is_null())
