"""
The hook that attaches has-many rows to the result of a read.
"""
import collections
import logging
import typing

from dynaqlio.orm import composer as md_composer, hooks as md_hooks, \
    relationship as md_relationship, result as md_result
from dynaqlio.sentinels import NO_VALUE

logger = logging.getLogger(__name__)


def group_key(value: typing.Any) -> typing.Any:
    """
    Normalizes a linking value, so that an integer key matches the same number stored as text.
    """
    if isinstance(value, bool):
        return value

    if isinstance(value, int):
        return str(value)

    if isinstance(value, str):
        stripped = value.strip()
        if stripped.lstrip("-").isdigit():
            return str(int(stripped))

    return value


class ResultAssembler(md_hooks.Hook):
    """
    Loads the rows of every active has-many relationship and attaches them to the parent rows.

    For each relationship one secondary query fetches the related rows whose foreign key is one of
    the parents' linking values; the rows are grouped by foreign key and each parent gets its group
    (or an empty list) under the relationship alias.

    The relationship selection of the model is reset afterwards.
    """

    def __repr__(self):
        return "<ResultAssembler>"

    async def __call__(self, model, event: 'md_result.ReadEvent'):
        try:
            rows = event.rows()
            if not rows:
                return

            for relation in model.relations.active_has_many():
                await self.attach(model, relation, rows)
        finally:
            model.reset_relationship()

    @staticmethod
    def linking_column(model, relation: 'md_relationship.HasMany') -> str:
        """
        Gets the parent column holding the values the related foreign key refers to.
        """
        return model.primary_key or relation.related_primary_key

    @staticmethod
    def linking_values(rows: list, column: str) -> list:
        """
        Gets the distinct, non-empty values of ``column`` in ``rows``, in order of appearance.
        """
        values = collections.OrderedDict()
        for row in rows:
            value = md_result.get_value(row, column)
            if value is NO_VALUE or value is None or value == "":
                continue
            values[value] = None

        return list(values)

    async def fetch_related(self, model, relation: 'md_relationship.HasMany',
                            values: list) -> list:
        """
        Runs the secondary query of a has-many relationship.
        """
        async with model.db.get_session() as sess:
            query = sess.select.from_(relation.related_table)
            query.where(query.column(relation.foreign_key, relation.related_table).in_(values))

            conditions = model.relations.filters.get(relation.alias)
            if conditions:
                query.where(*md_composer.where_conditions(query, relation.related_table,
                                                          conditions))

            for column, direction in relation.order_by:
                query.order_by(query.column(column, relation.related_table),
                               sort_order=direction)

            return await query.all()

    @staticmethod
    def group(rows: list, key: str) -> typing.Dict[typing.Any, list]:
        """
        Groups rows by the :func:`.group_key` of ``key``, keeping their order within each group.
        """
        groups = collections.OrderedDict()
        for row in rows:
            groups.setdefault(group_key(md_result.get_value(row, key)), []).append(row)

        return groups

    async def attach(self, model, relation: 'md_relationship.HasMany', rows: list):
        """
        Attaches the related rows of one relationship to every parent row.
        """
        column = self.linking_column(model, relation)
        values = self.linking_values(rows, column)

        groups = {}
        if values:
            related = await self.fetch_related(model, relation, values)
            related = [md_result.convert_row(r, model.return_type_active) for r in related]
            groups = self.group(related, relation.foreign_key)

        logger.debug("Attaching {} groups of {} to {} rows of {}".format(
            len(groups), relation.alias, len(rows), model.table_name))

        for row in rows:
            value = md_result.get_value(row, column)
            md_result.set_value(row, relation.alias, groups.get(group_key(value), []))
