"""
The write guard, which filters the fields of every insert and update payload.
"""
import collections
import logging
import typing

from dynaqlio.orm.schema import catalog as md_catalog

logger = logging.getLogger(__name__)


class FieldGuard(object):
    """
    Filters write payloads against a table's schema and its field policy.

    .. code-block:: python3

        guard = FieldGuard(catalog, protected_fields=["password"])
        guard.protect({"name": "bob", "password": "x", "nope": 1})  # {"name": "bob"}

    Rejected fields are dropped silently.
    """

    def __init__(self, catalog: 'md_catalog.SchemaCatalog',
                 protected_fields: typing.Iterable[str] = (),
                 allowed_fields: typing.Iterable[str] = ()):
        """
        :param catalog: The :class:`.SchemaCatalog` of the table being written.
        :param protected_fields: Fields that are never written.
        :param allowed_fields: Fields that may be written. Empty means every column of the table.
        """
        self.catalog = catalog
        self.protected_fields = list(protected_fields)
        self._allowed_fields = list(allowed_fields)

    @property
    def allowed_fields(self) -> typing.List[str]:
        """
        The fields that may be written; every column of the schema when none were set.
        """
        if not self._allowed_fields:
            return list(self.catalog.fields.column_names)

        return list(self._allowed_fields)

    def set_allowed_fields(self, fields: typing.Iterable[str]) -> 'FieldGuard':
        self._allowed_fields = list(fields)
        return self

    def set_protected_fields(self, fields: typing.Iterable[str]) -> 'FieldGuard':
        self.protected_fields = list(fields)
        return self

    def validate_fields(self, data: typing.Mapping[str, typing.Any]) -> 'collections.OrderedDict':
        """
        Drops every key that is not a column of the schema.
        """
        schema = self.catalog.fields
        return collections.OrderedDict((k, v) for k, v in data.items() if k in schema)

    def protect(self, data: typing.Mapping[str, typing.Any]) -> 'collections.OrderedDict':
        """
        Filters a write payload.

        In order: keys that aren't columns of the schema are dropped, then protected keys, then
        keys missing from the allowed fields.

        :param data: The payload to filter.
        :return: A new, filtered mapping.
        """
        validated = self.validate_fields(data)

        protected = set(self.protected_fields)
        validated = collections.OrderedDict((k, v) for k, v in validated.items()
                                            if k not in protected)

        allowed = set(self.allowed_fields)
        result = collections.OrderedDict((k, v) for k, v in validated.items() if k in allowed)

        dropped = [k for k in data if k not in result]
        if dropped:
            logger.debug("Dropped fields {} from a write to {}".format(
                dropped, self.catalog.table_name))

        return result
