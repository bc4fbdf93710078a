"""
Per-model configuration.
"""
import typing

from dynaqlio.exc import ConfigurationError
from dynaqlio.orm import result as md_result

#: The accepted values of :attr:`.ModelOptions.date_format`.
DATE_FORMATS = ("datetime", "date", "int")


class ModelOptions(object):
    """
    The enumerated options of a :class:`.Model`.

    .. code-block:: python3

        options = ModelOptions(use_soft_deletes=True, protected_fields=["password"])
        users = await db.get_factory().table("users", options=options)

    Every value is validated when set; an invalid value raises :class:`.ConfigurationError`.
    """

    __slots__ = ("return_type", "use_soft_deletes", "deleted_field", "use_timestamps",
                 "created_field", "updated_field", "date_format", "protected_fields",
                 "allowed_fields")

    def __init__(self, *,
                 return_type: typing.Union[str, 'md_result.ReturnType'] = "dict",
                 use_soft_deletes: bool = False,
                 deleted_field: str = "deleted_at",
                 use_timestamps: bool = False,
                 created_field: str = "created_at",
                 updated_field: str = "updated_at",
                 date_format: str = "datetime",
                 protected_fields: typing.Iterable[str] = (),
                 allowed_fields: typing.Iterable[str] = ()):
        """
        :param return_type: ``dict`` or ``object``; the default shape of the rows returned.
        :param use_soft_deletes: If True, deleting marks rows instead of removing them.
        :param deleted_field: The column marking a row as deleted.
        :param use_timestamps: If True, inserts and updates stamp the timestamp columns.
        :param created_field: The column stamped on insert.
        :param updated_field: The column stamped on insert and update.
        :param date_format: How timestamps are stored: ``datetime``, ``date`` or ``int``.
        :param protected_fields: Columns that are never written.
        :param allowed_fields: Columns that may be written. Empty means every column.
        """
        try:
            self.return_type = md_result.ReturnType(return_type)
        except ValueError:
            raise ConfigurationError("Unknown return type {!r}".format(return_type)) from None

        if date_format not in DATE_FORMATS:
            raise ConfigurationError("Unknown date format {!r}, expected one of {}"
                                     .format(date_format, ", ".join(DATE_FORMATS)))

        for name, value in (("deleted_field", deleted_field),
                            ("created_field", created_field),
                            ("updated_field", updated_field)):
            if not isinstance(value, str) or not value:
                raise ConfigurationError("{} must be a non-empty column name".format(name))

        self.use_soft_deletes = bool(use_soft_deletes)
        self.deleted_field = deleted_field
        self.use_timestamps = bool(use_timestamps)
        self.created_field = created_field
        self.updated_field = updated_field
        self.date_format = date_format
        self.protected_fields = _field_list("protected_fields", protected_fields)
        self.allowed_fields = _field_list("allowed_fields", allowed_fields)

    def __repr__(self):
        return "<ModelOptions {}>".format(
            " ".join("{}={!r}".format(name, getattr(self, name)) for name in self.__slots__)
        )

    @classmethod
    def from_mapping(cls, mapping: typing.Mapping[str, typing.Any]) -> 'ModelOptions':
        """
        Creates options from a mapping of option name -> value.

        Unknown option names raise :class:`.ConfigurationError`.
        """
        unknown = set(mapping) - set(cls.__slots__)
        if unknown:
            raise ConfigurationError("Unknown model options: {}".format(", ".join(sorted(unknown))))

        return cls(**mapping)

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """
        :return: A dict of every option.
        """
        return {name: getattr(self, name) for name in self.__slots__}

    def copy(self, **overrides) -> 'ModelOptions':
        """
        Copies these options, replacing the options passed as keyword arguments.
        """
        values = self.to_dict()
        values.update(overrides)
        return self.from_mapping(values)


def _field_list(name: str, fields) -> typing.List[str]:
    if isinstance(fields, str):
        raise ConfigurationError("{} must be a list of column names, not a string".format(name))

    return list(fields or ())
