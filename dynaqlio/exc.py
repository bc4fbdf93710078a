"""
Exceptions for dynaqlio.
"""


class DatabaseException(Exception):
    """
    The base class for ALL exceptions.

    Catch this if you wish to catch any custom exception raised inside the lib.
    """


class SchemaError(DatabaseException):
    """
    Raised when there is an error in the database schema.
    """


class TableNotFoundError(SchemaError):
    """
    Raised when a table does not exist in the database schema.

    This is fatal to model construction; it is never retried.
    """

    def __init__(self, table_name: str):
        super().__init__("Table '{}' does not exist".format(table_name))

        #: The name of the missing table.
        self.table_name = table_name


class SchemaIntrospectionError(SchemaError):
    """
    Raised when the column metadata of a table could not be fetched.

    The original driver error is available as ``__cause__``.
    """


class InvalidRelationConfigurationError(DatabaseException):
    """
    Raised when a relationship is used or declared incorrectly, e.g. activating an alias that was
    never declared with :meth:`.Model.belongs_to` or :meth:`.Model.has_many`.
    """


class ConfigurationError(DatabaseException):
    """
    Raised when a model is given invalid options.
    """


class IntegrityError(DatabaseException):
    """
    Raised when a column's integrity is not preserved (e.g. null or unique violations).
    """


class OperationalError(DatabaseException):
    """
    Raised when an operational error has occurred.
    """


class UnsupportedOperationException(DatabaseException):
    """
    Raised when a dialect does not support the requested operation.
    """
