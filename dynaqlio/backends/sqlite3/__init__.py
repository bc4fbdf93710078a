"""
SQLite3 backends.

.. autosummary::
    :toctree:

    aiosqlite
"""
from pkgutil import extend_path

from dynaqlio.backends.base import BaseDialect
from dynaqlio.orm.schema import column as md_column
from dynaqlio.sentinels import NO_DEFAULT

__path__ = extend_path(__path__, __name__)

DEFAULT_CONNECTOR = "aiosqlite"


class Sqlite3Dialect(BaseDialect):
    """
    The dialect for SQLite3.
    """

    @property
    def has_checkpoints(self):
        return True

    @property
    def lastval_method(self):
        return "last_insert_rowid()"

    @property
    def has_returns(self):
        return False

    @property
    def unbounded_limit(self):
        return "-1"

    def get_column_sql(self, table_name, *, emitter):
        # PRAGMAs can't take parameters
        return "PRAGMA table_info({})".format(self.quote_identifier(table_name))

    def get_table_exists_sql(self, *, emitter):
        return ("SELECT name FROM sqlite_master WHERE type IN ('table', 'view') AND name={}"
                .format(emitter("table_name")))

    def transform_rows_to_columns(self, *rows, table_name):
        for row in rows:
            default = row["dflt_value"]
            yield md_column.ColumnInfo(
                row["name"],
                row["type"],
                primary_key=bool(row["pk"]),
                nullable=not row["notnull"],
                default=NO_DEFAULT if default is None else default,
                table_name=table_name,
            )
