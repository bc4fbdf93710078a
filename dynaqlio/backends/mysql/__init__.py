"""
MySQL backends.

.. currentmodule:: dynaqlio.backends.mysql

.. autosummary::
    :toctree:

    aiomysql
"""

from pkgutil import extend_path

from dynaqlio.backends.base import BaseDialect
from dynaqlio.orm.schema import column as md_column
from dynaqlio.sentinels import NO_DEFAULT

__path__ = extend_path(__path__, __name__)

DEFAULT_CONNECTOR = "aiomysql"


class MysqlDialect(BaseDialect):
    """
    The dialect for MySQL.
    """

    @property
    def has_checkpoints(self):
        return True

    @property
    def lastval_method(self):
        return "LAST_INSERT_ID()"

    @property
    def has_returns(self):
        return False

    @property
    def unbounded_limit(self):
        # the largest value MySQL accepts, as its docs recommend
        return "18446744073709551615"

    def quote_identifier(self, identifier: str) -> str:
        return "`{}`".format(identifier.replace("`", "``"))

    def get_column_sql(self, table_name, *, emitter):
        return ("SELECT * FROM information_schema.columns WHERE "
                "table_schema IN (SELECT database() FROM dual) "
                "AND table_name={} ORDER BY ordinal_position".format(emitter("table_name")))

    def get_table_exists_sql(self, *, emitter):
        return ("SELECT table_name FROM information_schema.tables WHERE "
                "table_schema IN (SELECT database() FROM dual) "
                "AND table_name={}".format(emitter("table_name")))

    def transform_rows_to_columns(self, *rows, table_name):
        for row in rows:
            default = row["COLUMN_DEFAULT"]
            yield md_column.ColumnInfo(
                row["COLUMN_NAME"],
                row["DATA_TYPE"],
                primary_key=row["COLUMN_KEY"] == "PRI",
                nullable=row["IS_NULLABLE"] == "YES",
                default=NO_DEFAULT if default is None else default,
                table_name=table_name,
            )
