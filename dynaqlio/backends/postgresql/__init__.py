"""
PostgreSQL backends.

.. currentmodule:: dynaqlio.backends.postgresql

.. autosummary::
    :toctree:

    asyncpg
"""

# used for namespace packages
from pkgutil import extend_path

from dynaqlio.backends.base import BaseDialect
from dynaqlio.orm.schema import column as md_column
from dynaqlio.sentinels import NO_DEFAULT

__path__ = extend_path(__path__, __name__)


DEFAULT_CONNECTOR = "asyncpg"


class PostgresqlDialect(BaseDialect):
    """
    The dialect for Postgres.
    """

    @property
    def has_checkpoints(self):
        return True

    @property
    def lastval_method(self):
        return "LASTVAL()"

    @property
    def has_returns(self):
        return True

    def get_column_sql(self, table_name, *, emitter):
        return '''
SELECT columns.*, (
  SELECT COUNT(*)
  FROM information_schema.table_constraints
    AS constraints
  JOIN information_schema.constraint_column_usage
    AS usage
    ON constraints.constraint_name=usage.constraint_name
  WHERE constraints.constraint_type='PRIMARY KEY'
    AND constraints.table_name=columns.table_name
    AND constraints.table_schema=columns.table_schema
    AND usage.column_name=columns.column_name) AS primary_key
FROM information_schema.columns
  AS columns
WHERE columns.table_name={}
  AND columns.table_schema=current_schema()
ORDER BY columns.ordinal_position'''.format(emitter("table_name"))

    def get_table_exists_sql(self, *, emitter):
        return ("SELECT table_name FROM information_schema.tables "
                "WHERE table_schema=current_schema() AND table_name={}"
                .format(emitter("table_name")))

    def transform_rows_to_columns(self, *rows, table_name):
        for row in rows:
            default = row["column_default"]
            yield md_column.ColumnInfo(
                row["column_name"],
                row["data_type"],
                primary_key=bool(row["primary_key"]),
                nullable=row["is_nullable"] == "YES",
                default=NO_DEFAULT if default is None else default,
                table_name=table_name,
            )
