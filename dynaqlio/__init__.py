"""
Main package for dynaqlio - an asyncio relational-mapping core whose models discover their schema
at runtime.

.. currentmodule:: dynaqlio

.. autosummary::
    :toctree:

    db
    orm
    backends

    exc
    meta
    utils
"""

__licence__ = "MIT"
__status__ = "Development"

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version(__name__)
except PackageNotFoundError:
    # package is not installed
    pass

from dynaqlio.backends.base import BaseConnector, BaseDialect, BaseResultSet, BaseTransaction
# import helpers
from dynaqlio.db import DatabaseInterface
from dynaqlio.exc import *
# orm
from dynaqlio.orm.factory import DynamicModelFactory, ModelRegistry
from dynaqlio.orm.model import Model
from dynaqlio.orm.options import ModelOptions
from dynaqlio.orm.result import Record, ResultShape, ReturnType
from dynaqlio.orm.schema.column import ColumnInfo, ColumnRef
from dynaqlio.orm.schema.table import TableSchema
from dynaqlio.orm.session import Session
