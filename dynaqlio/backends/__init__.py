"""
SQL driver backends for dynaqlio.

.. currentmodule:: dynaqlio.backends

.. autosummary::
    :toctree:

    sqlite3
    postgresql
    mysql

"""
from pkgutil import extend_path

__path__ = extend_path(__path__, __name__)
