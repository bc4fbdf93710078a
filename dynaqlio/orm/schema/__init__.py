"""
Schema discovery: column metadata, table schemas and the per-model schema catalog.

.. currentmodule:: dynaqlio.orm.schema

.. autosummary::
    :toctree:

    column
    table
    catalog
"""
