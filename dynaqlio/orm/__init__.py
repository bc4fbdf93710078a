"""
The core code for the ORM.

.. currentmodule:: dynaqlio.orm

.. autosummary::
    :toctree:

    schema

    model
    factory
    options

    relationship
    composer
    assembler
    hooks
    guard
    result

    query
    session
    operators

"""
