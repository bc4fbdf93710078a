"""
Async-aware metaclasses: ABCs that enforce coroutine overrides, and types whose ``__init__``
is a coroutine.
"""

import inspect
from abc import ABCMeta


# Adapted from https://github.com/dabeaz/curio/blob/master/curio/meta.py
# Copyright (C) David Beazley (Dabeaz LLC)
# This code is licenced under the MIT licence.

class AsyncABCMeta(ABCMeta):
    """
    Metaclass that gives all of the features of an abstract base class, but additionally enforces
    coroutine correctness on subclasses. If any method is defined as a coroutine in a parent, it
    must also be defined as a coroutine in any child.
    """

    def __init__(cls, name, bases, methods):
        coros = {}
        for base in reversed(cls.__mro__):
            coros.update((name, val) for name, val in vars(base).items()
                         if inspect.iscoroutinefunction(val))

        for name, val in vars(cls).items():
            if name in coros and not inspect.iscoroutinefunction(val):
                raise TypeError("Must use async def {}{}".format(name, inspect.signature(val)))
        super().__init__(name, bases, methods)


class AsyncABC(metaclass=AsyncABCMeta):
    pass


class AsyncInstanceType(AsyncABCMeta):
    """
    Metaclass whose instances are created by awaiting the class, so that ``__init__`` may perform
    I/O. Models use this to load their schema while being constructed.

    .. code-block:: python3

        class Books(Model):
            table_name = "books"

        books = await Books(db)
    """

    @staticmethod
    def __new__(meta, clsname, bases, attributes):
        if "__init__" in attributes and not inspect.iscoroutinefunction(attributes["__init__"]):
            raise TypeError("__init__ must be a coroutine")
        return super().__new__(meta, clsname, bases, attributes)

    async def __call__(cls, *args, **kwargs):
        self = cls.__new__(cls)
        await self.__init__(*args, **kwargs)
        return self


class AsyncObject(metaclass=AsyncInstanceType):
    pass

# END ADAPTED CODE
