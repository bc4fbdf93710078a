"""
Sentinel values, used where ``None`` is a meaningful value.
"""


class _Sentinel(object):
    def __init__(self, name: str):
        self.name = name

    def __repr__(self):
        return "<{}>".format(self.name)

    def __bool__(self):
        return False


#: Marks a column that has no server-side default.
NO_DEFAULT = _Sentinel("NO_DEFAULT")

#: Marks a value that could not be found on a row.
NO_VALUE = _Sentinel("NO_VALUE")
