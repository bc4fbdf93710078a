"""
Miscellaneous utilities used throughout the library.
"""
import typing

import inflect

_inflector = inflect.engine()


def singular(word: str) -> str:
    """
    Gets the singular form of a (table) name, e.g. ``authors`` -> ``author``.

    Words that are already singular are returned unchanged.
    """
    if not word:
        return word

    result = _inflector.singular_noun(word)
    # inflect returns False when the word is not a plural noun
    if not result:
        return word

    return result


def split_columns(columns: typing.Union[str, typing.Iterable[str], None]) -> typing.List[str]:
    """
    Normalizes a column selection into a list of stripped column expressions.

    Accepts either an iterable of column names or a comma separated string.
    """
    if columns is None:
        return []

    if isinstance(columns, str):
        columns = columns.split(",")

    return [col.strip() for col in columns if col and col.strip()]


def separate_statements(sql: str) -> typing.Generator[str, None, None]:
    """
    Separates a SQL script into individual statements.
    """
    start = idx = 0
    quoted = False
    sql = " {} ".format(sql)  # padding to avoid IndexErrors
    while idx < len(sql):
        char = sql[idx]
        if not quoted:
            if char == ";":
                stmt = sql[start:idx].strip()
                if stmt:
                    yield stmt
                start = idx + 1
            quoted = char == "'"

        else:
            if char == "'":
                if sql[idx + 1] == "'":
                    idx += 1
                else:
                    quoted = False
        idx += 1

    stmt = sql[start:-1].strip()
    if stmt:
        yield stmt
