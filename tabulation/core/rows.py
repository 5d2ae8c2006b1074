"""
Plain row records shared by the store adapter and the live-state reducer.
"""
from typing import Any


class Row(dict):
    """
    A store row: a dict with read-only attribute access.

    Lets the pure scoring functions accept ORM instances and store rows
    interchangeably (`row.percentage` / `row["percentage"]`).
    """

    __slots__ = ()

    def __getattr__(self, name: str) -> Any:
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None
