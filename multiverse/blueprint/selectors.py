# multiverse/blueprint/selectors.py
"""
Column selectors used by ``add_variables`` and ``add_reliabilities``.

A selector is one of:
    - a list/tuple of column names (every name must exist),
    - a regex string (matched with ``re.search`` against each column),
    - a callable taking a column name and returning bool.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, List, Sequence, Union

from multiverse.errors import ValidationError

ColumnSelector = Union[str, Sequence[str], Callable[[str], bool]]


def starts_with(prefix: str) -> Callable[[str], bool]:
    return lambda column: column.startswith(prefix)


def ends_with(suffix: str) -> Callable[[str], bool]:
    return lambda column: column.endswith(suffix)


def contains(fragment: str) -> Callable[[str], bool]:
    return lambda column: fragment in column


def matches(pattern: str) -> Callable[[str], bool]:
    compiled = re.compile(pattern)
    return lambda column: compiled.search(column) is not None


def one_of(*names: str) -> List[str]:
    return list(names)


def select_columns(columns: Iterable[str], selector: ColumnSelector) -> List[str]:
    """
    Resolve a selector against dataset columns, preserving dataset order
    for pattern/callable selectors and caller order for explicit lists.

    Raises:
        ValidationError: If an explicitly listed column is missing, or the
            selector has an unsupported type.
    """
    columns = list(columns)

    if isinstance(selector, str):
        try:
            predicate = matches(selector)
        except re.error as exc:
            raise ValidationError(f"Invalid column pattern '{selector}': {exc}") from exc
        return [c for c in columns if predicate(c)]

    if callable(selector):
        return [c for c in columns if selector(c)]

    if isinstance(selector, (list, tuple)):
        missing = [c for c in selector if c not in columns]
        if missing:
            raise ValidationError(
                f"Columns not present in dataset: {missing}", missing_columns=missing
            )
        return list(dict.fromkeys(selector))

    raise ValidationError(f"Unsupported column selector: {selector!r}")
