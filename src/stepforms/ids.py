"""Id sources and label slugs.

Node ids must be unique within a tree. Rather than relying on wall-clock
timestamps, callers inject an :class:`IdSource` so that building trees is
reproducible under test and collision-free in production.
"""

from __future__ import annotations

import itertools
import re
import uuid
from typing import Protocol, runtime_checkable

_WHITESPACE_RE = re.compile(r"\s+")


@runtime_checkable
class IdSource(Protocol):
    """Callable returning a fresh string id on every call."""

    def __call__(self) -> str: ...


class CounterIdSource:
    """Deterministic id source producing ``<prefix>-1``, ``<prefix>-2``, ...

    Example:
        ```python
        ids = CounterIdSource("item")
        ids()  # 'item-1'
        ids()  # 'item-2'
        ```
    """

    def __init__(self, prefix: str = "node", start: int = 1) -> None:
        self._prefix = prefix
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{self._prefix}-{next(self._counter)}"

    def __repr__(self) -> str:
        return f"CounterIdSource({self._prefix!r})"


class UuidIdSource:
    """Id source backed by random UUIDs, optionally prefixed."""

    def __init__(self, prefix: str | None = None) -> None:
        self._prefix = prefix

    def __call__(self) -> str:
        value = uuid.uuid4().hex
        return f"{self._prefix}-{value}" if self._prefix else value


def slugify(label: str) -> str:
    """Return the option value for a label: lower-cased, whitespace as ``_``.

    Example:
        ```python
        slugify("Town  House")  # 'town_house'
        ```
    """
    return _WHITESPACE_RE.sub("_", label.lower())
