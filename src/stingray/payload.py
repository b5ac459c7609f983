"""Merge the caller dataset with environment sources into a flat payload."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

Scalar = str | int | float | bool


def is_scalar(value: Any) -> bool:
    """Return True if *value* may be sent in a beacon.

    Only strings, numbers and booleans are accepted. Empty strings and
    numeric zero are treated as "not available" and rejected; ``False`` is
    a boolean, not a zero, and is kept.
    """
    if isinstance(value, bool):
        return True
    if isinstance(value, str):
        return value != ""
    if isinstance(value, (int, float)):
        return value != 0
    return False


def own_items(source: Any) -> Iterator[tuple[Any, Any]]:
    """Iterate the key/value pairs a source defines itself.

    Mappings yield their items. Other objects yield their instance
    attributes; class attributes and properties are inherited and skipped.
    """
    if isinstance(source, Mapping):
        return iter(list(source.items()))
    try:
        attrs = vars(source)
    except TypeError:
        return iter(())
    return iter(list(attrs.items()))


def assemble(dataset: Mapping[str, Any], sources: Iterable[Any] = ()) -> dict[str, Scalar]:
    """Build the payload for one beacon.

    The dataset is merged first, followed by *sources* in order. A key is
    taken from the first source that provides an acceptable value for it
    and is never overwritten afterwards.
    """
    data: dict[str, Scalar] = {}

    for source in (dataset, *sources):
        if source is None:
            continue
        for key, value in own_items(source):
            if not isinstance(key, str) or key in data:
                continue
            if is_scalar(value):
                data[key] = value

    return data
