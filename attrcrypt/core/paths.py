"""
Dotted-path access into nested records.

Records are trees of mappings and lists. ``"profile.ssn"`` walks mapping
keys, numeric segments index into lists, and ``"phones[0].number"`` is
accepted as a spelling of ``"phones.0.number"``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from typing import Any

_BRACKET = re.compile(r"\[(\d+)\]")

_MISSING = object()


def split_path(path: str) -> list[str]:
    """Split a dotted path into segments."""
    if not path:
        raise ValueError("Attribute path must be non-empty")
    return _BRACKET.sub(r".\1", path).lstrip(".").split(".")


def _child(node: Any, segment: str) -> Any:
    if isinstance(node, Mapping):
        return node.get(segment, _MISSING)
    if isinstance(node, Sequence) and not isinstance(node, (str, bytes)):
        if segment.isdigit() and int(segment) < len(node):
            return node[int(segment)]
    return _MISSING


def get(record: Any, path: str, default: Any = None) -> Any:
    """Value at ``path``, or ``default`` when any segment is absent."""
    node = record
    for segment in split_path(path):
        node = _child(node, segment)
        if node is _MISSING:
            return default
    return node


def set(record: Any, path: str, value: Any) -> None:  # noqa: A001
    """
    Write ``value`` at ``path``.

    Missing intermediate mappings are created. A list index must exist or
    equal the list length, in which case the value is appended.
    """
    segments = split_path(path)
    node = record
    for segment in segments[:-1]:
        child = _child(node, segment)
        if child is _MISSING or child is None:
            child = {}
            _assign(node, segment, child, path)
        node = child
    _assign(node, segments[-1], value, path)


def _assign(node: Any, segment: str, value: Any, path: str) -> None:
    if isinstance(node, MutableMapping):
        node[segment] = value
        return
    if isinstance(node, MutableSequence) and segment.isdigit():
        index = int(segment)
        if index < len(node):
            node[index] = value
            return
        if index == len(node):
            node.append(value)
            return
        raise IndexError(f"Index {index} out of range in path {path!r}")
    raise TypeError(f"Cannot set {segment!r} on {type(node).__name__} in path {path!r}")
