"""Find the first human-readable message inside a nested error structure."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_MESSAGE_KEYS = ("message", "msg")


def _own_message(node: Any) -> str | None:
    if isinstance(node, Mapping):
        for key in _MESSAGE_KEYS:
            value = node.get(key)
            if isinstance(value, str) and value:
                return value
        return None
    for key in _MESSAGE_KEYS:
        value = getattr(node, key, None)
        if isinstance(value, str) and value:
            return value
    return None


def _children(node: Any) -> list[Any]:
    if isinstance(node, Mapping):
        return list(node.values())
    if isinstance(node, (list, tuple)):
        return list(node)
    if isinstance(node, BaseException):
        return [a for a in node.args if not isinstance(a, str)]
    return []


def first_error_message(tree: Any, max_depth: int = 16, default: str = "invalid input") -> str:
    """Depth-first search for the first node carrying a ``message``/``msg``.

    Children are visited in order (dict values, list items, exception args)
    and the search never descends more than ``max_depth`` levels. Each
    container is expanded at most once, so shared or cyclic references cost
    no more than the distinct nodes they reach.
    """
    seen: set[int] = set()
    stack: list[tuple[Any, int]] = [(tree, 0)]
    while stack:
        node, depth = stack.pop()
        if node is None:
            continue
        found = _own_message(node)
        if found is not None:
            return found
        if depth >= max_depth or id(node) in seen:
            continue
        children = _children(node)
        if children:
            seen.add(id(node))
            stack.extend((child, depth + 1) for child in reversed(children))
    return default
