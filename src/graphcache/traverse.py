"""Depth-first walk over nested mappings and sequences.

Shared by normalization (payload -> entities) and denormalization
(entities -> plain projection).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Hashable

logger = logging.getLogger("graphcache.traverse")

Visitor = Callable[[Any, Any, Any], bool]


def is_container(value: Any) -> bool:
    if isinstance(value, (str, bytes, bytearray)):
        return False
    return isinstance(value, (Mapping, Sequence))


def _keys(container: Any) -> list:
    if isinstance(container, Mapping):
        return list(container.keys())
    return list(range(len(container)))


def traverse(
    value: Any,
    visitor: Visitor,
    *,
    identity: Callable[[Any], Hashable] = id,
) -> None:
    """Call ``visitor(key, child, parent)`` for every child, depth first.

    A truthy return descends into that same child object. Keys are visited
    in the container's insertion order. Children already on the ancestor
    chain (compared by ``identity``) are visited but never descended into
    again.
    """
    if not is_container(value):
        return
    _walk(value, visitor, identity, {identity(value)})


def _walk(container: Any, visitor: Visitor, identity, ancestors: set) -> None:
    for key in _keys(container):
        child = container[key]
        if not visitor(key, child, container):
            continue
        if not is_container(child):
            continue

        marker = identity(child)
        if marker in ancestors:
            logger.debug("Cycle at %r; not descending", key)
            continue

        ancestors.add(marker)
        try:
            _walk(child, visitor, identity, ancestors)
        finally:
            ancestors.discard(marker)
