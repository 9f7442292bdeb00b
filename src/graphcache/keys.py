"""Cache keys — stable string identities for entity-shaped objects.

An object is identifiable when it carries a ``__typename`` and an id-like
field. Everything else has no identity and is merged structurally, by
position or by key, inside whatever owns it.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Callable

from graphcache.types import UNDEFINED, CacheKey

logger = logging.getLogger("graphcache.keys")

ROOT_TYPENAMES = frozenset({"Query", "Mutation", "Subscription"})

KeyGetter = Callable[[Mapping[str, Any]], Any]


def _typename(obj: Mapping[str, Any]) -> str | None:
    typename = obj.get("__typename")
    if typename is None or typename is UNDEFINED or typename == "":
        return None
    return typename


def default_cache_key(obj: Any) -> CacheKey | None:
    """``Typename:id`` for entities, the bare typename for operation roots."""
    if not isinstance(obj, Mapping):
        return None
    typename = _typename(obj)
    if typename is None:
        return None
    if typename in ROOT_TYPENAMES:
        return typename
    entity_id = obj.get("id")
    if entity_id is None or entity_id is UNDEFINED:
        return None
    return f"{typename}:{entity_id}"


class KeyDeriver:
    """Pluggable cache key derivation.

    ``keys`` maps a typename to a generator returning the id part of the key
    (composite or aliased ids); ``get_cache_key`` replaces the default scheme
    for every other type.
    """

    def __init__(
        self,
        get_cache_key: Callable[[Mapping[str, Any]], CacheKey | None] | None = None,
        keys: Mapping[str, KeyGetter] | None = None,
    ) -> None:
        self._get_cache_key = get_cache_key
        self._keys = dict(keys or {})

    def __call__(self, obj: Any) -> CacheKey | None:
        if not isinstance(obj, Mapping):
            return None

        typename = _typename(obj)
        if typename is not None and typename in self._keys:
            key = self._keys[typename](obj)
            if key is None or key is UNDEFINED:
                return None
            return f"{typename}:{key}"

        if self._get_cache_key is not None:
            key = self._get_cache_key(obj)
        else:
            key = default_cache_key(obj)

        if key is None and typename is not None:
            logger.debug("No key derived for %s; merging structurally", typename)
        return key or None


def key_for_query(query_id: str, variables: Mapping[str, Any] | None = None) -> CacheKey:
    """Key under which an operation's root object is stored."""
    if variables:
        encoded = json.dumps(variables, sort_keys=True, separators=(",", ":"), default=str)
        return f"query:{query_id}({encoded})"
    return f"query:{query_id}"
