"""Client façade — write responses in, get live views out.

    client = CacheClient()
    person = client.write({"__typename": "Person", "id": "1", "name": "Chris"})
    person["name"]  # "Chris"

    client.write({"__typename": "Person", "id": "1", "name": "Hitch"})
    person["name"]  # "Hitch": same view, read through to the cell

There is no default client; construct one and pass it to whoever needs it.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping
from typing import Any, Callable

from graphcache.batch import batch
from graphcache.config import CacheConfig
from graphcache.errors import GraphCacheError, UnresolvableReferenceWarning
from graphcache.keys import ROOT_TYPENAMES, KeyDeriver, key_for_query
from graphcache.merge import MergeEngine
from graphcache.signal import ReactiveCell
from graphcache.store import EntityStore
from graphcache.traverse import traverse
from graphcache.types import NOT_LOADED, CacheKey, EntityReference
from graphcache.view import ReadView

logger = logging.getLogger("graphcache.client")


class CacheClient:
    """Normalized entity cache with reactive read views."""

    def __init__(self, config: CacheConfig | None = None, **options: Any) -> None:
        if config is not None and options:
            raise TypeError("Pass either a CacheConfig or keyword options, not both")
        self.config = config or CacheConfig(**options)
        self.store = EntityStore(adapter=self.config.adapter)
        self.derive_key = KeyDeriver(
            get_cache_key=self.config.get_cache_key,
            keys=self.config.keys,
        )
        self.merger = MergeEngine(
            self.store,
            self.derive_key,
            equals=self.config.equals,
            field_equals=self.config.field_equals,
            merge_resolvers=self.config.merge_resolvers,
        )

    # --- Write path ---

    def write(self, data: Any, cache_key: CacheKey | None = None) -> Any:
        """Normalize data into the store and return a live view of it.

        Identifiable roots come back as entity views; anonymous roots as a
        structural view whose nested entities read through to the store.
        Scalars come back unchanged.
        """
        with batch():
            result = self.merger.merge(cache_key, data)
        return self._view(result)

    def write_query(
        self,
        query_id: str,
        data: Mapping[str, Any],
        variables: Mapping[str, Any] | None = None,
    ) -> ReadView:
        """Store an operation's result under its query key.

        data is the operation's root object. A ``__typename``, when present,
        must name an operation root type.
        """
        if not isinstance(data, Mapping):
            raise GraphCacheError(
                f"write_query({query_id!r}) expects a mapping as the operation's "
                f"data, got {type(data).__name__}"
            )
        typename = data.get("__typename")
        if typename is not None and typename not in ROOT_TYPENAMES:
            raise GraphCacheError(
                f"write_query({query_id!r}) expects an operation root, got {typename!r}; "
                "use write() for entities"
            )
        key = key_for_query(query_id, variables)
        logger.debug("Writing query %s", key)
        return self.write(data, cache_key=key)

    # --- Read path ---

    def read(self, cache_key: CacheKey) -> ReadView | Any:
        """Live view of an entity, or NOT_LOADED if it was never merged."""
        if cache_key not in self.store:
            logger.debug("Read of unknown entity %s", cache_key)
            if self.config.warn_unresolved:
                warnings.warn(UnresolvableReferenceWarning(cache_key), stacklevel=2)
            return NOT_LOADED
        return self._view(EntityReference(cache_key))

    def read_query(
        self,
        query_id: str,
        variables: Mapping[str, Any] | None = None,
    ) -> ReadView | None:
        """View of a previously written operation, or None on a cache miss."""
        key = key_for_query(query_id, variables)
        if key not in self.store:
            return None
        return self._view(EntityReference(key))

    def get_field(self, cache_key: CacheKey, field: str) -> ReactiveCell:
        """The cell backing one field. Its identity is stable across merges."""
        return self.store.get_field(cache_key, field)

    def subscribe(
        self, cache_key: CacheKey, listener: Callable[[Any], None]
    ) -> Callable[[], None]:
        """Call listener with the entity's new projection whenever it changes."""
        return self._view(EntityReference(cache_key)).subscribe(listener)

    def parse_entities(self, data: Any) -> list[tuple[CacheKey, Mapping[str, Any]]]:
        """Identifiable objects in a raw payload, children before their parents."""
        found: list[tuple[CacheKey, Mapping[str, Any]]] = []
        root_key = self.derive_key(data)
        if root_key is not None:
            found.append((root_key, data))

        def visit(key, value, parent) -> bool:
            if isinstance(value, Mapping):
                entity_key = self.derive_key(value)
                if entity_key is not None:
                    found.append((entity_key, value))
            return True

        traverse(data, visit)
        found.reverse()
        return found

    def _view(self, normalized: Any) -> Any:
        if isinstance(normalized, EntityReference):
            return self._wrap(normalized)
        if isinstance(normalized, dict):
            return self._wrap(normalized)
        if isinstance(normalized, list):
            return [self._view(item) for item in normalized]
        return normalized

    def _wrap(self, source) -> ReadView:
        return ReadView(
            self.store,
            source,
            resolvers=self.config.resolvers,
            warn_unresolved=self.config.warn_unresolved,
        )

    def __repr__(self) -> str:
        return f"CacheClient({len(self.store)} entities)"


def create_client(config: CacheConfig | None = None, **options: Any) -> CacheClient:
    return CacheClient(config, **options)
