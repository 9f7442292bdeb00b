"""Merge engine — reconciles incoming payloads with the entity store.

A merge runs in two phases. Planning walks the whole payload, normalizes it
against the store as it was before the call, and records one pending write
per (cache key, field). Later parts of the same payload see the earlier
pending writes. Only when planning finished without a shape conflict are
the cells written, in the order the slots were first planned. A conflict
therefore leaves every cell untouched.

Rules:
- UNDEFINED never overwrites anything; None is a real value.
- Lists merge by position and the incoming length wins.
- Identifiable objects become EntityReferences; their fields are merged
  into the record under their cache key.
- Anonymous objects merge key-wise into a fresh dict seeded with the stored
  one, so keys the payload did not request survive.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable

from graphcache.errors import IdentityConflictError
from graphcache.keys import default_cache_key
from graphcache.signal import Equality, default_equals, unwrap
from graphcache.store import EntityStore
from graphcache.types import UNDEFINED, CacheKey, EntityReference

logger = logging.getLogger("graphcache.merge")

KeyFn = Callable[[Any], "CacheKey | None"]
MergeResolver = Callable[[Any, Any], Any]
FieldPolicies = Mapping[str, Mapping[str, Callable]]


def _shape(value: Any) -> str | None:
    if value is None or value is UNDEFINED:
        return None
    if isinstance(value, (list, tuple)):
        return "list"
    if isinstance(value, (Mapping, EntityReference)):
        return "object"
    return "scalar"


def _policy(policies: FieldPolicies | None, typename: Any, field: str):
    if not policies or not isinstance(typename, str):
        return None
    return policies.get(typename, {}).get(field)


class _WritePlan:
    """Normalizes one payload without touching any cell."""

    def __init__(
        self,
        store: EntityStore | None,
        derive_key: KeyFn | None,
        equals: Equality = default_equals,
        field_equals: FieldPolicies | None = None,
        merge_resolvers: FieldPolicies | None = None,
    ) -> None:
        self.store = store
        self.derive_key = derive_key
        self.equals = equals
        self.field_equals = field_equals
        self.merge_resolvers = merge_resolvers
        self.writes: dict[tuple[CacheKey, str], Any] = {}
        self.entities: dict[CacheKey, None] = {}
        # Payload objects currently being merged, to stop self-containing input.
        self._active: set[int] = set()

    def current(self, key: CacheKey, field: str) -> Any:
        slot = (key, field)
        if slot in self.writes:
            return self.writes[slot]
        record = self.store.get(key) if self.store is not None else None
        if record is None or field not in record:
            return UNDEFINED
        return unwrap(record.field(field))

    def entity(self, key: CacheKey, incoming: Mapping) -> EntityReference:
        self.entities.setdefault(key, None)
        marker = id(incoming)
        if marker in self._active:
            logger.debug("Payload for %s contains itself; not merging again", key)
            return EntityReference(key)

        self._active.add(marker)
        try:
            typename = incoming.get("__typename", UNDEFINED)
            if typename is UNDEFINED:
                typename = self.current(key, "__typename")
            for field, value in incoming.items():
                self.field(key, typename, field, value)
        finally:
            self._active.discard(marker)
        return EntityReference(key)

    def field(self, key: CacheKey, typename: Any, field: str, incoming: Any) -> None:
        if incoming is UNDEFINED:
            return

        existing = self.current(key, field)
        resolver = _policy(self.merge_resolvers, typename, field)
        if resolver is not None and existing is not UNDEFINED:
            merged = resolver(existing, self.value(incoming, UNDEFINED, key, (field,)))
        else:
            merged = self.value(incoming, existing, key, (field,))

        if merged is UNDEFINED:
            return
        equals = _policy(self.field_equals, typename, field) or self.equals
        if existing is not UNDEFINED and equals(existing, merged):
            return
        self.writes[(key, field)] = merged

    def value(self, incoming: Any, existing: Any, owner: CacheKey | None, path: tuple) -> Any:
        if incoming is UNDEFINED:
            return existing

        if isinstance(incoming, (list, tuple)):
            self._check(owner, path, existing, incoming)
            previous = existing if isinstance(existing, list) else []
            result = []
            for index, item in enumerate(incoming):
                prior = previous[index] if index < len(previous) else UNDEFINED
                merged = self.value(item, prior, owner, path + (index,))
                result.append(None if merged is UNDEFINED else merged)
            return result

        if isinstance(incoming, Mapping):
            self._check(owner, path, existing, incoming)
            key = self.derive_key(incoming) if self.derive_key is not None else None
            if key is not None:
                return self.entity(key, incoming)
            return self.anonymous(incoming, existing, owner, path)

        self._check(owner, path, existing, incoming)
        return incoming

    def anonymous(self, incoming: Mapping, existing: Any, owner: CacheKey | None, path: tuple) -> Any:
        marker = id(incoming)
        if marker in self._active:
            logger.debug("Anonymous object at %r contains itself; keeping stored value", path)
            return existing

        self._active.add(marker)
        try:
            result = dict(existing) if isinstance(existing, dict) else {}
            for field, value in incoming.items():
                merged = self.value(value, result.get(field, UNDEFINED), owner, path + (field,))
                if merged is not UNDEFINED:
                    result[field] = merged
        finally:
            self._active.discard(marker)
        return result

    def _check(self, owner, path, existing, incoming) -> None:
        incoming_shape = _shape(incoming)
        existing_shape = _shape(existing)
        if incoming_shape is None or existing_shape is None:
            return
        if incoming_shape != existing_shape:
            raise IdentityConflictError(owner, path, existing, incoming)


class MergeEngine:
    """Deep-merges payloads into an EntityStore, preserving cell identity."""

    def __init__(
        self,
        store: EntityStore,
        derive_key: KeyFn | None = None,
        *,
        equals: Equality | None = None,
        field_equals: FieldPolicies | None = None,
        merge_resolvers: FieldPolicies | None = None,
    ) -> None:
        self.store = store
        self.derive_key = derive_key or default_cache_key
        self.equals = equals or default_equals
        self.field_equals = field_equals
        self.merge_resolvers = merge_resolvers

    def _plan(self) -> _WritePlan:
        return _WritePlan(
            self.store,
            self.derive_key,
            self.equals,
            self.field_equals,
            self.merge_resolvers,
        )

    def merge(self, cache_key: CacheKey | None, incoming: Any) -> Any:
        """Merge incoming and return its normalized form.

        With a cache_key, incoming must be a mapping and is merged into that
        record whatever its own identity; the result is a reference to it.
        Without one, identifiable objects come back as EntityReferences and
        anything else as a plain structure holding references.
        """
        plan = self._plan()
        if cache_key is not None:
            if not isinstance(incoming, Mapping):
                raise TypeError(
                    f"Cannot merge {type(incoming).__name__} into entity {cache_key}; "
                    "use merge_field for single values"
                )
            result = plan.entity(cache_key, incoming)
        else:
            result = plan.value(incoming, UNDEFINED, None, ())
        self._commit(plan)
        return result

    def merge_field(self, cache_key: CacheKey, field: str, incoming: Any) -> Any:
        """Merge one value into one field and return what the field now holds."""
        plan = self._plan()
        plan.entities.setdefault(cache_key, None)
        plan.field(cache_key, plan.current(cache_key, "__typename"), field, incoming)
        self._commit(plan)
        return unwrap(self.store.get_field(cache_key, field))

    def _commit(self, plan: _WritePlan) -> None:
        for key in plan.entities:
            self.store.get_or_create(key)
        for (key, field), value in plan.writes.items():
            self.store.get_field(key, field).set(value)
        logger.debug(
            "Merged %d entities, %d field writes", len(plan.entities), len(plan.writes)
        )


def merge(
    cache_key: CacheKey | None,
    incoming: Any,
    store: EntityStore,
    derive_key: KeyFn | None = None,
) -> Any:
    """One-off merge with default policies. See MergeEngine.merge."""
    return MergeEngine(store, derive_key).merge(cache_key, incoming)


def merge_deep(existing: Any, incoming: Any) -> Any:
    """Structural merge of two plain values, without a store.

    Same rules as the engine, with every object treated as anonymous:

        merge_deep({"page": UNDEFINED}, {"page": ["x"]}) == {"page": ["x"]}
    """
    return _WritePlan(None, None).value(incoming, existing, None, ())
