"""Client configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from graphcache.signal import Adapter, Equality, default_adapter, default_equals
from graphcache.types import CacheKey


@dataclass(frozen=True)
class CacheConfig:
    """Options recognized by CacheClient.

    Attributes:
        get_cache_key: Replaces the default ``Typename:id`` identity scheme.
        keys: Per-typename generators for the id part of a key.
        adapter: Builds the reactive cell backing each field.
        equals: Equality deciding whether a write is a no-op.
        field_equals: ``{typename: {field: equals}}`` overrides.
        resolvers: ``{typename: {field: fn(view)}}`` read-time fields.
        merge_resolvers: ``{typename: {field: fn(existing, incoming)}}``
            write-time merge policies, e.g. appending pages.
        warn_unresolved: Emit UnresolvableReferenceWarning when a read meets a
            reference to an entity that was never merged.
    """

    get_cache_key: Callable[[Mapping[str, Any]], CacheKey | None] | None = None
    keys: Mapping[str, Callable[[Mapping[str, Any]], Any]] = field(default_factory=dict)
    adapter: Adapter = default_adapter
    equals: Equality = default_equals
    field_equals: Mapping[str, Mapping[str, Equality]] = field(default_factory=dict)
    resolvers: Mapping[str, Mapping[str, Callable]] = field(default_factory=dict)
    merge_resolvers: Mapping[str, Mapping[str, Callable]] = field(default_factory=dict)
    warn_unresolved: bool = True
