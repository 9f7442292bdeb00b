"""graphcache: normalized entity cache with reactive field-level invalidation."""

from importlib.metadata import version as _version

__version__ = _version("graphcache")

from graphcache.types import UNDEFINED, NOT_LOADED, CacheKey, EntityReference
from graphcache.errors import GraphCacheError, IdentityConflictError, UnresolvableReferenceWarning
from graphcache.keys import KeyDeriver, default_cache_key, key_for_query
from graphcache.traverse import traverse
from graphcache._tracking import get_pending_count
from graphcache.signal import ReactiveCell, Signal, default_adapter, default_equals, is_reactive_cell, unwrap
from graphcache.computed import Computed, computed
from graphcache.reaction import Reaction, autorun, reaction
from graphcache.batch import batch, batched
from graphcache.store import EntityRecord, EntityStore
from graphcache.merge import MergeEngine, merge, merge_deep
from graphcache.view import ReadList, ReadView
from graphcache.config import CacheConfig
from graphcache.client import CacheClient, create_client

__all__ = [
    "UNDEFINED",
    "NOT_LOADED",
    "CacheKey",
    "EntityReference",
    "GraphCacheError",
    "IdentityConflictError",
    "UnresolvableReferenceWarning",
    "KeyDeriver",
    "default_cache_key",
    "key_for_query",
    "traverse",
    "get_pending_count",
    "ReactiveCell",
    "Signal",
    "default_adapter",
    "default_equals",
    "is_reactive_cell",
    "unwrap",
    "Computed",
    "computed",
    "Reaction",
    "autorun",
    "reaction",
    "batch",
    "batched",
    "EntityRecord",
    "EntityStore",
    "MergeEngine",
    "merge",
    "merge_deep",
    "ReadList",
    "ReadView",
    "CacheConfig",
    "CacheClient",
    "create_client",
]
