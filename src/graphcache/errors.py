"""Error taxonomy for the cache."""

from __future__ import annotations


class GraphCacheError(Exception):
    """Base class for errors raised by graphcache."""


class IdentityConflictError(GraphCacheError):
    """Incoming data has a different shape than what is stored for the same slot.

    Raised before any cell is written, so the store keeps its pre-merge state.
    """

    def __init__(self, cache_key, path, existing, incoming) -> None:
        self.cache_key = cache_key
        self.path = tuple(path)
        self.existing = existing
        self.incoming = incoming
        where = ".".join(str(p) for p in self.path) or "<root>"
        owner = cache_key if cache_key is not None else "<anonymous>"
        super().__init__(
            f"Shape conflict at {owner} {where}: stored {_shape(existing)} "
            f"cannot be merged with incoming {_shape(incoming)}"
        )


class UnresolvableReferenceWarning(UserWarning):
    """A read reached a reference to an entity that has not been merged yet."""

    def __init__(self, cache_key) -> None:
        self.cache_key = cache_key
        super().__init__(f"No entity found for {cache_key}; reading as NOT_LOADED")


def _shape(value) -> str:
    if isinstance(value, list):
        return "list"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__
