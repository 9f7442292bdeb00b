"""Value types shared by the store, merge engine and read path."""

from __future__ import annotations

from dataclasses import dataclass

CacheKey = str


class _Undefined:
    """A field that was not requested, as opposed to one explicitly null."""

    __slots__ = ()
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __reduce__(self):
        return "UNDEFINED"


class _NotLoaded:
    """Placeholder for a reference whose entity has no record yet."""

    __slots__ = ()
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_LOADED"

    def __reduce__(self):
        return "NOT_LOADED"


UNDEFINED = _Undefined()
NOT_LOADED = _NotLoaded()


@dataclass(frozen=True)
class EntityReference:
    """A pointer from one stored field to another entity, by cache key."""

    key: CacheKey

    def __repr__(self) -> str:
        return f"EntityReference({self.key!r})"
