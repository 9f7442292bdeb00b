"""Computed values — derived state with automatic dependency tracking.

A Computed wraps a function. When evaluated, it tracks which cells the
function reads and caches the result. When any of them notifies, the cached
value is invalidated and the Computed's own subscribers hear about it.

Computed values are lazy: they only recompute when read.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from graphcache._tracking import Derivation, track
from graphcache.signal import Listener, Unsubscribe

T = TypeVar("T")

_UNSET = object()


class Computed(Derivation, Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_fn", "_value", "_dirty", "_listeners")

    def __init__(self, fn: Callable[[], T]) -> None:
        super().__init__()
        self._fn = fn
        self._value = _UNSET
        self._dirty = True
        self._listeners: list[Listener] = []

    @property
    def dirty(self) -> bool:
        return self._dirty

    def get(self) -> T:
        """Read the computed value. Recomputes if dirty."""
        track(self)
        if self._dirty:
            self._value = self._evaluate(self._fn)
            self._dirty = False
        return self._value

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Call listener(self) whenever the cached value is invalidated."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _unsubscribe

    def _invalidate(self, *_) -> None:
        # Marked dirty right away so reads inside a batch never see stale data;
        # only downstream reactions are deferred.
        if not self._dirty:
            self._dirty = True
            for listener in list(self._listeners):
                listener(self)

    def _run(self) -> None:
        self._invalidate()

    def dispose(self) -> None:
        """Disconnect from all dependencies. The computed becomes inert."""
        self._clear_dependencies()
        self._listeners.clear()
        self._dirty = True
        self._value = _UNSET

    def __repr__(self) -> str:
        state = "dirty" if self._dirty else f"cached={self._value!r}"
        name = getattr(self._fn, "__name__", repr(self._fn))
        return f"Computed({name}, {state})"


def computed(fn: Callable[[], T]) -> Computed[T]:
    """Decorator/factory to create a Computed from a function.

    Usage:
        name = Signal("Chris")

        @computed
        def shout():
            return name.get().upper()

        shout.get()  # "CHRIS"
        name.set("Hitch")
        shout.get()  # "HITCH"
    """
    return Computed(fn)
