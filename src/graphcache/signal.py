"""Signal cells — the reactive primitive behind every stored field.

A cell holds one value, exposes get/set, and calls its listeners
synchronously, in subscription order, before set() returns. Setting a value
equal to the current one is a no-op: no listener runs. That short-circuit is
also what stops a listener that writes back into the graph from looping.

The store never depends on Signal directly. It creates cells through an
adapter, so any object satisfying ReactiveCell can back the cache.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, Protocol, TypeVar, runtime_checkable

from graphcache._tracking import track, untracked
from graphcache.types import UNDEFINED

T = TypeVar("T")

Listener = Callable[[Any], None]
Unsubscribe = Callable[[], None]
Equality = Callable[[Any, Any], bool]


@runtime_checkable
class ReactiveCell(Protocol[T]):
    """The accessor contract every cell adapter must provide."""

    def get(self) -> T: ...

    def set(self, value: T) -> None: ...

    def subscribe(self, listener: Listener) -> Unsubscribe: ...


Adapter = Callable[[Any], ReactiveCell]


def default_equals(a: Any, b: Any) -> bool:
    """Type-strict structural equality; references compare by cache key."""
    if a is b:
        return True
    if type(a) is not type(b):
        return False
    if isinstance(a, (list, tuple)):
        return len(a) == len(b) and all(default_equals(x, y) for x, y in zip(a, b))
    if isinstance(a, dict):
        return a.keys() == b.keys() and all(default_equals(a[k], b[k]) for k in a)
    return a == b


class Signal(Generic[T]):
    """A single observable value with automatic dependency tracking."""

    __slots__ = ("_value", "_listeners", "_equals")

    def __init__(self, value: T = UNDEFINED, equals: Equality | None = None) -> None:
        self._value = value
        self._listeners: list[Listener] = []
        self._equals = equals or default_equals

    def get(self) -> T:
        """Read the value. If inside a derivation, registers the dependency."""
        track(self)
        return self._value

    def peek(self) -> T:
        """Read the value without registering a dependency."""
        return self._value

    def set(self, value: T) -> None:
        """Write a new value and notify listeners, unless it is equal to the old one."""
        if self._equals(self._value, value):
            return
        self._value = value
        for listener in list(self._listeners):
            listener(value)

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register a listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass  # already removed

        return _unsubscribe

    def __repr__(self) -> str:
        return f"Signal({self._value!r})"


def default_adapter(value: Any) -> Signal:
    return Signal(value)


def is_reactive_cell(value: Any) -> bool:
    """True for cells, False for the plain values they hold."""
    return isinstance(value, ReactiveCell)


def unwrap(value: Any) -> Any:
    """The plain value of a cell, read without tracking; non-cells pass through."""
    if not is_reactive_cell(value):
        return value
    with untracked():
        return value.get()


def read(cell: ReactiveCell) -> Any:
    """Tracked read that works for adapter cells which do not track themselves."""
    track(cell)
    return cell.get()
