"""Reactions — side effects triggered by cell changes.

This is the hook consumers (UI bindings, tests) use to react to the cache.
Unlike Computed, a Reaction eagerly re-runs whenever a tracked cell notifies.

Two flavors:
- autorun(fn): runs fn immediately, re-runs when any cell it read changes.
- reaction(data_fn, effect_fn): tracks data_fn, calls effect_fn with the new
  value only when data_fn's result changes.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from graphcache._tracking import Derivation

T = TypeVar("T")


def _name(fn) -> str:
    return getattr(fn, "__name__", repr(fn))


class Reaction(Derivation):
    """A reactive side effect that re-runs when its dependencies change."""

    __slots__ = ("_fn", "_disposed")

    def __init__(self, fn: Callable[[], None]) -> None:
        super().__init__()
        self._fn = fn
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _run(self) -> None:
        if self._disposed:
            return
        self._evaluate(self._fn)

    def dispose(self) -> None:
        """Stop this reaction. Disconnects from all dependencies."""
        self._disposed = True
        self._clear_dependencies()

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"Reaction({_name(self._fn)}, {state})"


class _DataReaction(Derivation):
    """Internal: reaction(data_fn, effect_fn) implementation."""

    __slots__ = ("_data_fn", "_effect_fn", "_last_value", "_initialized", "_disposed")

    def __init__(self, data_fn: Callable, effect_fn: Callable) -> None:
        super().__init__()
        self._data_fn = data_fn
        self._effect_fn = effect_fn
        self._last_value = None
        self._initialized = False
        self._disposed = False

    def _run(self) -> None:
        if self._disposed:
            return

        new_value = self._evaluate(self._data_fn)

        if not self._initialized or new_value != self._last_value:
            self._last_value = new_value
            self._initialized = True
            self._effect_fn(new_value)

    def dispose(self) -> None:
        self._disposed = True
        self._clear_dependencies()

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"_DataReaction({_name(self._data_fn)}, {state})"


def autorun(fn: Callable[[], None]) -> Reaction:
    """Run fn immediately, then re-run whenever any cell it reads changes.

    Returns the Reaction (call .dispose() to stop).

    Usage:
        name = Signal("Chris")
        log = []

        r = autorun(lambda: log.append(name.get()))
        # log == ["Chris"]

        name.set("Hitch")
        # log == ["Chris", "Hitch"]

        r.dispose()
    """
    r = Reaction(fn)
    r._run()  # Initial run to establish dependencies
    return r


def reaction(
    data_fn: Callable[[], T],
    effect_fn: Callable[[T], None],
    *,
    fire_immediately: bool = False,
) -> _DataReaction:
    """Track data_fn's cells; call effect_fn when the result changes.

    Returns the reaction (call .dispose() to stop).
    """
    r = _DataReaction(data_fn, effect_fn)
    if fire_immediately:
        r._run()
    else:
        # Run data_fn to establish deps, but suppress the initial effect
        r._last_value = r._evaluate(data_fn)
        r._initialized = True
    return r
