"""Dependency tracking engine.

Uses contextvars to track which cells are read while a Computed or Reaction
evaluates, subscribing the derivation to each of them automatically.

Cells notify their listeners synchronously. Derivations do not run inside
the listener directly: they go through schedule(), so mutations inside a
batch() accumulate invalidations and flush them once at the end.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import Any, Callable

# The currently-evaluating derivation (computed or reaction).
# When set, any tracked cell read subscribes the derivation to that cell.
current_derivation: contextvars.ContextVar[Derivation | None] = contextvars.ContextVar(
    "current_derivation", default=None
)

# Batch depth counter. When > 0, derivation runs are deferred.
_batch_depth: int = 0

# Derivations invalidated during a batch, in invalidation order.
_pending: dict[Derivation, None] = {}


class Derivation:
    """Something that re-evaluates when the sources it read notify."""

    __slots__ = ("_dependencies",)

    def __init__(self) -> None:
        # id(source) -> (source, unsubscribe)
        self._dependencies: dict[int, tuple[Any, Callable[[], None]]] = {}

    def _depend_on(self, source) -> None:
        key = id(source)
        if key not in self._dependencies:
            self._dependencies[key] = (source, source.subscribe(self._invalidate))

    def _invalidate(self, *_) -> None:
        schedule(self)

    def _clear_dependencies(self) -> None:
        for _, unsubscribe in list(self._dependencies.values()):
            unsubscribe()
        self._dependencies.clear()

    def _evaluate(self, fn: Callable[[], Any]) -> Any:
        """Run fn with this derivation current, re-tracking from scratch."""
        self._clear_dependencies()
        token = current_derivation.set(self)
        try:
            return fn()
        finally:
            current_derivation.reset(token)

    def _run(self) -> None:
        raise NotImplementedError


def track(source) -> None:
    """Register source as a dependency of the running derivation, if any."""
    derivation = current_derivation.get()
    if derivation is not None and derivation is not source:
        derivation._depend_on(source)


@contextmanager
def untracked():
    """Read cells without subscribing the running derivation to them."""
    token = current_derivation.set(None)
    try:
        yield
    finally:
        current_derivation.reset(token)


def begin_batch() -> None:
    """Enter a batching scope. Nested batches are supported."""
    global _batch_depth
    _batch_depth += 1


def end_batch() -> None:
    """Exit a batching scope. When the outermost scope exits, flush pending derivations."""
    global _batch_depth
    _batch_depth -= 1
    if _batch_depth == 0:
        _flush_pending()


def schedule(derivation: Derivation) -> None:
    """Run a derivation now, or defer it if inside a batch."""
    if _batch_depth > 0:
        _pending[derivation] = None
    else:
        derivation._run()


def _flush_pending() -> None:
    """Run all pending derivations. Handles derivations scheduled during flush."""
    while _pending:
        # Derivations may schedule new ones while running.
        batch = list(_pending)
        _pending.clear()
        for derivation in batch:
            derivation._run()


def get_pending_count() -> int:
    """Number of derivations waiting to run. Useful for testing."""
    return len(_pending)
