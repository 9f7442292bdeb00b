"""Batching — hold derivations back until a group of merges is done.

CacheClient.write runs every merge inside batch(), so a Computed or Reaction
that reads several fields of one entity runs once per write, not once per
field the merge touched. Wrap several writes in an outer batch() to make
consumers observe all of them together:

    with batch():
        client.write(person)
        client.write_query("viewer", {"viewer": person})
    # reactions reading either result run here, once

Only derivations wait. Cell listeners still run inside set(), and a
Computed read inside the batch recomputes from the already-merged cells.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, Iterator, ParamSpec, TypeVar

from graphcache._tracking import begin_batch, end_batch

P = ParamSpec("P")
R = TypeVar("R")


@contextmanager
def batch() -> Iterator[None]:
    """Defer derivation runs until the outermost batch exits, even on error."""
    begin_batch()
    try:
        yield
    finally:
        end_batch()


def batched(fn: Callable[P, R]) -> Callable[P, R]:
    """Run fn inside batch(); for functions that issue several writes."""

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with batch():
            return fn(*args, **kwargs)

    return wrapper

