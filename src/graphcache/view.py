"""Reactive read views — denormalized projections of the store.

A ReadView looks like the query result it came from, but holds no data of
its own. Every item access reads through to the cell backing that field, so
a view is always current, and reads made inside a Computed or Reaction
subscribe it to exactly the cells it touched. References come back as new
views of the referenced entity, so two reads of the same data are distinct
objects that compare equal.

Anonymous objects and lists are not entities and have no cells of their
own. Their views are addressed by the owning entity plus a path into the
owning field, and re-read that field's cell on every access.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Iterator

from graphcache.computed import Computed
from graphcache.errors import UnresolvableReferenceWarning
from graphcache.reaction import reaction
from graphcache.signal import read
from graphcache.store import EntityStore
from graphcache.traverse import traverse
from graphcache.types import NOT_LOADED, UNDEFINED, CacheKey, EntityReference

logger = logging.getLogger("graphcache.view")

Resolvers = Mapping[str, Mapping[str, Callable[["ReadView"], Any]]]
Path = tuple


def _step(value: Any, step: Any) -> Any:
    if isinstance(step, int):
        if isinstance(value, list) and 0 <= step < len(value):
            return value[step]
        return UNDEFINED
    if isinstance(value, dict):
        return value.get(step, UNDEFINED)
    return UNDEFINED


class ReadView(Mapping):
    """Read-only mapping over one entity, or over an anonymous structure.

    ``source`` is the owning entity's reference, or a plain dict for an
    anonymous root that lives in no cell. ``path`` leads from the source to
    the object this view projects; it is empty for entity views.
    """

    __slots__ = ("_store", "_source", "_path", "_resolvers", "_warn", "_computed", "_reactions")

    def __init__(
        self,
        store: EntityStore,
        source: EntityReference | dict,
        *,
        path: Path = (),
        resolvers: Resolvers | None = None,
        warn_unresolved: bool = True,
    ) -> None:
        self._store = store
        self._source = source
        self._path = tuple(path)
        self._resolvers = resolvers
        self._warn = warn_unresolved
        self._computed: Computed | None = None
        self._reactions: list = []

    @property
    def cache_key(self) -> CacheKey | None:
        """Key of the entity this view projects; None for anonymous objects."""
        if self._is_entity():
            return self._source.key
        return None

    def _is_entity(self) -> bool:
        return isinstance(self._source, EntityReference) and not self._path

    # --- Raw access (tracked) ---

    def _entity_field(self, key: CacheKey, field: str) -> Any:
        record = self._store.get(key)
        if record is None:
            read(self._store.presence(key))
            return UNDEFINED
        if field not in record:
            record.field_names()
            return UNDEFINED
        return read(record.field(field))

    def _node(self) -> Any:
        """The stored value at this view's path, read through the owning cell."""
        if isinstance(self._source, EntityReference):
            value = self._entity_field(self._source.key, self._path[0])
            rest = self._path[1:]
        else:
            value, rest = self._source, self._path
        for step in rest:
            value = _step(value, step)
        return value

    def _raw(self, field: str) -> Any:
        if self._is_entity():
            return self._entity_field(self._source.key, field)
        return _step(self._node(), field)

    def _fields(self) -> list[str]:
        if self._is_entity():
            record = self._store.get(self._source.key)
            if record is None:
                read(self._store.presence(self._source.key))
                names = []
            else:
                names = [n for n in record.field_names() if read(record.field(n)) is not UNDEFINED]
        else:
            node = self._node()
            if isinstance(node, dict):
                names = [n for n, v in node.items() if v is not UNDEFINED]
            else:
                names = []

        for name in self._virtual_fields():
            if name not in names:
                names.append(name)
        return names

    def _resolver(self, field: str):
        if not self._resolvers:
            return None
        typename = self._raw("__typename")
        if not isinstance(typename, str):
            return None
        return self._resolvers.get(typename, {}).get(field)

    def _virtual_fields(self) -> list[str]:
        if not self._resolvers:
            return []
        typename = self._raw("__typename")
        if not isinstance(typename, str):
            return []
        return list(self._resolvers.get(typename, {}))

    def _resolve(self, raw: Any, path: Path) -> Any:
        if isinstance(raw, EntityReference):
            return self._entity(raw.key)
        if isinstance(raw, list):
            return ReadList(self._derive(self._source, path))
        if isinstance(raw, dict):
            return self._derive(self._source, path)
        return raw

    def _entity(self, key: CacheKey) -> Any:
        if key not in self._store:
            # Picks the read up again once the record is merged.
            read(self._store.presence(key))
            logger.debug("Unresolved reference to %s", key)
            if self._warn:
                warnings.warn(UnresolvableReferenceWarning(key), stacklevel=4)
            return NOT_LOADED
        return self._derive(EntityReference(key))

    def _derive(self, source, path: Path = (), resolvers=UNDEFINED) -> ReadView:
        return ReadView(
            self._store,
            source,
            path=path,
            resolvers=self._resolvers if resolvers is UNDEFINED else resolvers,
            warn_unresolved=self._warn,
        )

    # --- Mapping protocol ---

    def __getitem__(self, field: str) -> Any:
        resolver = self._resolver(field)
        if resolver is not None:
            return resolver(self._derive(self._source, self._path, resolvers=None))
        raw = self._raw(field)
        if raw is UNDEFINED:
            raise KeyError(field)
        return self._resolve(raw, self._path + (field,))

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields())

    def __len__(self) -> int:
        return len(self._fields())

    # --- Denormalization ---

    def to_dict(self) -> dict[str, Any]:
        """Plain nested copy of everything reachable from this view.

        An entity that is already on the path from the root is emitted as its
        EntityReference instead of being expanded again.
        """
        root: dict[str, Any] = {}
        # id(view or list) -> (copy, entity key, id(parent))
        copies: dict[int, tuple[Any, CacheKey | None, int | None]] = {
            id(self): (root, self.cache_key, None)
        }

        def on_path(node: int | None, key: CacheKey) -> bool:
            while node is not None:
                _, entity_key, node_parent = copies[node]
                if entity_key == key:
                    return True
                node = node_parent
            return False

        def visit(key, value, parent) -> bool:
            target = copies[id(parent)][0]
            if isinstance(value, ReadView):
                if value.cache_key is not None and on_path(id(parent), value.cache_key):
                    _place(target, key, EntityReference(value.cache_key))
                    return False
                copy: Any = {}
                copies[id(value)] = (copy, value.cache_key, id(parent))
            elif isinstance(value, (ReadList, list)):
                copy = []
                copies[id(value)] = (copy, None, id(parent))
            else:
                _place(target, key, value)
                return False
            _place(target, key, copy)
            return True

        traverse(self, visit)
        return root

    def snapshot(self) -> dict[str, Any]:
        """to_dict(), cached until one of the cells it read changes."""
        if self._computed is None:
            self._computed = Computed(self.to_dict)
        return self._computed.get()

    def subscribe(self, listener: Callable[[dict[str, Any]], None]) -> Callable[[], None]:
        """Call listener(to_dict()) each time the projection changes.

        Returns a function that unsubscribes.
        """
        r = reaction(self.to_dict, listener)
        self._reactions.append(r)

        def _unsubscribe() -> None:
            r.dispose()
            try:
                self._reactions.remove(r)
            except ValueError:
                pass

        return _unsubscribe

    def dispose(self) -> None:
        """Drop the cached snapshot and every subscription made through this view."""
        if self._computed is not None:
            self._computed.dispose()
            self._computed = None
        for r in self._reactions:
            r.dispose()
        self._reactions.clear()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ReadView):
            return self.to_dict() == other.to_dict()
        if isinstance(other, Mapping):
            return self.to_dict() == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self.cache_key is not None:
            return f"ReadView({self.cache_key!r})"
        owner = self._source.key if isinstance(self._source, EntityReference) else "<root>"
        return f"ReadView(anonymous, owner={owner!r}, path={self._path!r})"


class ReadList(Sequence):
    """Read-only sequence over a stored list, re-read on every access."""

    __slots__ = ("_cursor",)

    def __init__(self, cursor: ReadView) -> None:
        # Positioned at the list; only its source and path are used.
        self._cursor = cursor

    def _items(self) -> list:
        node = self._cursor._node()
        return node if isinstance(node, list) else []

    def _item(self, items: list, index: int) -> Any:
        item = None if items[index] is UNDEFINED else items[index]
        return self._cursor._resolve(item, self._cursor._path + (index,))

    def __len__(self) -> int:
        return len(self._items())

    def __getitem__(self, index):
        items = self._items()
        if isinstance(index, slice):
            return [self._item(items, i) for i in range(*index.indices(len(items)))]
        if index < 0:
            index += len(items)
        if not 0 <= index < len(items):
            raise IndexError("list index out of range")
        return self._item(items, index)

    def __iter__(self) -> Iterator[Any]:
        items = self._items()
        for index in range(len(items)):
            yield self._item(items, index)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (ReadList, list, tuple)):
            return list(self) == list(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ReadList(path={self._cursor._path!r})"


def _place(target: Any, key: Any, value: Any) -> None:
    if isinstance(target, list):
        target.append(value)
    else:
        target[key] = value
