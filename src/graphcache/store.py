"""Entity store — the arena of normalized entities.

Records are addressed by cache key and never own each other: a field that
points at another entity stores an EntityReference, so cyclic graphs need no
special handling here. Every field is backed by exactly one cell for the
lifetime of its record; merges write through that cell rather than replacing
it, so subscribers stay attached.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

from graphcache.signal import Adapter, ReactiveCell, default_adapter, read, unwrap
from graphcache.types import UNDEFINED, CacheKey

logger = logging.getLogger("graphcache.store")


class EntityRecord:
    """The field map of one entity."""

    __slots__ = ("key", "_adapter", "_fields", "_names")

    def __init__(self, key: CacheKey, adapter: Adapter) -> None:
        self.key = key
        self._adapter = adapter
        self._fields: dict[str, ReactiveCell] = {}
        # Tracked list of field names, so readers iterating the record hear
        # about fields created after they last looked.
        self._names = adapter(())

    def field(self, name: str) -> ReactiveCell:
        """The cell for name, created holding UNDEFINED on first access."""
        cell = self._fields.get(name)
        if cell is None:
            cell = self._adapter(UNDEFINED)
            self._fields[name] = cell
            self._names.set(tuple(self._fields))
        return cell

    def field_names(self) -> tuple[str, ...]:
        """Names of every created field; tracked."""
        return read(self._names)

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def snapshot(self) -> dict[str, Any]:
        """Defined field values, read without tracking."""
        result = {}
        for name, cell in self._fields.items():
            value = unwrap(cell)
            if value is not UNDEFINED:
                result[name] = value
        return result

    def __repr__(self) -> str:
        return f"EntityRecord({self.key!r}, fields={list(self._fields)!r})"


class EntityStore:
    """Canonical mapping from cache key to entity record."""

    def __init__(self, adapter: Adapter | None = None) -> None:
        self._adapter = adapter or default_adapter
        self._records: dict[CacheKey, EntityRecord] = {}
        self._presence: dict[CacheKey, ReactiveCell] = {}

    @property
    def adapter(self) -> Adapter:
        return self._adapter

    def get_or_create(self, key: CacheKey) -> EntityRecord:
        """The record for key, created empty on first access."""
        record = self._records.get(key)
        if record is None:
            record = EntityRecord(key, self._adapter)
            self._records[key] = record
            logger.debug("Created record %s", key)
            presence = self._presence.get(key)
            if presence is not None:
                presence.set(True)
        return record

    def get_field(self, key: CacheKey, field: str) -> ReactiveCell:
        """The cell for (key, field); unknown keys are auto-vivified."""
        return self.get_or_create(key).field(field)

    def get(self, key: CacheKey) -> EntityRecord | None:
        """The record for key, or None. Never creates anything."""
        return self._records.get(key)

    def presence(self, key: CacheKey) -> ReactiveCell:
        """A cell holding whether key has a record; it flips once, to True."""
        cell = self._presence.get(key)
        if cell is None:
            cell = self._adapter(key in self._records)
            self._presence[key] = cell
        return cell

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CacheKey]:
        return iter(self._records)

    def keys(self):
        return self._records.keys()

    def snapshot(self) -> dict[CacheKey, dict[str, Any]]:
        """Plain copy of every record's defined fields. Useful for debugging and tests."""
        return {key: record.snapshot() for key, record in self._records.items()}

    def __repr__(self) -> str:
        return f"EntityStore({len(self._records)} records)"
