"""Tests for EntityStore and EntityRecord."""

import logging

from graphcache import UNDEFINED, EntityStore, Signal, autorun, is_reactive_cell


class TestEntityStore:
    def test_get_or_create(self):
        store = EntityStore()
        record = store.get_or_create("Person:1")
        assert store.get_or_create("Person:1") is record
        assert "Person:1" in store
        assert len(store) == 1

    def test_get_does_not_create(self):
        store = EntityStore()
        assert store.get("Person:1") is None
        assert "Person:1" not in store

    def test_get_field_auto_vivifies(self):
        store = EntityStore()
        cell = store.get_field("Person:1", "name")
        assert is_reactive_cell(cell)
        assert cell.get() is UNDEFINED
        assert "Person:1" in store

    def test_field_cell_is_stable(self):
        store = EntityStore()
        cell = store.get_field("Person:1", "name")
        cell.set("Chris")
        assert store.get_field("Person:1", "name") is cell

    def test_iteration_and_snapshot(self):
        store = EntityStore()
        store.get_field("Person:1", "name").set("Chris")
        store.get_field("Person:1", "age")  # never populated
        store.get_or_create("Pet:1")
        assert list(store) == ["Person:1", "Pet:1"]
        assert set(store.keys()) == {"Person:1", "Pet:1"}
        assert store.snapshot() == {"Person:1": {"name": "Chris"}, "Pet:1": {}}

    def test_presence_flips_on_creation(self):
        store = EntityStore()
        presence = store.presence("Pet:1")
        log = []
        autorun(lambda: log.append(presence.get()))
        store.get_or_create("Pet:1")
        assert log == [False, True]
        assert store.presence("Pet:1") is presence

    def test_presence_of_existing_record(self):
        store = EntityStore()
        store.get_or_create("Pet:1")
        assert store.presence("Pet:1").get() is True

    def test_custom_adapter(self):
        made = []

        def adapter(value):
            cell = Signal(value)
            made.append(cell)
            return cell

        store = EntityStore(adapter=adapter)
        cell = store.get_field("Person:1", "name")
        assert cell in made
        assert store.adapter is adapter

    def test_logs_creation(self, caplog):
        store = EntityStore()
        with caplog.at_level(logging.DEBUG, logger="graphcache.store"):
            store.get_or_create("Person:1")
        assert "Created record Person:1" in caplog.text


class TestEntityRecord:
    def test_field_names_track_new_fields(self):
        store = EntityStore()
        record = store.get_or_create("Person:1")
        log = []
        autorun(lambda: log.append(record.field_names()))
        record.field("name")
        record.field("name")
        record.field("age")
        assert log == [(), ("name",), ("name", "age")]

    def test_contains_and_len(self):
        record = EntityStore().get_or_create("Person:1")
        record.field("name")
        assert "name" in record
        assert "age" not in record
        assert len(record) == 1

    def test_snapshot_skips_undefined(self):
        record = EntityStore().get_or_create("Person:1")
        record.field("name").set("Chris")
        record.field("nickname")
        record.field("email").set(None)
        assert record.snapshot() == {"name": "Chris", "email": None}
