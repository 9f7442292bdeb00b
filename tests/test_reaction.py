"""Tests for Reaction, autorun, and reaction."""

from graphcache import Signal, autorun, reaction


class TestAutorun:
    def test_runs_immediately(self):
        s = Signal(10)
        log = []
        autorun(lambda: log.append(s.get()))
        assert log == [10]

    def test_reruns_on_change(self):
        s = Signal(10)
        log = []
        autorun(lambda: log.append(s.get()))
        s.set(20)
        assert log == [10, 20]

    def test_dispose_stops(self):
        s = Signal(10)
        log = []
        r = autorun(lambda: log.append(s.get()))
        r.dispose()
        s.set(20)
        assert log == [10]
        assert r.disposed


class TestReaction:
    def test_no_initial_effect(self):
        s = Signal("a")
        effects = []
        reaction(lambda: s.get(), effects.append)
        assert effects == []

    def test_fires_on_change(self):
        s = Signal("a")
        effects = []
        reaction(lambda: s.get(), effects.append)
        s.set("b")
        assert effects == ["b"]

    def test_fire_immediately(self):
        s = Signal("a")
        effects = []
        reaction(lambda: s.get(), effects.append, fire_immediately=True)
        assert effects == ["a"]

    def test_dedup_effect(self):
        """Effect only fires when data_fn's result actually changes."""
        s = Signal(1)
        effects = []
        reaction(lambda: "even" if s.get() % 2 == 0 else "odd", effects.append)
        s.set(3)
        assert effects == []
        s.set(4)
        assert effects == ["even"]

    def test_dispose(self):
        s = Signal(1)
        effects = []
        r = reaction(lambda: s.get(), effects.append)
        s.set(2)
        r.dispose()
        s.set(3)
        assert effects == [2]
