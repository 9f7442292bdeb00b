"""Tests for batch() and @batched."""

from graphcache import Signal, autorun, batch, batched, get_pending_count


class TestBatch:
    def test_defers_reactions(self):
        a = Signal(0)
        b = Signal(0)
        log = []
        autorun(lambda: log.append((a.get(), b.get())))

        with batch():
            a.set(1)
            b.set(2)
            assert log == [(0, 0)]
            assert get_pending_count() == 1

        assert log == [(0, 0), (1, 2)]
        assert get_pending_count() == 0

    def test_cell_listeners_are_not_deferred(self):
        s = Signal(0)
        calls = []
        s.subscribe(calls.append)
        with batch():
            s.set(1)
            assert calls == [1]

    def test_nested(self):
        s = Signal(0)
        log = []
        autorun(lambda: log.append(s.get()))

        with batch():
            with batch():
                s.set(1)
            assert log == [0]
            s.set(2)

        assert log == [0, 2]

    def test_flushes_on_exception(self):
        s = Signal(0)
        log = []
        autorun(lambda: log.append(s.get()))

        try:
            with batch():
                s.set(1)
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        assert log == [0, 1]


class TestBatched:
    def test_decorator(self):
        a = Signal(0)
        b = Signal(0)
        log = []
        autorun(lambda: log.append((a.get(), b.get())))

        @batched
        def swap():
            first, second = a.get(), b.get()
            a.set(second + 1)
            b.set(first + 2)

        swap()
        assert log == [(0, 0), (1, 2)]
        assert swap.__name__ == "swap"
