"""Tests for the in-process event bus and per-key locks."""
import threading

import pytest

from fhe_royalties.events import EventBus, RequestExpired
from fhe_royalties.locks import KeyedLock


class TestEventBus:

    def test_delivers_to_all_subscribers(self):
        bus = EventBus()
        first, second = [], []
        bus.subscribe(first.append)
        bus.subscribe(second.append)
        event = RequestExpired(request_id="r", kind="claim", context="ab")
        bus.emit(event)
        assert first == [event]
        assert second == [event]

    def test_failing_subscriber_does_not_block_others(self):
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("indexer down")

        bus.subscribe(broken)
        bus.subscribe(received.append)
        bus.emit("event")
        assert received == ["event"]

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        bus.subscribe(received.append)
        bus.unsubscribe(received.append)
        bus.emit("event")
        assert received == []


class TestKeyedLock:

    def test_reentrant(self):
        locks = KeyedLock()
        with locks.hold(b"a"):
            with locks.hold(b"a"):
                assert len(locks) == 1
            assert len(locks) == 1

    def test_released_keys_are_dropped(self):
        locks = KeyedLock()
        for n in range(100):
            with locks.hold(bytes([n])):
                pass
        assert len(locks) == 0

    def test_dropped_after_error(self):
        locks = KeyedLock()
        with pytest.raises(RuntimeError):
            with locks.hold(b"a"):
                raise RuntimeError("boom")
        assert len(locks) == 0

    def test_other_keys_not_blocked(self):
        locks = KeyedLock()
        acquired = threading.Event()

        def other():
            with locks.hold(b"b"):
                acquired.set()

        with locks.hold(b"a"):
            thread = threading.Thread(target=other)
            thread.start()
            assert acquired.wait(timeout=5)
            thread.join()

    def test_same_key_blocks(self):
        locks = KeyedLock()
        acquired = threading.Event()

        def same():
            with locks.hold(b"a"):
                acquired.set()

        with locks.hold(b"a"):
            thread = threading.Thread(target=same)
            thread.start()
            assert not acquired.wait(timeout=0.2)
        thread.join(timeout=5)
        assert acquired.is_set()
