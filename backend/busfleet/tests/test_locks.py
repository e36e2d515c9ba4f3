"""
Tests for per-key locking.
"""
import threading
import time

import pytest

from busfleet.services.locks import KeyedLock


def test_same_key_is_serialized():
    locks = KeyedLock()
    active = []
    overlaps = []

    def worker():
        with locks.hold(("group", 1)):
            active.append(1)
            if len(active) > 1:
                overlaps.append(True)
            time.sleep(0.01)
            active.pop()

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert overlaps == []


def test_different_keys_do_not_block():
    locks = KeyedLock()
    with locks.hold(("group", 1)):
        acquired = threading.Event()

        def other():
            with locks.hold(("group", 2)):
                acquired.set()

        thread = threading.Thread(target=other)
        thread.start()
        assert acquired.wait(timeout=1)
        thread.join()


def test_lock_released_on_error():
    locks = KeyedLock()
    with pytest.raises(RuntimeError):
        with locks.hold(("bus", 3)):
            raise RuntimeError("boom")
    with locks.hold(("bus", 3)):
        pass
