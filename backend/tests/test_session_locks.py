from __future__ import annotations

import threading
import time

from medassist_memory import SessionLocks


def _wait_until(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_waiting_turn_shares_lock_with_holder():
    locks = SessionLocks()
    entered = threading.Event()
    release = threading.Event()
    order: list[str] = []

    def first():
        with locks.hold("s-1"):
            order.append("first-in")
            entered.set()
            release.wait(timeout=5)
            order.append("first-out")

    def second():
        with locks.hold("s-1"):
            order.append("second-in")

    t1 = threading.Thread(target=first)
    t1.start()
    assert entered.wait(timeout=5)
    t2 = threading.Thread(target=second)
    t2.start()

    assert _wait_until(lambda: locks._locks["s-1"].users == 2)
    assert order == ["first-in"]
    assert len(locks) == 1

    release.set()
    t1.join(timeout=5)
    t2.join(timeout=5)

    assert order == ["first-in", "first-out", "second-in"]


def test_lock_entry_is_dropped_once_nobody_uses_it():
    locks = SessionLocks()

    with locks.hold("s-1"):
        assert len(locks) == 1

    assert len(locks) == 0


def test_distinct_sessions_do_not_block_each_other():
    locks = SessionLocks()

    with locks.hold("s-1"):
        with locks.hold("s-2"):
            assert len(locks) == 2

    assert len(locks) == 0


def test_lock_is_released_when_turn_raises():
    locks = SessionLocks()

    try:
        with locks.hold("s-1"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    assert len(locks) == 0
    with locks.hold("s-1"):
        assert len(locks) == 1
