from __future__ import annotations

import threading

from iapbridge.purchase.callback import CallbackSlot


class Recorder:
    def __init__(self) -> None:
        self.calls: list[tuple[bool, str]] = []

    def __call__(self, success: bool, message: str) -> None:
        self.calls.append((success, message))


def test_drain_without_complete_is_noop() -> None:
    slot = CallbackSlot()
    rec = Recorder()
    slot.setup(rec)
    assert slot.drain() is False
    assert rec.calls == []


def test_complete_does_not_invoke_until_drain() -> None:
    slot = CallbackSlot()
    rec = Recorder()
    slot.setup(rec)
    slot.complete(True, "T1")
    assert rec.calls == []
    assert slot.armed

    assert slot.drain() is True
    assert rec.calls == [(True, "T1")]


def test_second_drain_does_not_reinvoke() -> None:
    slot = CallbackSlot()
    rec = Recorder()
    slot.setup(rec)
    slot.complete(False, "oops")
    slot.drain()
    slot.drain()
    assert rec.calls == [(False, "oops")]
    assert not slot.armed
    assert not slot.has_callback


def test_last_setup_wins_even_after_first_completed() -> None:
    slot = CallbackSlot()
    first, second = Recorder(), Recorder()

    slot.setup(first)
    slot.complete(True, "for-first")
    slot.setup(second)
    slot.drain()
    assert first.calls == []
    assert second.calls == []

    slot.complete(False, "for-second")
    slot.drain()
    assert first.calls == []
    assert second.calls == [(False, "for-second")]


def test_completion_without_callback_is_dropped() -> None:
    slot = CallbackSlot()
    slot.setup(None)
    slot.complete(True, "x")
    assert slot.drain() is False
    assert not slot.armed


def test_callback_may_rearm_the_slot() -> None:
    slot = CallbackSlot()
    follow_up = Recorder()

    def first(success: bool, message: str) -> None:
        slot.setup(follow_up)

    slot.setup(first)
    slot.complete(True, "a")
    slot.drain()
    assert slot.has_callback

    slot.complete(True, "b")
    slot.drain()
    assert follow_up.calls == [(True, "b")]


def test_complete_from_worker_thread_is_delivered_on_drain() -> None:
    slot = CallbackSlot()
    rec = Recorder()
    caller = threading.get_ident()
    seen_threads: list[int] = []

    def cb(success: bool, message: str) -> None:
        seen_threads.append(threading.get_ident())
        rec(success, message)

    slot.setup(cb)
    worker = threading.Thread(target=slot.complete, args=(True, "from-worker"))
    worker.start()
    worker.join(timeout=5)

    assert rec.calls == []
    slot.drain()
    assert rec.calls == [(True, "from-worker")]
    assert seen_threads == [caller]


def test_retarget_keeps_staged_result() -> None:
    slot = CallbackSlot()
    old, new = Recorder(), Recorder()
    slot.setup(old)
    slot.complete(False, "no billing")
    slot.retarget(new)
    assert slot.drain() is True
    assert old.calls == []
    assert new.calls == [(False, "no billing")]
