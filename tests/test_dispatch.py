from __future__ import annotations

import threading

from dispatch import ImmediateDispatcher, SerialDispatcher


def test_immediate_dispatcher_runs_inline() -> None:
    calls: list[str] = []
    ImmediateDispatcher().post(lambda: calls.append(threading.current_thread().name))

    assert calls == [threading.current_thread().name]


def test_serial_dispatcher_preserves_order_on_one_thread() -> None:
    dispatcher = SerialDispatcher(name="notify-test")
    calls: list[tuple[int, str]] = []

    for i in range(20):
        dispatcher.post(lambda i=i: calls.append((i, threading.current_thread().name)))
    dispatcher.close()

    assert [i for i, _ in calls] == list(range(20))
    assert {name for _, name in calls} == {"notify-test"}


def test_serial_dispatcher_survives_failing_callback() -> None:
    dispatcher = SerialDispatcher()
    calls: list[str] = []

    def _boom() -> None:
        raise RuntimeError("consumer bug")

    dispatcher.post(_boom)
    dispatcher.post(lambda: calls.append("after"))
    dispatcher.close()

    assert calls == ["after"]


def test_serial_dispatcher_drops_posts_after_close() -> None:
    dispatcher = SerialDispatcher()
    calls: list[str] = []
    dispatcher.close()
    dispatcher.close()
    dispatcher.post(lambda: calls.append("late"))

    assert calls == []
