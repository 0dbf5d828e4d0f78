# tests/test_scheduler.py

from __future__ import annotations

import logging

import pytest

from microloop import Scheduler, SchedulerError, TaskInvocationError, VirtualClock


def test_call_soon_runs_in_fifo_order_before_timers(sched: Scheduler) -> None:
    order: list[str] = []

    def first() -> None:
        order.append("first")
        # Queued during the drain, still ahead of the timer
        sched.call_soon(lambda: order.append("nested-a"))
        sched.call_soon(lambda: order.append("nested-b"))

    sched.call_later(0, lambda: order.append("timer"))
    sched.call_soon(first)
    sched.call_soon(lambda: order.append("second"))
    sched.run_until_idle()

    assert order == ["first", "second", "nested-a", "nested-b", "timer"]


def test_zero_delay_timer_runs_after_ready_work_queued_by_timers(sched: Scheduler) -> None:
    order: list[str] = []

    def timer_one() -> None:
        order.append("t1")
        sched.call_soon(lambda: order.append("t1-followup"))

    sched.call_later(0, timer_one)
    sched.call_later(0, lambda: order.append("t2"))
    sched.run_until_idle()

    assert order == ["t1", "t1-followup", "t2"]


def test_timers_fire_by_deadline_then_insertion(sched: Scheduler, clock: VirtualClock) -> None:
    fired: list[tuple[str, float]] = []

    sched.call_later(2, lambda: fired.append(("slow", clock.now())))
    sched.call_later(1, lambda: fired.append(("a", clock.now())))
    sched.call_later(1, lambda: fired.append(("b", clock.now())))
    sched.call_later(-5, lambda: fired.append(("negative", clock.now())))
    sched.run_until_idle()

    assert fired == [("negative", 0), ("a", 1), ("b", 1), ("slow", 2)]


def test_cancel_before_deadline_prevents_run(sched: Scheduler) -> None:
    ran: list[str] = []
    handle = sched.call_later(1, lambda: ran.append("cancelled"))
    sched.call_later(2, lambda: ran.append("kept"))

    sched.cancel(handle)
    sched.cancel(handle)
    sched.run_until_idle()

    assert ran == ["kept"]
    assert handle.cancelled
    assert not handle.active


def test_cancel_from_earlier_timer(sched: Scheduler) -> None:
    ran: list[str] = []
    later = sched.call_later(5, lambda: ran.append("later"))
    sched.call_later(1, lambda: sched.cancel(later))
    sched.run_until_idle()

    assert ran == []


def test_cancel_after_fire_is_noop(sched: Scheduler) -> None:
    ran: list[int] = []
    handle = sched.call_later(1, lambda: ran.append(1))
    sched.run_until_idle()

    assert handle.fired
    assert not handle.active
    sched.cancel(handle)
    assert not handle.cancelled
    assert sched.pending() == 0
    assert ran == [1]


def test_call_every_until_cancelled_from_inside(sched: Scheduler, clock: VirtualClock) -> None:
    ticks: list[float] = []

    def tick() -> None:
        ticks.append(clock.now())
        if len(ticks) >= 3:
            sched.cancel(handle)

    handle = sched.call_every(0.3, tick)
    sched.run_until_idle()

    assert ticks == pytest.approx([0.3, 0.6, 0.9])
    assert handle.cancelled
    assert sched.pending() == 0


def test_interval_stays_active_between_firings(sched: Scheduler) -> None:
    seen: list[bool] = []

    def tick() -> None:
        seen.append(handle.active)

    handle = sched.call_every(1, tick)
    sched.call_later(3.5, lambda: sched.cancel(handle))
    sched.run_until_idle()

    assert seen == [True, True, True]


def test_negative_interval_rejected(sched: Scheduler) -> None:
    with pytest.raises(ValueError):
        sched.call_every(-1, lambda: None)


def test_failing_task_does_not_stop_loop(sched: Scheduler, errors: list) -> None:
    ran: list[str] = []

    def boom() -> None:
        raise RuntimeError("bad timer")

    sched.call_later(1, boom)
    sched.call_later(2, lambda: ran.append("after"))
    sched.call_soon(boom)
    sched.call_soon(lambda: ran.append("soon"))
    sched.run_until_idle()

    assert ran == ["soon", "after"]
    assert len(errors) == 2
    assert all(isinstance(e, TaskInvocationError) for e in errors)
    assert str(errors[0].exception) == "bad timer"
    assert errors[0].task is boom


def test_failing_interval_keeps_firing(sched: Scheduler, errors: list) -> None:
    calls = 0

    def tick() -> None:
        nonlocal calls
        calls += 1
        if calls >= 3:
            sched.cancel(handle)
        raise ValueError(calls)

    handle = sched.call_every(1, tick)
    sched.run_until_idle()

    assert calls == 3
    assert len(errors) == 3


def test_default_handler_logs_task_errors(sched: Scheduler, caplog: pytest.LogCaptureFixture) -> None:
    def boom() -> None:
        raise RuntimeError("logged")

    sched.call_soon(boom)
    with caplog.at_level(logging.ERROR, logger="microloop.scheduler"):
        sched.run_until_idle()

    assert "Uncaught error in task" in caplog.text
    assert "logged" in caplog.text


def test_raising_exception_handler_falls_back_to_logging(
    sched: Scheduler, caplog: pytest.LogCaptureFixture
) -> None:
    def handler(error) -> None:
        raise KeyError("handler broke")

    ran: list[str] = []
    sched.set_exception_handler(handler)
    sched.call_soon(lambda: 1 / 0)
    sched.call_soon(lambda: ran.append("still running"))
    with caplog.at_level(logging.ERROR, logger="microloop.scheduler"):
        sched.run_until_idle()

    assert ran == ["still running"]
    assert "Exception handler" in caplog.text
    assert "Uncaught error in task" in caplog.text


def test_nested_run_is_fatal(sched: Scheduler) -> None:
    sched.call_soon(sched.run_until_idle)
    with pytest.raises(SchedulerError):
        sched.run_until_idle()

    # The scheduler is usable again afterwards
    ran: list[int] = []
    sched.call_soon(lambda: ran.append(1))
    sched.run_until_idle()
    assert ran == [1]


def test_pending_counts_live_work(sched: Scheduler) -> None:
    sched.call_soon(lambda: None)
    handle = sched.call_later(1, lambda: None)
    sched.call_every(1, lambda: None)
    assert sched.pending() == 3

    sched.cancel(handle)
    assert sched.pending() == 2


def test_cancelled_timers_are_compacted(sched: Scheduler) -> None:
    ran: list[int] = []
    handles = [sched.call_later(i, lambda i=i: ran.append(i)) for i in range(100)]
    for handle in handles[:80]:
        sched.cancel(handle)

    assert len(sched.sleeping) < 100
    assert sched.pending() == 20

    sched.run_until_idle()
    assert ran == list(range(80, 100))


def test_real_clock_waits_for_deadline() -> None:
    sched = Scheduler()
    start = sched.now()
    fired: list[float] = []
    sched.call_later(0.02, lambda: fired.append(sched.now()))
    sched.run_until_idle()

    assert fired and fired[0] - start >= 0.019
