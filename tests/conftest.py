# tests/conftest.py

from __future__ import annotations

import pytest

from microloop import Scheduler, VirtualClock


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def sched(clock: VirtualClock) -> Scheduler:
    return Scheduler(clock=clock)


@pytest.fixture
def errors(sched: Scheduler) -> list:
    """Collects everything the loop reports instead of logging it."""
    seen: list = []
    sched.set_exception_handler(seen.append)
    return seen
