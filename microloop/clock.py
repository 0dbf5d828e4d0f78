import time


class MonotonicClock:
    """
    Real time. Waiting for a deadline blocks the whole loop with ``time.sleep``,
    which is fine because nothing else is ready when the loop waits.
    """

    def now(self) -> float:
        return time.monotonic()

    def sleep_until(self, deadline: float):
        delta = deadline - time.monotonic()
        if delta > 0:
            time.sleep(delta)


class VirtualClock:
    """
    Logical time that only moves when the scheduler waits for a timer, or when
    someone calls ``advance``. Runs finish instantly and deterministically.
    """

    def __init__(self, start: float = 0.0):
        self._now = start

    def now(self) -> float:
        return self._now

    def sleep_until(self, deadline: float):
        # Never goes backwards, a late timer just runs at the current time
        if deadline > self._now:
            self._now = deadline

    def advance(self, delta: float):
        if delta < 0:
            raise ValueError("cannot move a clock backwards")
        self._now += delta

    def __repr__(self):
        return f"{self.__class__.__name__}(now={self._now})"
