"""
Pull-based sequences that hand out one value per ``advance()`` call.

A sequence is defined by a step function ``step(cursor)`` returning
``(value, next_cursor)``, or ``None`` once there is nothing left. Only the
cursor is kept between calls, so nothing is precomputed and an endless
sequence costs the same memory after a million values as after one. Python
generators fit the same mold through ``LazySequence.from_generator``: a
suspended generator frame is just a cursor we don't get to look at.
"""

import logging
from enum import Enum
from typing import Any, Callable, Generator, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)

StepFn = Callable[[Any], Optional[Tuple[Any, Any]]]


class Step(NamedTuple):
    value: Any
    done: bool


class SequenceState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    SUSPENDED = "suspended"
    COMPLETED = "completed"


_EXHAUSTED = Step(None, True)


class LazySequence:
    def __init__(self, step: StepFn, initial: Any = None):
        self._step = step
        self._cursor = initial
        self._state = SequenceState.CREATED
        self._on_close: Optional[Callable[[], None]] = None

    @classmethod
    def from_generator(cls, factory: Callable[..., Generator], *args, **kwargs) -> "LazySequence":
        """
        Wrap ``factory(*args, **kwargs)``. The generator isn't created until
        the first ``advance()``.
        """
        gen: Optional[Generator] = None

        def step(_):
            nonlocal gen
            if gen is None:
                gen = factory(*args, **kwargs)
            try:
                return next(gen), None
            except StopIteration:
                return None

        def close_generator():
            if gen is not None:
                gen.close()

        seq = cls(step)
        seq._on_close = close_generator
        return seq

    @property
    def state(self) -> SequenceState:
        return self._state

    @property
    def done(self) -> bool:
        return self._state is SequenceState.COMPLETED

    def advance(self) -> Step:
        """
        Compute the next value. After the sequence is exhausted every call
        returns ``Step(None, True)``.
        """
        if self._state is SequenceState.COMPLETED:
            return _EXHAUSTED
        if self._state is SequenceState.RUNNING:
            raise ValueError("sequence already running")

        self._state = SequenceState.RUNNING
        try:
            produced = self._step(self._cursor)
        except BaseException:
            # A failing step ends the sequence, same as an exception in a generator
            self._finish()
            raise
        if produced is None:
            self._finish()
            return _EXHAUSTED

        value, self._cursor = produced
        self._state = SequenceState.SUSPENDED
        return Step(value, False)

    def close(self):
        if self._state is SequenceState.RUNNING:
            raise ValueError("sequence already running")
        if self._state is not SequenceState.COMPLETED:
            self._finish()

    def _finish(self):
        self._state = SequenceState.COMPLETED
        self._cursor = None
        if self._on_close is not None:
            on_close, self._on_close = self._on_close, None
            on_close()
        logger.debug("Sequence %r completed", self)

    def __iter__(self):
        return self

    def __next__(self):
        value, done = self.advance()
        if done:
            raise StopIteration
        return value

    def __repr__(self):
        return f"<LazySequence {self._state.value} step={self._step!r}>"


def count_up_to(maximum: int) -> LazySequence:
    """1, 2, ..., maximum, then done."""
    return LazySequence(lambda current: (current, current + 1) if current <= maximum else None, 1)


def stream_ids(start: int = 1) -> LazySequence:
    """start, start + 1, ... forever."""
    return LazySequence(lambda current: (current, current + 1), start)
