# tests/test_lazy.py

from __future__ import annotations

import sys

import pytest

from microloop import LazySequence, SequenceState, Step, count_up_to, stream_ids


def test_finite_sequence_then_done_forever() -> None:
    seq = count_up_to(3)
    assert seq.state is SequenceState.CREATED

    assert seq.advance() == Step(1, False)
    assert seq.state is SequenceState.SUSPENDED
    assert seq.advance() == Step(2, False)
    assert seq.advance() == Step(3, False)
    assert seq.advance() == Step(None, True)
    assert seq.advance() == Step(None, True)
    assert seq.done
    assert seq.state is SequenceState.COMPLETED


def test_infinite_sequence_keeps_constant_state() -> None:
    seq = stream_ids()
    first = seq.advance()
    size_after_one = sys.getsizeof(seq._cursor)

    values = [first.value] + [seq.advance().value for _ in range(999)]

    assert values == list(range(1, 1001))
    assert not seq.done
    # Only the cursor is kept, nothing is buffered
    assert sys.getsizeof(seq._cursor) == size_after_one
    assert seq.__dict__.keys() == {"_step", "_cursor", "_state", "_on_close"}


def test_step_is_not_called_until_advance() -> None:
    calls: list[int] = []

    def step(n):
        calls.append(n)
        return n, n + 1

    seq = LazySequence(step, 10)
    assert calls == []
    seq.advance()
    seq.advance()
    # Resumes from the cursor, never from scratch
    assert calls == [10, 11]


def test_iteration_protocol() -> None:
    assert list(count_up_to(2)) == [1, 2]
    assert [n for n, _ in zip(stream_ids(5), range(3))] == [5, 6, 7]


def test_from_generator_is_lazy_and_closes() -> None:
    log: list[str] = []

    def countdown(n):
        log.append("started")
        try:
            while n > 0:
                yield n
                n -= 1
        finally:
            log.append("closed")

    seq = LazySequence.from_generator(countdown, 3)
    assert log == []

    assert seq.advance() == Step(3, False)
    assert log == ["started"]
    seq.close()
    assert log == ["started", "closed"]
    assert seq.advance() == Step(None, True)


def test_from_generator_runs_to_completion() -> None:
    def pair():
        yield "a"
        yield "b"

    seq = LazySequence.from_generator(pair)
    assert [seq.advance() for _ in range(4)] == [
        Step("a", False),
        Step("b", False),
        Step(None, True),
        Step(None, True),
    ]


def test_close_is_idempotent() -> None:
    seq = stream_ids()
    seq.advance()
    seq.close()
    seq.close()

    assert seq.done
    assert seq.advance() == Step(None, True)


def test_failing_step_completes_sequence() -> None:
    def step(n):
        if n == 2:
            raise RuntimeError("broken producer")
        return n, n + 1

    seq = LazySequence(step, 1)
    assert seq.advance() == Step(1, False)
    with pytest.raises(RuntimeError):
        seq.advance()
    assert seq.done
    assert seq.advance() == Step(None, True)


def test_reentrant_advance_is_refused() -> None:
    holder: list[LazySequence] = []

    def step(n):
        holder[0].advance()
        return n, n

    seq = LazySequence(step, 0)
    holder.append(seq)
    with pytest.raises(ValueError):
        seq.advance()
