"""
Fan-in over several futures, like asyncio.gather / asyncio.as_completed.

Inputs that are not futures count as futures already fulfilled with that
value. Every combinator attaches to every input, so an input rejection that a
combinator consumes is never reported as unhandled.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, List

from .future import Future, FutureState, create_deferred, resolved

if TYPE_CHECKING:
    from .scheduler import Scheduler


@dataclass(frozen=True)
class Outcome:
    """How one input to ``all_settled`` ended up."""

    status: FutureState
    value: Any = None
    reason: Any = None

    @property
    def fulfilled(self) -> bool:
        return self.status is FutureState.FULFILLED


def _as_futures(sched: "Scheduler", items: Iterable) -> List[Future]:
    return [resolved(sched, item) for item in items]


def all_of(sched: "Scheduler", items: Iterable) -> Future:
    """
    Fulfill with the list of values, in input order, once every input has
    fulfilled. Reject with the reason of the first input to reject; later
    settlements are ignored.
    """
    futures = _as_futures(sched, items)
    future, resolve, reject = create_deferred(sched)
    if not futures:
        resolve([])
        return future

    results: List[Any] = [None] * len(futures)
    remaining = len(futures)

    def on_fulfilled(index):
        def store(value):
            nonlocal remaining
            results[index] = value
            remaining -= 1
            if remaining == 0:
                resolve(results)

        return store

    for index, item in enumerate(futures):
        item.attach(on_fulfilled(index), reject)
    return future


def race(sched: "Scheduler", items: Iterable) -> Future:
    """
    Settle like whichever input settles first. Inputs that are already settled
    win in input order, because their continuations are queued in that order.
    With no inputs the result never settles.
    """
    future, resolve, reject = create_deferred(sched)
    for item in _as_futures(sched, items):
        item.attach(resolve, reject)
    return future


def all_settled(sched: "Scheduler", items: Iterable) -> Future:
    """
    Fulfill with one ``Outcome`` per input, in input order, once every input
    has settled. Never rejects.
    """
    futures = _as_futures(sched, items)
    future, resolve, _ = create_deferred(sched)
    if not futures:
        resolve([])
        return future

    outcomes: List[Any] = [None] * len(futures)
    remaining = len(futures)

    def record(index, outcome_for):
        def store(payload):
            nonlocal remaining
            outcomes[index] = outcome_for(payload)
            remaining -= 1
            if remaining == 0:
                resolve(outcomes)

        return store

    for index, item in enumerate(futures):
        item.attach(
            record(index, lambda value: Outcome(FutureState.FULFILLED, value=value)),
            record(index, lambda reason: Outcome(FutureState.REJECTED, reason=reason)),
        )
    return future
