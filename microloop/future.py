"""
Futures settled through deferreds, chained through continuations.

A future starts pending and settles exactly once, to fulfilled with a value or
to rejected with a reason. Continuations never run synchronously: attaching to
a settled future, or settling a future that has continuations, only puts them
on the scheduler's ready queue, in attachment order.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Tuple

from .errors import InvalidStateError, RejectedError

if TYPE_CHECKING:
    from .scheduler import Scheduler


class FutureState(str, Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


def as_exception(reason) -> BaseException:
    if isinstance(reason, BaseException):
        return reason
    return RejectedError(reason)


class Future:
    def __init__(self, sched: "Scheduler"):
        self._sched = sched
        self._state = FutureState.PENDING
        self._value: Any = None
        self._reason: Any = None
        self._callbacks: List[Callable[[], None]] = []
        # Someone has attached, so a rejection is not reported as unhandled
        self._handled = False

    @property
    def state(self) -> FutureState:
        return self._state

    @property
    def value(self):
        return self._value

    @property
    def reason(self):
        return self._reason

    def done(self) -> bool:
        return self._state is not FutureState.PENDING

    def result(self):
        """
        Return the value, raise the reason, or raise InvalidStateError while
        still pending. Same idea as ``Result.result()`` in callback code.
        """
        if self._state is FutureState.FULFILLED:
            return self._value
        if self._state is FutureState.REJECTED:
            raise as_exception(self._reason)
        raise InvalidStateError(f"{self!r} has not settled yet")

    def attach(
        self,
        on_fulfilled: Optional[Callable[[Any], Any]] = None,
        on_rejected: Optional[Callable[[Any], Any]] = None,
    ) -> "Future":
        """
        Register continuations and return a new future for their outcome.

        The handler matching the outcome gets the value or reason. Whatever it
        returns fulfills the new future, unless it returns a future, in which
        case the new future follows that one. If it raises, the new future
        rejects with the exception. A missing handler passes the outcome
        through unchanged, so a rejection travels down the chain to the first
        ``on_rejected``.
        """
        derived, resolve, reject = create_deferred(self._sched)

        def run():
            if self._state is FutureState.FULFILLED:
                handler, payload, passthrough = on_fulfilled, self._value, resolve
            else:
                handler, payload, passthrough = on_rejected, self._reason, reject
            if handler is None:
                passthrough(payload)
                return
            try:
                outcome = handler(payload)
            except Exception as exc:
                reject(exc)
                return
            resolve(outcome)

        self._add_callback(run)
        return derived

    def attach_catch(self, on_rejected: Callable[[Any], Any]) -> "Future":
        return self.attach(None, on_rejected)

    def attach_finally(self, on_settle: Callable[[], Any]) -> "Future":
        """
        Run ``on_settle()`` on either outcome, then pass the original outcome
        through. If ``on_settle`` raises, the chain rejects with that instead.
        If it returns a future, the original outcome waits for it.
        """

        def passthrough(_):
            outcome = on_settle()
            if isinstance(outcome, Future):
                # Adopting self hands on the original outcome
                return outcome.attach(lambda _: self)
            return self

        return self.attach(passthrough, passthrough)

    def __await__(self):
        # The runner resumes us once the future has settled
        yield self
        return self.result()

    def __repr__(self):
        if self._state is FutureState.FULFILLED:
            return f"<Future fulfilled value={self._value!r}>"
        if self._state is FutureState.REJECTED:
            return f"<Future rejected reason={self._reason!r}>"
        return "<Future pending>"

    def _add_callback(self, func: Callable[[], None]):
        self._handled = True
        if self._state is FutureState.PENDING:
            self._callbacks.append(func)
        else:
            self._sched._forget_rejection(self)
            self._sched.call_soon(func)

    def _settle(self, state: FutureState, payload) -> bool:
        if self._state is not FutureState.PENDING:
            return False
        self._state = state
        if state is FutureState.FULFILLED:
            self._value = payload
        else:
            self._reason = payload
            if not self._handled:
                self._sched._track_rejection(self)

        callbacks, self._callbacks = self._callbacks, []
        for func in callbacks:
            self._sched.call_soon(func)
        return True

    def _adopt(self, other: "Future"):
        def copy():
            if other._state is FutureState.FULFILLED:
                self._settle(FutureState.FULFILLED, other._value)
            else:
                self._settle(FutureState.REJECTED, other._reason)

        other._add_callback(copy)


def create_deferred(sched: "Scheduler") -> Tuple[Future, Callable, Callable]:
    """
    Return ``(future, resolve, reject)``. The first call to either function
    wins and every later call is ignored, even if the first one was a
    ``resolve`` with a future that has not settled yet.
    """
    future = Future(sched)
    locked = False

    def resolve(value=None):
        nonlocal locked
        if locked:
            return
        locked = True
        if value is future:
            future._settle(FutureState.REJECTED, TypeError("chaining cycle detected for future"))
        elif isinstance(value, Future):
            future._adopt(value)
        else:
            future._settle(FutureState.FULFILLED, value)

    def reject(reason=None):
        nonlocal locked
        if locked:
            return
        locked = True
        future._settle(FutureState.REJECTED, reason)

    return future, resolve, reject


def resolved(sched: "Scheduler", value=None) -> Future:
    if isinstance(value, Future):
        return value
    future, resolve, _ = create_deferred(sched)
    resolve(value)
    return future


def rejected(sched: "Scheduler", reason) -> Future:
    future, _, reject = create_deferred(sched)
    reject(reason)
    return future


def delay(sched: "Scheduler", seconds: float, value=None) -> Future:
    """A future fulfilled with ``value`` by a timer ``seconds`` from now."""
    future, resolve, _ = create_deferred(sched)
    sched.call_later(seconds, lambda: resolve(value))
    return future
