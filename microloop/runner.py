"""
Drive coroutines on the scheduler, so ``async def`` code can ``await`` futures.

Wherever you see async/await, there's a yield statement underneath it
somewhere. ``Future.__await__`` yields the future itself up to the task
driving the coroutine. The task attaches to the future and walks away; the
continuation sends the value (or throws the reason) back into the coroutine
once the future settles. Plain generators that yield futures are driven the
same way.
"""

import logging
from typing import Any, Coroutine, Generator, Optional, Union

from .future import Future, as_exception, create_deferred, delay

logger = logging.getLogger(__name__)

Driveable = Union[Coroutine, Generator]


class Task:
    """
    Wrapper class around a coroutine, to make it "look like" a callback. Each
    step is a ready-queue function; ``future`` settles with the coroutine's
    return value or the exception it raises.
    """

    def __init__(self, sched, coro: Driveable):
        if not (hasattr(coro, "send") and hasattr(coro, "throw")):
            raise TypeError(f"coroutine or generator expected, got {coro!r}")
        self.sched = sched
        self.coro = coro
        self.future, self._resolve, self._reject = create_deferred(sched)
        sched.call_soon(self.step)

    def step(self, value: Any = None, exc: Optional[BaseException] = None):
        try:
            # Advance the coroutine to its next yield point
            if exc is not None:
                yielded = self.coro.throw(exc)
            else:
                yielded = self.coro.send(value)
        except StopIteration as stop:
            self._resolve(stop.value)
            return
        except Exception as error:
            logger.debug("%r raised %r", self, error)
            self._reject(error)
            return

        if isinstance(yielded, Future):
            # Resume when the future settles, not before
            yielded.attach(self._send, self._throw)
        else:
            # Bare yield or a plain value: come back around on the next turn
            self.sched.call_soon(lambda: self.step(yielded))

    def _send(self, value):
        self.step(value)

    def _throw(self, reason):
        self.step(exc=as_exception(reason))

    def __repr__(self):
        return f"<Task coro={self.coro!r} {self.future.state.value}>"


def spawn(sched, coro: Driveable) -> Future:
    """Start driving ``coro`` on the next turn and return its result future."""
    return Task(sched, coro).future


async def sleep(sched, seconds: float):
    await delay(sched, seconds)
