"""
A single-threaded cooperative scheduler with two queues.

``ready`` is a FIFO of zero-argument functions (continuations and zero-delay
work). ``sleeping`` is a heap of timers ordered by deadline, with an insertion
sequence number to break ties. The ready queue is always drained completely,
including anything added while draining, before the next timer is looked at,
so same-turn work runs before any timer no matter how short its delay.
"""

import heapq
import logging
from collections import deque
from typing import Callable, Deque, Dict, List, Optional, Tuple

from .clock import MonotonicClock
from .errors import LoopError, SchedulerError, TaskInvocationError, UnhandledRejection
from .future import create_deferred

logger = logging.getLogger(__name__)

# Rebuild the heap once more than this fraction of it is cancelled timers
_CANCELLED_FRACTION = 0.5
_MIN_CANCELLED_TIMERS = 64


class TimerHandle:
    """
    Returned by ``call_later`` and ``call_every``, only useful for cancelling.

    A one-shot handle goes inactive once its function has run. A repeating
    handle stays active across firings until it is cancelled.
    """

    def __init__(self, deadline: float, func: Callable[[], None], interval: Optional[float] = None):
        self.deadline = deadline
        self.func = func
        self.interval = interval
        self.cancelled = False
        self.fired = False
        self._scheduled = False  # Sitting in the heap right now

    @property
    def active(self) -> bool:
        if self.cancelled:
            return False
        return self.interval is not None or not self.fired

    def __repr__(self):
        kind = "every %s" % self.interval if self.interval is not None else "once"
        state = "active" if self.active else "inactive"
        return f"<TimerHandle {kind} deadline={self.deadline:.3f} {state} func={self.func!r}>"


class Scheduler:
    """
    This could also be called EventLoop. Nothing is a hidden singleton: the
    host program creates one, enqueues its top-level work and calls
    ``run_until_idle``.
    """

    def __init__(self, clock=None, report_unhandled: bool = True):
        self.clock = clock if clock is not None else MonotonicClock()
        self.ready: Deque[Callable[[], None]] = deque()  # Functions ready to execute
        self.sleeping: List[Tuple[float, int, TimerHandle]] = []  # Timers
        # This just breaks ties in prio queue
        self.sequence = 0
        self.report_unhandled = report_unhandled

        self._cancelled_timers = 0
        self._running = False
        self._exception_handler: Optional[Callable[[LoopError], None]] = None
        # Rejected futures nobody has attached to yet, keyed by id so order is kept
        self._unhandled: Dict[int, object] = {}

    def now(self) -> float:
        return self.clock.now()

    def pending(self) -> int:
        """Number of ready functions plus timers that can still fire."""
        return len(self.ready) + len(self.sleeping) - self._cancelled_timers

    def call_soon(self, func: Callable[[], None]):
        self.ready.append(func)

    def call_later(self, delay: float, func: Callable[[], None]) -> TimerHandle:
        """
        Run ``func`` once, no earlier than ``delay`` seconds from now. A zero or
        negative delay still waits for the ready queue to drain.
        """
        handle = TimerHandle(self.clock.now() + max(delay, 0), func)
        self._push(handle)
        return handle

    def call_every(self, interval: float, func: Callable[[], None]) -> TimerHandle:
        """
        Run ``func`` every ``interval`` seconds until the handle is cancelled,
        typically by ``func`` itself.
        """
        if interval < 0:
            raise ValueError(f"interval must be non-negative, got {interval}")
        handle = TimerHandle(self.clock.now() + interval, func, interval=interval)
        self._push(handle)
        return handle

    def cancel(self, handle: TimerHandle):
        # Idempotent: cancelling a fired or already cancelled timer does nothing
        if not handle.active:
            return
        handle.cancelled = True
        if handle._scheduled:
            # Left in the heap as a tombstone and skipped when popped
            self._cancelled_timers += 1
            self._maybe_compact()
        logger.debug("Cancelled %r", handle)

    def create_deferred(self):
        return create_deferred(self)

    def run_until_idle(self):
        """
        Run until both queues are empty. Call once all top-level work has been
        enqueued.
        """
        if self._running:
            raise SchedulerError("scheduler is already running")
        self._running = True
        try:
            while True:
                while self.ready:
                    func = self.ready.popleft()
                    self._invoke(func)

                self._report_unhandled()
                if self.ready:
                    # The exception handler scheduled more work
                    continue

                handle = self._pop_timer()
                if handle is None:
                    break
                # We can block here because nothing else is ready
                self.clock.sleep_until(handle.deadline)
                self._fire(handle)
        finally:
            self._running = False

    def set_exception_handler(self, handler: Optional[Callable[[LoopError], None]]):
        self._exception_handler = handler

    def get_exception_handler(self) -> Optional[Callable[[LoopError], None]]:
        return self._exception_handler

    def default_exception_handler(self, error: LoopError):
        if isinstance(error, TaskInvocationError):
            logger.error("Uncaught error in task %r", error.task, exc_info=error.exception)
        elif isinstance(error, UnhandledRejection):
            exc_info = error.reason if isinstance(error.reason, BaseException) else None
            logger.error("Unhandled rejection in %r: %r", error.future, error.reason, exc_info=exc_info)
        else:
            logger.error("%s", error)

    def call_exception_handler(self, error: LoopError):
        handler = self._exception_handler
        if handler is None:
            self.default_exception_handler(error)
            return
        try:
            handler(error)
        except Exception:
            logger.exception("Exception handler %r failed while handling %r", handler, error)
            self.default_exception_handler(error)

    def _invoke(self, func: Callable[[], None]):
        try:
            func()
        except SchedulerError:
            raise
        except Exception as exc:
            # One bad task never stops the loop
            self.call_exception_handler(TaskInvocationError(exc, func))

    def _push(self, handle: TimerHandle):
        self.sequence += 1
        handle._scheduled = True
        # Maintain sorted order by closest deadline
        heapq.heappush(self.sleeping, (handle.deadline, self.sequence, handle))

    def _pop_timer(self) -> Optional[TimerHandle]:
        while self.sleeping:
            _, _, handle = heapq.heappop(self.sleeping)
            handle._scheduled = False
            if handle.cancelled:
                self._cancelled_timers -= 1
                continue
            return handle
        return None

    def _fire(self, handle: TimerHandle):
        if handle.cancelled:
            return
        handle.fired = True
        self._invoke(handle.func)
        # The function may have cancelled its own interval
        if handle.interval is not None and not handle.cancelled:
            handle.deadline = self.clock.now() + handle.interval
            self._push(handle)

    def _maybe_compact(self):
        if self._cancelled_timers < _MIN_CANCELLED_TIMERS:
            return
        if self._cancelled_timers <= len(self.sleeping) * _CANCELLED_FRACTION:
            return
        live = []
        for entry in self.sleeping:
            if entry[2].cancelled:
                entry[2]._scheduled = False
            else:
                live.append(entry)
        heapq.heapify(live)
        logger.debug("Compacted timer heap from %d to %d entries", len(self.sleeping), len(live))
        self.sleeping = live
        self._cancelled_timers = 0

    def _track_rejection(self, future):
        self._unhandled[id(future)] = future

    def _forget_rejection(self, future):
        self._unhandled.pop(id(future), None)

    def _report_unhandled(self):
        if not self._unhandled:
            return
        futures = list(self._unhandled.values())
        self._unhandled.clear()
        if not self.report_unhandled:
            return
        for future in futures:
            future._handled = True
            self.call_exception_handler(UnhandledRejection(future.reason, future))
