"""
A small cooperative scheduler: a ready queue drained before a timer heap,
futures chained through continuations, gather-style combinators, and
pull-based lazy sequences.
"""

from .clock import MonotonicClock, VirtualClock
from .combinators import Outcome, all_of, all_settled, race
from .errors import (
    InvalidStateError,
    LoopError,
    MicroloopError,
    RejectedError,
    SchedulerError,
    TaskInvocationError,
    UnhandledRejection,
)
from .future import Future, FutureState, create_deferred, delay, rejected, resolved
from .lazy import LazySequence, SequenceState, Step, count_up_to, stream_ids
from .runner import Task, sleep, spawn
from .scheduler import Scheduler, TimerHandle

__version__ = "0.1.0"

__all__ = [
    "Future",
    "FutureState",
    "InvalidStateError",
    "LazySequence",
    "LoopError",
    "MicroloopError",
    "MonotonicClock",
    "Outcome",
    "RejectedError",
    "Scheduler",
    "SchedulerError",
    "SequenceState",
    "Step",
    "Task",
    "TaskInvocationError",
    "TimerHandle",
    "UnhandledRejection",
    "VirtualClock",
    "all_of",
    "all_settled",
    "count_up_to",
    "create_deferred",
    "delay",
    "race",
    "rejected",
    "resolved",
    "sleep",
    "spawn",
    "stream_ids",
]
