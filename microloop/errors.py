"""
Exceptions raised or reported by the scheduler.

Only ``SchedulerError`` is ever fatal. ``LoopError`` subclasses are
diagnostics: the run loop builds them and hands them to its exception handler
instead of raising them.
"""


class MicroloopError(Exception):
    pass


class SchedulerError(MicroloopError):
    """The scheduler's own bookkeeping was misused, e.g. a nested run."""


class LoopError(MicroloopError):
    pass


class TaskInvocationError(LoopError):
    def __init__(self, exception: BaseException, task):
        super().__init__(f"uncaught error in task {task!r}: {exception!r}")
        self.exception = exception
        self.task = task


class UnhandledRejection(LoopError):
    def __init__(self, reason, future):
        super().__init__(f"unhandled rejection in {future!r}: {reason!r}")
        self.reason = reason
        self.future = future


class RejectedError(MicroloopError):
    """
    Raised in place of a rejection reason that is not itself an exception, so
    ``future.result()`` and ``await future`` always have something to raise.
    """

    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


class InvalidStateError(MicroloopError):
    """The result of a future that has not settled yet was asked for."""
