"""
A guided run of the ordering rules: synchronous code first, then ready-queue
continuations, then timers in deadline order.

python -m microloop
python -m microloop --real-time
"""

import argparse
import logging
from typing import Callable, List, Optional

from .clock import MonotonicClock, VirtualClock
from .combinators import all_of, all_settled, race
from .config import get_settings
from .future import create_deferred, delay, resolved
from .lazy import LazySequence, count_up_to, stream_ids
from .logging_setup import setup_logging
from .runner import spawn
from .scheduler import Scheduler

logger = logging.getLogger(__name__)

Emit = Callable[[str], None]


def fetch_with_callback(sched: Scheduler, callback: Callable[[str], None]):
    sched.call_later(1.5, lambda: callback("done via callback"))


def fetch_with_future(sched: Scheduler):
    return delay(sched, 1.5, "done via future")


def fetch_with_possible_error(sched: Scheduler, should_fail: bool):
    future, resolve, reject = create_deferred(sched)

    def finish():
        if should_fail:
            reject("something went wrong")
        else:
            resolve("all good")

    sched.call_later(0.8, finish)
    return future


def timers(sched: Scheduler, emit: Emit):
    sched.call_later(2, lambda: emit("timer is done (callback after 2s)"))

    ticks = 0

    def tick():
        nonlocal ticks
        ticks += 1
        emit(f"interval tick: {ticks}")
        if ticks >= 3:
            # Stop further ticks from inside the callback
            sched.cancel(handle)
            emit("interval cleared")

    handle = sched.call_every(0.3, tick)


def ordering(sched: Scheduler, emit: Emit):
    # Zero delay still loses to anything on the ready queue
    sched.call_later(0, lambda: emit("timer with zero delay"))
    resolved(sched, "continuation").attach(lambda text: emit(f"{text} before any timer"))
    sched.call_soon(lambda: emit("call_soon before any timer"))


def chaining(sched: Scheduler, emit: Emit):
    fetch_with_callback(sched, lambda text: emit(f"callback result: {text}"))

    def first(text):
        emit(f"future then: {text}")
        # Returning a future makes the next step wait for it
        return fetch_with_future(sched)

    fetch_with_future(sched).attach(first).attach(
        lambda text: emit(f"second then from chain: {text}")
    ).attach_catch(lambda err: emit(f"future error: {err}"))

    fetch_with_possible_error(sched, True).attach(
        lambda text: emit(f"will not run when should_fail=True: {text}")
    ).attach_catch(lambda err: emit(f"caught rejection: {err}")).attach_finally(
        lambda: emit("finally: cleanup or logging")
    )


def fan_in(sched: Scheduler, emit: Emit):
    all_of(sched, [fetch_with_future(sched), fetch_with_future(sched)]).attach(
        lambda results: emit(f"all_of results: {results}"),
        lambda err: emit(f"all_of rejected fast: {err}"),
    )

    def show_settled(outcomes):
        parts = [
            f"{o.status.value}={o.value if o.fulfilled else o.reason!r}" for o in outcomes
        ]
        emit(f"all_settled results: [{', '.join(parts)}]")

    all_settled(sched, [fetch_with_future(sched), fetch_with_possible_error(sched, True)]).attach(
        show_settled
    )

    race(sched, [fetch_with_future(sched), fetch_with_possible_error(sched, True)]).attach(
        lambda value: emit(f"race winner: {value}"),
        lambda err: emit(f"race error: {err}"),
    )


def coroutines(sched: Scheduler, emit: Emit):
    async def fetch_with_error_handling(should_fail: bool):
        try:
            result = await fetch_with_possible_error(sched, should_fail)
            emit(f"async/await success: {result}")
        except Exception as err:
            emit(f"async/await caught error: {err}")
        finally:
            emit("async/await: finished")

    async def load_in_parallel():
        # Start both before waiting on either
        first = fetch_with_future(sched)
        second = fetch_with_future(sched)
        a, b = await all_of(sched, [first, second])
        emit(f"parallel results: {a} {b}")

    spawn(sched, fetch_with_error_handling(False))
    spawn(sched, fetch_with_error_handling(True))
    spawn(sched, load_in_parallel())


def sequences(emit: Emit):
    counter = count_up_to(3)
    values = [counter.advance().value for _ in range(3)]
    emit(f"sequence values pulled one by one: {values}")
    emit(f"after the end: {counter.advance()}")

    for num in count_up_to(2):
        emit(f"sequence via loop: {num}")

    ids = stream_ids()
    emit(f"next ids: {[ids.advance().value for _ in range(3)]}")
    ids.close()

    def countdown(n):
        while n > 0:
            yield n
            n -= 1

    emit(f"generator-backed: {list(LazySequence.from_generator(countdown, 3))}")


def run_tour(sched: Scheduler, emit: Emit):
    start = sched.now()

    def stamped(line: str):
        emit(f"[{sched.now() - start:5.2f}s] {line}")

    timers(sched, stamped)
    ordering(sched, stamped)
    chaining(sched, stamped)
    fan_in(sched, stamped)
    coroutines(sched, stamped)

    # Synchronous code runs now, before anything queued above
    stamped("sync hello")
    stamped("sync hi")
    sequences(stamped)

    sched.run_until_idle()


def main(argv: Optional[List[str]] = None, emit: Emit = print) -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(prog="microloop", description=__doc__.strip().splitlines()[0])
    parser.add_argument(
        "--real-time",
        action="store_true",
        default=settings.real_time,
        help="sleep between timers instead of jumping a virtual clock",
    )
    parser.add_argument("--log-level", default=settings.log_level, help="console log level")
    args = parser.parse_args(argv)

    level = logging.getLevelName(args.log_level.upper())
    setup_logging(level if isinstance(level, int) else logging.INFO, settings.log_file)

    clock = MonotonicClock() if args.real_time else VirtualClock()
    sched = Scheduler(clock=clock, report_unhandled=settings.report_unhandled)
    logger.debug("Running tour with %r", clock)
    run_tour(sched, emit)
    return 0
