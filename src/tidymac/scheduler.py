"""Bounded-concurrency execution of filesystem work.

Unbounded parallel I/O exhausts file descriptors and saturates disk queues, so
every fan-out in tidymac goes through :class:`BoundedExecutor`, which keeps at
most ``max_workers`` items in flight. Workers only compute and return values;
outcomes are collected, and progress reported, on the calling thread.
"""

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Generic, Iterator, Optional, Sequence, TypeVar, Union

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ProgressCallback = Callable[[float, str], None]  # (fraction, status message)

# Bounds how long the collector sleeps before servicing on_tick again
TICK_SECONDS = 0.05


class CancellationToken:
    """Cooperative cancellation flag shared by a caller and its workers."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def is_cancelled(token: Optional[CancellationToken]) -> bool:
    return token is not None and token.cancelled


@dataclass(frozen=True)
class Completed(Generic[T, R]):
    item: T
    value: R

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failed(Generic[T]):
    item: T
    error: Exception

    @property
    def ok(self) -> bool:
        return False


Outcome = Union[Completed[T, R], Failed[T]]


class BoundedExecutor:
    """Run a worker over a sequence of items with a fixed in-flight cap."""

    def __init__(self, max_workers: int, name: str = "tidymac"):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self.name = name

    def run(
        self,
        items: Sequence[T],
        worker: Callable[[T], R],
        on_progress: Optional[ProgressCallback] = None,
        describe: Optional[Callable[["Outcome[T, R]", int, int], str]] = None,
        cancel: Optional[CancellationToken] = None,
        on_tick: Optional[Callable[[], None]] = None,
    ) -> list["Outcome[T, R]"]:
        """
        Execute ``worker`` for every item and collect the outcomes.

        Args:
            items: Work items; dispatched in order, completed in any order
            worker: Function run on a pool thread; exceptions become Failed
            on_progress: Optional callback(fraction, message) after each completion
            describe: Optional callback(outcome, completed, total) building the message
            cancel: Optional token; once set, nothing new is dispatched
            on_tick: Optional hook run on the collecting thread while waiting

        Returns:
            Outcomes for every dispatched item, in completion order
        """
        total = len(items)
        outcomes: list[Outcome[T, R]] = []
        if total == 0:
            return outcomes

        pending: Iterator[T] = iter(items)
        in_flight: dict[Future, T] = {}
        completed = 0

        with ThreadPoolExecutor(
            max_workers=min(self.max_workers, total),
            thread_name_prefix=self.name,
        ) as pool:

            def dispatch() -> None:
                while len(in_flight) < self.max_workers and not is_cancelled(cancel):
                    try:
                        item = next(pending)
                    except StopIteration:
                        return
                    in_flight[pool.submit(worker, item)] = item

            dispatch()
            while in_flight:
                done, _ = wait(list(in_flight), timeout=TICK_SECONDS, return_when=FIRST_COMPLETED)
                if on_tick:
                    on_tick()

                for future in done:
                    item = in_flight.pop(future)
                    try:
                        outcome: Outcome[T, R] = Completed(item, future.result())
                    except Exception as e:
                        log.debug("Work item %r failed: %s", item, e)
                        outcome = Failed(item, e)
                    outcomes.append(outcome)
                    completed += 1

                    if on_progress:
                        message = (
                            describe(outcome, completed, total)
                            if describe
                            else f"Processed {completed}/{total}"
                        )
                        on_progress(completed / total, message)

                dispatch()

        if on_tick:
            on_tick()
        if is_cancelled(cancel) and completed < total:
            log.info("%s: cancelled after %d of %d items", self.name, completed, total)
        return outcomes


def completed_values(outcomes: list["Outcome[T, R]"]) -> list[R]:
    """Values of the successful outcomes."""
    return [o.value for o in outcomes if isinstance(o, Completed)]
