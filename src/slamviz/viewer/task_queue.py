"""Deferred task queue drained by a rate-limited background thread.

Producers (the front-end and back-end callback threads) submit zero-argument
tasks and return immediately. A single scheduler thread drains the queue,
runs the tasks in submission order, then sleeps for whatever is left of a
fixed period. This keeps expensive visualization work (such as rebuilding the
global map) off the SLAM threads and bounds the output rate.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_PERIOD = 0.01  # 10 ms


class Task(Protocol):
    """One runnable unit of deferred work.

    A task must own the data it needs: its source may be replaced or dropped
    before the task runs.
    """

    def __call__(self) -> None: ...


class SchedulerShutdownError(RuntimeError):
    """The scheduler thread did not terminate within the join timeout."""


class TaskQueue:
    """FIFO of pending tasks.

    ``submit`` and ``drain`` hold the lock only to append or to detach the
    whole batch; tasks are never executed under the lock.
    """

    def __init__(self) -> None:
        self._tasks: list[Task] = []
        self._lock = threading.Lock()

    def submit(self, task: Task) -> None:
        with self._lock:
            self._tasks.append(task)

    def drain(self) -> list[Task]:
        """Detach and return all pending tasks in submission order."""
        with self._lock:
            tasks, self._tasks = self._tasks, []
        return tasks

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)


def throttle(
    period: float,
    elapsed: float,
    sleep: Callable[[float], None] = time.sleep,
) -> float:
    """Sleep for the remainder of ``period`` after ``elapsed`` seconds of work.

    An overrun is not carried over: when ``elapsed >= period`` nothing is
    slept and the next iteration starts immediately.

    Returns:
        The time requested from ``sleep`` (0.0 if none)
    """
    remaining = period - elapsed
    if remaining <= 0.0:
        return 0.0
    sleep(remaining)
    return remaining


class Scheduler:
    """Runs submitted tasks on a dedicated thread at a bounded rate.

    The thread starts on construction and runs until ``stop()``. Tasks still
    queued when ``stop()`` is called are not guaranteed to run.

    Example usage:
        with Scheduler(period=0.01) as scheduler:
            scheduler.submit(lambda: print("runs on the scheduler thread"))
    """

    def __init__(
        self,
        period: float = DEFAULT_PERIOD,
        join_timeout: float = 5.0,
        name: str = "slamviz-scheduler",
    ) -> None:
        """Start the scheduler thread.

        Args:
            period: Target iteration period in seconds
            join_timeout: Max time ``stop()`` waits for the thread to exit
            name: Thread name
        """
        self._period = period
        self._join_timeout = join_timeout
        self._queue = TaskQueue()
        self._stop_event = threading.Event()

        self.num_iterations = 0
        self.num_tasks_run = 0
        self.num_tasks_failed = 0

        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()
        logger.info("Scheduler started (period=%.1f ms)", period * 1000.0)

    @property
    def period(self) -> float:
        return self._period

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._stop_event.is_set()

    @property
    def thread(self) -> threading.Thread:
        return self._thread

    def submit(self, task: Task) -> None:
        """Queue a task for the scheduler thread. Never runs it inline."""
        if self._stop_event.is_set():
            logger.debug("Scheduler stopped; task %r will not run", task)
        self._queue.submit(task)

    def pending(self) -> int:
        """Number of tasks waiting for the next iteration."""
        return len(self._queue)

    def spin_once(self) -> int:
        """Drain the queue and run the batch in submission order.

        Returns:
            Number of tasks executed
        """
        tasks = self._queue.drain()
        for task in tasks:
            try:
                task()
            except Exception:
                self.num_tasks_failed += 1
                logger.exception("Deferred task %r failed", task)
        self.num_tasks_run += len(tasks)
        self.num_iterations += 1
        return len(tasks)

    def _run(self) -> None:
        while not self._stop_event.is_set():
            t1 = time.perf_counter()
            self.spin_once()
            elapsed = time.perf_counter() - t1
            throttle(self._period, elapsed)

    def stop(self, timeout: float | None = None) -> None:
        """Signal the thread to exit and wait for it.

        Raises:
            SchedulerShutdownError: If the thread is still alive after the
                join timeout
        """
        if self._stop_event.is_set() and not self._thread.is_alive():
            return

        self._stop_event.set()
        if threading.current_thread() is self._thread:
            # Called from a task; the loop exits after this iteration
            return

        self._thread.join(self._join_timeout if timeout is None else timeout)
        if self._thread.is_alive():
            logger.critical("Scheduler thread did not terminate; a task is blocking it")
            raise SchedulerShutdownError(
                f"Scheduler thread '{self._thread.name}' did not terminate"
            )

        if len(self._queue):
            logger.debug("Scheduler stopped with %d pending tasks", len(self._queue))
        logger.info("Scheduler stopped")

    def __enter__(self) -> Scheduler:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
