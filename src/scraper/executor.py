"""
Single-thread scheduled executor.

Runs fixed-delay periodic tasks on one lazily started daemon thread:
the next run of a task is scheduled ``delay`` seconds after the previous
run *completes*, so a slow run pushes the next one back instead of
overlapping it. Tasks never run concurrently with each other.

Usage:
    executor = SingleThreadScheduledExecutor(name="metrics-scraper")
    task = executor.schedule_with_fixed_delay(tick, initial_delay=0, delay=60)
    ...
    task.cancel()
    executor.shutdown()
    if not executor.await_termination(1.0):
        executor.shutdown_now()
"""
import heapq
import itertools
import os
import threading
import time
from enum import Enum
from typing import Callable, List, Optional, Tuple

from src.common.exceptions import SchedulingError
from src.common.logging_config import get_logger

logger = get_logger(__name__)

# Highest niceness value on Linux, i.e. the lowest scheduling priority
MIN_PRIORITY_NICENESS = 19


class TaskState(Enum):
    """Scheduled task states"""
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    FAILED = "failed"


def lower_thread_priority() -> bool:
    """
    Drop the calling thread to the lowest OS scheduling priority.

    Linux applies ``setpriority(PRIO_PROCESS, tid)`` to a single thread.
    Returns False when the platform does not support it.
    """
    try:
        os.setpriority(
            os.PRIO_PROCESS, threading.get_native_id(), MIN_PRIORITY_NICENESS
        )
        return True
    except (AttributeError, OSError) as e:
        logger.debug(f"Could not lower thread priority: {e}")
        return False


class ScheduledTask:
    """
    Handle to a periodic task owned by a ``SingleThreadScheduledExecutor``.
    """

    def __init__(self, fn: Callable[[], None], delay: float, name: str):
        self._fn = fn
        self.delay = delay
        self.name = name
        self.run_count = 0
        self._state = TaskState.SCHEDULED
        self._lock = threading.Lock()

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._state is TaskState.CANCELLED

    @property
    def done(self) -> bool:
        """True once the task will never run again."""
        return self._state is not TaskState.SCHEDULED

    def cancel(self) -> bool:
        """
        Prevent any further runs of this task.

        A run that is already executing is left to finish.

        Returns:
            False if the task was already cancelled or has terminated
        """
        with self._lock:
            if self._state is not TaskState.SCHEDULED:
                return False
            self._state = TaskState.CANCELLED
        return True

    def _mark_failed(self) -> None:
        with self._lock:
            if self._state is TaskState.SCHEDULED:
                self._state = TaskState.FAILED

    def __repr__(self) -> str:
        return (
            f"ScheduledTask(name={self.name!r}, delay={self.delay}, "
            f"state={self._state.value}, runs={self.run_count})"
        )


class SingleThreadScheduledExecutor:
    """
    Runs periodic tasks one at a time on a single background thread.

    Args:
        name: Worker thread name
        lower_priority: Run the worker at minimum OS scheduling priority
    """

    def __init__(self, name: str = "metrics-scraper", lower_priority: bool = True):
        self.name = name
        self.lower_priority = lower_priority
        self._cond = threading.Condition()
        self._queue: List[Tuple[float, int, ScheduledTask]] = []
        self._seq = itertools.count()
        self._thread: Optional[threading.Thread] = None
        self._shutdown = False
        self._current: Optional[ScheduledTask] = None

    # -- Scheduling ---------------------------------------------------------

    def schedule_with_fixed_delay(
        self,
        fn: Callable[[], None],
        initial_delay: float,
        delay: float,
        name: Optional[str] = None
    ) -> ScheduledTask:
        """
        Schedule ``fn`` to run after ``initial_delay`` seconds, then
        repeatedly ``delay`` seconds after each run completes.

        Raises:
            ValueError: If ``delay`` is not positive
            SchedulingError: If the executor has been shut down
        """
        if delay <= 0:
            raise ValueError(f"delay must be positive, got {delay}")

        task = ScheduledTask(fn, delay, name or getattr(fn, "__name__", "task"))
        with self._cond:
            if self._shutdown:
                raise SchedulingError(
                    f"Executor '{self.name}' is shut down, rejected task {task.name}"
                )
            self._push(task, time.monotonic() + max(0.0, initial_delay))
            self._ensure_worker()
            self._cond.notify_all()

        logger.debug(
            f"Scheduled {task.name} (initial_delay={initial_delay}s, delay={delay}s)"
        )
        return task

    def _push(self, task: ScheduledTask, due: float) -> None:
        heapq.heappush(self._queue, (due, next(self._seq), task))

    def _ensure_worker(self) -> None:
        if self._thread is None:
            self._thread = threading.Thread(
                target=self._run_loop, name=self.name, daemon=True
            )
            self._thread.start()

    # -- Worker -------------------------------------------------------------

    def _run_loop(self) -> None:
        if self.lower_priority:
            lower_thread_priority()

        while True:
            task = self._next_task()
            if task is None:
                break
            self._execute(task)

        logger.debug(f"Executor thread {self.name} exiting")

    def _next_task(self) -> Optional[ScheduledTask]:
        """Block until a task is due, or return None on shutdown."""
        with self._cond:
            while True:
                if self._shutdown:
                    return None

                while self._queue and self._queue[0][2].done:
                    heapq.heappop(self._queue)

                if not self._queue:
                    self._cond.wait()
                    continue

                due, _, task = self._queue[0]
                remaining = due - time.monotonic()
                if remaining <= 0:
                    heapq.heappop(self._queue)
                    self._current = task
                    return task

                self._cond.wait(remaining)

    def _execute(self, task: ScheduledTask) -> None:
        try:
            task._fn()
        except Exception:
            logger.exception(
                f"Task {task.name} raised, no further runs will be scheduled"
            )
            task._mark_failed()
        finally:
            task.run_count += 1

        with self._cond:
            self._current = None
            if not task.done and not self._shutdown:
                self._push(task, time.monotonic() + task.delay)
            self._cond.notify_all()

    # -- Lifecycle ----------------------------------------------------------

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    @property
    def is_terminated(self) -> bool:
        return self._shutdown and (
            self._thread is None or not self._thread.is_alive()
        )

    @property
    def is_running_task(self) -> bool:
        return self._current is not None

    def shutdown(self) -> None:
        """
        Stop accepting new tasks. Pending periodic runs are dropped; a run
        that is executing right now is allowed to finish.
        """
        with self._cond:
            if self._shutdown:
                return
            self._shutdown = True
            self._cond.notify_all()
        logger.info(f"Executor {self.name} shutting down")

    def await_termination(self, timeout: float) -> bool:
        """
        Wait up to ``timeout`` seconds for the worker thread to exit.

        Returns:
            True if the worker is gone
        """
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def shutdown_now(self) -> List[ScheduledTask]:
        """
        Cancel every task, including the one running, and stop the executor.

        The worker thread is a daemon: if a run is stuck it is abandoned and
        dies with the process.

        Returns:
            Tasks that were waiting and never ran again
        """
        with self._cond:
            self._shutdown = True
            pending = [task for _, _, task in self._queue if not task.done]
            self._queue.clear()
            current = self._current
            self._cond.notify_all()

        for task in pending:
            task.cancel()
        if current is not None:
            current.cancel()
            logger.warning(
                f"Executor {self.name} forced down while {current.name} was running"
            )
        return pending
