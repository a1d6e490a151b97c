"""
Fixed-rate task scheduling on plain threads.

Every scheduled task gets its own daemon thread, so a task never runs
concurrently with itself while different tasks run side by side. Fire ``n``
of a periodic task targets ``t0 + initial_delay + n * period`` on the
monotonic clock, independent of how long earlier fires took.
"""

import logging
import threading
import time
from typing import Callable, List, Optional

from . import config

log = logging.getLogger(__name__)


class ScheduledTask:
    """One periodic or one-shot task and the thread that drives it."""

    def __init__(
        self,
        name: str,
        fn: Callable[[], object],
        period: Optional[float],
        initial_delay: float,
        stop_event: threading.Event,
        max_missed_ticks: int,
    ):
        self.name = name
        self.fn = fn
        self.period = period
        self.initial_delay = max(0.0, initial_delay)
        self.max_missed_ticks = max_missed_ticks
        self.fire_count = 0
        self.error_count = 0
        self.dropped_ticks = 0
        self._stop_event = stop_event
        self.thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def is_periodic(self) -> bool:
        return self.period is not None

    def start(self):
        self.thread.start()

    def is_alive(self) -> bool:
        return self.thread.is_alive()

    def _run(self):
        start = time.monotonic() + self.initial_delay
        tick = 0
        while True:
            target = start + tick * self.period if self.is_periodic else start
            delay = target - time.monotonic()
            if delay > 0:
                if self._stop_event.wait(delay):
                    return
            elif self._stop_event.is_set():
                return

            self._fire()
            if not self.is_periodic:
                return

            tick += 1
            # Index of the first tick still in the future.
            due = int((time.monotonic() - start) // self.period) + 1
            if due - tick > self.max_missed_ticks:
                dropped = due - tick
                self.dropped_ticks += dropped
                log.warning(f"Task '{self.name}' fell {dropped} ticks behind; dropping backlog")
                tick = due

    def _fire(self):
        self.fire_count += 1
        try:
            self.fn()
        except Exception:
            self.error_count += 1
            log.exception(f"Task '{self.name}' failed; continuing on next tick")


class FixedRateScheduler:
    """
    Runs callables at a fixed rate or once after a delay.

    Args:
        max_missed_ticks: Backlog bound for tasks that overrun their period;
            beyond it missed ticks are dropped instead of run back-to-back
    """

    def __init__(self, max_missed_ticks: int = config.MAX_MISSED_TICKS):
        self.max_missed_ticks = max_missed_ticks
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._tasks: List[ScheduledTask] = []

    @property
    def tasks(self) -> List[ScheduledTask]:
        return list(self._tasks)

    @property
    def is_shutdown(self) -> bool:
        return self._stop_event.is_set()

    def schedule_at_fixed_rate(
        self,
        name: str,
        fn: Callable[[], object],
        period: float,
        initial_delay: float = 0.0,
    ) -> ScheduledTask:
        """
        Run ``fn`` every ``period`` seconds, first after ``initial_delay``.

        Raises:
            ValueError: period is not positive
            RuntimeError: the scheduler has been shut down
        """
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        return self._submit(ScheduledTask(
            name, fn, period, initial_delay, self._stop_event, self.max_missed_ticks,
        ))

    def schedule_once(self, name: str, fn: Callable[[], object], delay: float) -> ScheduledTask:
        """Run ``fn`` once after ``delay`` seconds."""
        return self._submit(ScheduledTask(
            name, fn, None, delay, self._stop_event, self.max_missed_ticks,
        ))

    def _submit(self, task: ScheduledTask) -> ScheduledTask:
        with self._lock:
            if self._stop_event.is_set():
                raise RuntimeError(f"Cannot schedule '{task.name}': scheduler is shut down")
            self._tasks.append(task)
            task.start()
        log.debug(f"Scheduled task '{task.name}' (period={task.period}, delay={task.initial_delay})")
        return task

    def shutdown(self, timeout: float = config.SHUTDOWN_DRAIN_TIMEOUT) -> bool:
        """
        Stop new fires and wait up to ``timeout`` seconds for running ones.

        Threads still busy after the timeout are abandoned; they are daemons
        and never fire again once their current call returns.

        Returns:
            True if every task finished within the timeout
        """
        with self._lock:
            self._stop_event.set()
            tasks = list(self._tasks)

        current = threading.current_thread()
        deadline = time.monotonic() + timeout
        stuck = []
        for task in tasks:
            if task.thread is current:
                continue
            task.thread.join(max(0.0, deadline - time.monotonic()))
            if task.is_alive():
                stuck.append(task.name)

        if stuck:
            log.warning(f"Scheduler drain timed out after {timeout}s; cancelling tasks: {', '.join(stuck)}")
            return False
        return True
