#!/usr/bin/env python3
"""
Steady-rate write load generator for the social media keyspace.

Drives two independent streams of writes, comments and likes, at fixed
per-second rates for a bounded duration, and logs progress every few
seconds.

Usage:
    socialbench-load [DURATION_SECONDS]

DURATION_SECONDS defaults to 300. Connection settings and rates come from
the environment (see socialbench.config).
"""

import argparse
import logging
import signal
import sys
import threading
from enum import Enum
from typing import Optional

from . import config
from .db import CqlSessionAdapter
from .errors import ConnectFailed, NoFixtureData, PrepareFailed, QueryFailed
from .events import EventFactory
from .pipeline import EventCounters, WritePipeline, prepare_statements
from .references import ReferenceCache
from .scheduler import FixedRateScheduler

log = logging.getLogger(__name__)


class GeneratorState(Enum):
    """Lifecycle of a load generator run."""
    INIT = "init"
    READY = "ready"
    RUNNING = "running"
    DRAINING = "draining"
    CLOSED = "closed"


class LoadGenerator:
    """
    Owns the scheduler, the write pipeline and the counters for one run.

    Call :meth:`initialize`, then :meth:`run` (or :meth:`start` followed by
    :meth:`wait` and :meth:`stop`). The terminate task and signal handlers
    only request a stop; the thread waiting in :meth:`run` does the drain.

    Args:
        adapter: Open CqlSessionAdapter (closed when the run ends)
        comment_rate: Comments per second, 0 disables the stream
        like_rate: Likes per second, 0 disables the stream
        reference_limit: Max users and posts loaded at startup
        report_interval: Seconds between progress lines
        report_initial_delay: Seconds before the first progress line
        drain_timeout: Seconds the shutdown waits for in-flight tasks
        rng: Optional random source for the event factory
    """

    def __init__(
        self,
        adapter,
        comment_rate: float = config.COMMENTS_PER_SECOND,
        like_rate: float = config.LIKES_PER_SECOND,
        reference_limit: int = config.REFERENCE_LIMIT,
        report_interval: float = config.REPORT_INTERVAL,
        report_initial_delay: float = config.REPORT_INITIAL_DELAY,
        drain_timeout: float = config.SHUTDOWN_DRAIN_TIMEOUT,
        rng=None,
    ):
        if comment_rate < 0 or like_rate < 0:
            raise ValueError(f"rates must not be negative (comments={comment_rate}, likes={like_rate})")

        self.adapter = adapter
        self.comment_rate = comment_rate
        self.like_rate = like_rate
        self.reference_limit = reference_limit
        self.report_interval = report_interval
        self.report_initial_delay = report_initial_delay
        self.drain_timeout = drain_timeout
        self.rng = rng

        self.counters = EventCounters()
        self.scheduler = FixedRateScheduler()
        self.references: Optional[ReferenceCache] = None
        self.factory: Optional[EventFactory] = None
        self.pipeline: Optional[WritePipeline] = None

        self._state = GeneratorState.INIT
        self._state_lock = threading.Lock()
        self._stop_requested = threading.Event()

    @property
    def state(self) -> GeneratorState:
        return self._state

    def initialize(self):
        """
        Prepare statements and load the reference cache.

        Raises:
            PrepareFailed, QueryFailed, NoFixtureData
        """
        self._require(GeneratorState.INIT)
        statements = prepare_statements(self.adapter)
        self.references = ReferenceCache.load(self.adapter, self.reference_limit)
        self.factory = EventFactory(self.references, self.rng)
        self.pipeline = WritePipeline(self.adapter, statements, self.counters)
        self._state = GeneratorState.READY

    def start(self, duration: float):
        """Launch the write, report and terminate tasks."""
        self._require(GeneratorState.READY)
        log.info(f"Starting write load generation for {duration} seconds")

        if self.comment_rate > 0:
            self.scheduler.schedule_at_fixed_rate("comment-fire", self.generate_comment, 1.0 / self.comment_rate)
        if self.like_rate > 0:
            self.scheduler.schedule_at_fixed_rate("like-fire", self.generate_like, 1.0 / self.like_rate)
        self.scheduler.schedule_once("terminate", self._on_duration_elapsed, duration)
        self.scheduler.schedule_at_fixed_rate(
            "report", self.report, self.report_interval, initial_delay=self.report_initial_delay,
        )
        self._state = GeneratorState.RUNNING

    def generate_comment(self):
        self.pipeline.write_comment(self.factory.make_comment())

    def generate_like(self):
        self.pipeline.write_like(self.factory.make_like())

    def report(self):
        comments, likes = self.counters.snapshot()
        log.info(
            f"Total comments: {comments}, Total likes: {likes} "
            f"(current rates: ~{self.comment_rate:g} comments/sec, ~{self.like_rate:g} likes/sec)"
        )

    def _on_duration_elapsed(self):
        self.request_stop("duration elapsed")

    def request_stop(self, reason: str = "stop requested"):
        """Ask the run to wind down. Safe from any thread or a signal handler."""
        if not self._stop_requested.is_set():
            log.info(f"Stopping load generation ({reason})")
            self._stop_requested.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until a stop is requested; returns False on timeout."""
        return self._stop_requested.wait(timeout)

    def stop(self):
        """Drain the scheduler, log the final totals and release the session."""
        with self._state_lock:
            if self._state in (GeneratorState.DRAINING, GeneratorState.CLOSED):
                return
            was_running = self._state is GeneratorState.RUNNING
            self._state = GeneratorState.DRAINING

        self._stop_requested.set()
        try:
            if was_running:
                self.scheduler.shutdown(self.drain_timeout)
                comments, likes = self.counters.snapshot()
                log.info(f"Final stats - Total comments: {comments}, Total likes: {likes}")
        finally:
            self.adapter.close()
            self._state = GeneratorState.CLOSED

    def run(self, duration: float):
        """Start, wait for the duration (or an earlier stop request), then stop."""
        try:
            self.start(duration)
            # Short waits keep the main thread responsive to signals.
            while not self.wait(0.5):
                pass
        finally:
            self.stop()

    def _require(self, expected: GeneratorState):
        if self._state is not expected:
            raise RuntimeError(f"Load generator is {self._state.value}, expected {expected.value}")


def parse_duration(value: Optional[str]) -> int:
    """
    Convert the command line duration to seconds.

    Missing values fall back to config.DEFAULT_DURATION; unparseable or
    non-positive values do too, with a warning.
    """
    if value is None:
        return config.DEFAULT_DURATION
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        log.warning(f"Invalid duration specified ({value!r}), using default of {config.DEFAULT_DURATION} seconds")
        return config.DEFAULT_DURATION
    if seconds <= 0:
        log.warning(f"Duration must be positive ({seconds}), using default of {config.DEFAULT_DURATION} seconds")
        return config.DEFAULT_DURATION
    return seconds


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Generate a steady comment and like write load against the social media keyspace'
    )
    parser.add_argument(
        'duration',
        nargs='?',
        default=None,
        help=f'Run length in seconds (default: {config.DEFAULT_DURATION})'
    )
    return parser.parse_args(argv)


def install_signal_handlers(generator: LoadGenerator):
    """
    Route SIGINT and SIGTERM to a stop request.

    Returns:
        The previous handlers, for restoring later
    """
    if threading.current_thread() is not threading.main_thread():
        return {}

    def _handle(signum, frame):
        generator.request_stop(f"received {signal.Signals(signum).name}")

    previous = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        previous[sig] = signal.signal(sig, _handle)
    return previous


def restore_signal_handlers(previous):
    for sig, handler in previous.items():
        signal.signal(sig, handler)


def main(argv=None) -> int:
    """Main entry point."""
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    args = parse_args(argv)
    duration = parse_duration(args.duration)

    try:
        with CqlSessionAdapter.open() as adapter:
            generator = LoadGenerator(adapter)
            generator.initialize()
            previous = install_signal_handlers(generator)
            try:
                generator.run(duration)
            finally:
                restore_signal_handlers(previous)
    except (ConnectFailed, PrepareFailed, QueryFailed, NoFixtureData) as e:
        log.critical(f"Startup failed: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
