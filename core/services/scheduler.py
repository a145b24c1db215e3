"""
Periodic roster refresh with an explicit start/stop lifecycle.

The scheduler owns a single timer task. Each tick issues a fetch as its own
task, so a slow backend never delays the cadence. Completions are applied
only if they belong to the current generation and are newer than anything
already applied.
"""

import asyncio
from enum import Enum
from types import TracebackType
from typing import Protocol

import structlog

from core.domain.models import Snapshot
from core.services.roster_fetcher import NetworkError, Result, RosterSource

logger = structlog.get_logger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class SnapshotSink(Protocol):
    """Receiver of fetch outcomes; the dashboard view model implements this."""

    def apply_snapshot(self, snapshot: Snapshot) -> None:
        ...

    def apply_failure(self, error: NetworkError) -> None:
        ...


class RefreshScheduler:
    """
    Drives a RosterSource on a fixed cadence and feeds a SnapshotSink.

    Lifecycle: IDLE -> RUNNING -> STOPPED (and back to RUNNING on restart).
    """

    def __init__(
        self,
        source: RosterSource,
        sink: SnapshotSink,
        interval_seconds: float = 5.0,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.source = source
        self.sink = sink
        self.interval_seconds = interval_seconds
        self.logger = logger.bind(component="refresh_scheduler", source=source.source_name)

        self._state = SchedulerState.IDLE
        self._generation = 0
        self._next_sequence = 0
        self._last_applied_sequence = 0
        self._tick_count = 0
        self._timer: asyncio.Task[None] | None = None
        self._in_flight: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def tick_count(self) -> int:
        """Number of fetches issued so far."""
        return self._tick_count

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    @property
    def last_applied_sequence(self) -> int:
        return self._last_applied_sequence

    def start(self) -> None:
        """Fetch immediately, then every ``interval_seconds`` until stopped."""
        if self._state == SchedulerState.RUNNING:
            raise RuntimeError("Scheduler is already running - call stop() first")

        self._state = SchedulerState.RUNNING
        self._issue_fetch()
        self._timer = asyncio.get_running_loop().create_task(
            self._run_timer(self._generation), name="roster-refresh-timer"
        )
        self.logger.info(
            "scheduler_started", interval_seconds=self.interval_seconds, generation=self._generation
        )

    def stop(self) -> None:
        """Cancel the timer; pending fetches finish but are no longer applied."""
        if self._state != SchedulerState.RUNNING:
            return

        self._state = SchedulerState.STOPPED
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
        self.logger.info(
            "scheduler_stopped", ticks=self._tick_count, abandoned_fetches=len(self._in_flight)
        )

    async def wait_for_in_flight(self) -> None:
        """Wait for every outstanding fetch task to finish (and the timer, once stopped)."""
        if self._state != SchedulerState.RUNNING and self._timer is not None:
            await asyncio.gather(self._timer, return_exceptions=True)
            self._timer = None
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def __aenter__(self) -> "RefreshScheduler":
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()

    async def _run_timer(self, generation: int) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.interval_seconds
        while self._state == SchedulerState.RUNNING and generation == self._generation:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            if generation != self._generation:
                return
            self._issue_fetch()
            next_tick += self.interval_seconds

    def _issue_fetch(self) -> None:
        self._next_sequence += 1
        self._tick_count += 1
        sequence = self._next_sequence
        self.logger.debug("refresh_tick", sequence=sequence, in_flight=len(self._in_flight))

        task = asyncio.get_running_loop().create_task(
            self._fetch_and_apply(sequence, self._generation),
            name=f"roster-fetch-{sequence}",
        )
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _fetch_and_apply(self, sequence: int, generation: int) -> None:
        try:
            result = await self.source.fetch_roster()
        except Exception as e:
            # A source broke its contract; keep polling
            self.logger.exception("roster_source_crashed", error=str(e), sequence=sequence)
            result = Result.err(NetworkError(f"Roster source failed unexpectedly: {e}"))

        if generation != self._generation:
            self.logger.info("stale_fetch_discarded", sequence=sequence, reason="stopped")
            return
        if sequence <= self._last_applied_sequence:
            self.logger.info(
                "stale_fetch_discarded",
                sequence=sequence,
                reason="superseded",
                applied_sequence=self._last_applied_sequence,
            )
            return

        self._last_applied_sequence = sequence
        if result.is_ok():
            snapshot = result.unwrap().model_copy(update={"sequence": sequence})
            self.sink.apply_snapshot(snapshot)
        else:
            self.sink.apply_failure(result.unwrap_err())
