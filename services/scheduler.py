"""
Snapshot Scheduler

Owns the polling timer and fans out one SnapshotTask per instrument on every tick.

Lifecycle:
    start()         -> runs a first cycle immediately, then one per interval
    request_stop()  -> asks the loop to exit (safe to call from a signal handler)
    stop()          -> stops the loop, waits up to shutdown_grace_seconds for
                       in-flight cycles, then cancels whatever is left

Cycles are not serialized: if a cycle is still running when the next tick fires,
both run side by side, even when they write to the same destination. Every
launched task is tracked until it finishes, so shutdown knows exactly what it
is waiting for or abandoning.
"""

import asyncio
from typing import List, Optional, Sequence, Set

from core.logging import get_logger
from core.schemas import InstrumentTarget
from services.snapshot_task import SnapshotTask


class SnapshotScheduler:
    """
    Fixed-interval fan-out loop over the configured instruments.

    Attributes:
        targets: Instruments sampled on every cycle
        interval_seconds: Timer period
        shutdown_grace_seconds: Drain time for in-flight cycles on stop (0 = cancel immediately)
        cycles_started: Number of cycles launched so far

    Example:
        >>> scheduler = SnapshotScheduler(SnapshotTask(client, sink), targets, interval_seconds=60)
        >>> await scheduler.start()
        >>> ...
        >>> await scheduler.stop()
    """

    def __init__(
        self,
        task: SnapshotTask,
        targets: Sequence[InstrumentTarget],
        interval_seconds: float = 60.0,
        shutdown_grace_seconds: float = 10.0
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        if shutdown_grace_seconds < 0:
            raise ValueError(f"shutdown_grace_seconds must not be negative, got {shutdown_grace_seconds}")

        self._logger = get_logger(__name__)
        self._task = task
        self.targets = tuple(targets)
        self.interval_seconds = interval_seconds
        self.shutdown_grace_seconds = shutdown_grace_seconds
        self.cycles_started = 0

        self._stop_requested = asyncio.Event()
        self._loop_task: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()

    # ============================================
    # Lifecycle
    # ============================================

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def in_flight(self) -> int:
        """Number of snapshot tasks currently running"""
        return len(self._in_flight)

    async def start(self) -> None:
        if self.is_running:
            return
        self._stop_requested.clear()
        self._logger.info(
            f"Starting snapshot scheduler: {len(self.targets)} instrument(s), "
            f"interval {self.interval_seconds}s"
        )
        self._loop_task = asyncio.create_task(self._run(), name="snapshot_scheduler")

    def request_stop(self) -> None:
        """Ask the loop to exit. Does not wait; call stop() to drain."""
        if not self._stop_requested.is_set():
            self._logger.info("Shutdown requested")
        self._stop_requested.set()

    async def wait_for_stop_request(self) -> None:
        await self._stop_requested.wait()

    async def stop(self) -> None:
        """
        Stop the timer loop and settle in-flight cycles.

        In-flight tasks get shutdown_grace_seconds to finish; the rest are
        cancelled and awaited, so no task outlives this call.
        """
        self.request_stop()

        if self._loop_task is not None:
            await self._loop_task
            self._loop_task = None

        pending = set(self._in_flight)
        if pending and self.shutdown_grace_seconds > 0:
            self._logger.info(
                f"Waiting up to {self.shutdown_grace_seconds}s for {len(pending)} in-flight task(s)"
            )
            _, pending = await asyncio.wait(pending, timeout=self.shutdown_grace_seconds)

        if pending:
            self._logger.warning(f"Cancelling {len(pending)} unfinished snapshot task(s)")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        self._logger.info(f"Snapshot scheduler stopped after {self.cycles_started} cycle(s)")

    # ============================================
    # Core Loop
    # ============================================

    def launch_cycle(self) -> List[asyncio.Task]:
        """
        Start one snapshot task per target without waiting for them.

        Returns:
            The launched tasks (also tracked internally until they finish)
        """
        self.cycles_started += 1
        cycle = self.cycles_started

        launched = []
        for target in self.targets:
            task = asyncio.create_task(
                self._task.run(target),
                name=f"snapshot:{target.instrument_id}:{cycle}"
            )
            self._in_flight.add(task)
            task.add_done_callback(self._on_task_done)
            launched.append(task)

        self._logger.info(
            f"Cycle {cycle}: launched {len(launched)} snapshot task(s), "
            f"{len(self._in_flight)} in flight"
        )
        return launched

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            # SnapshotTask.run logs its own errors; this only catches escapes
            self._logger.error(f"Snapshot task {task.get_name()} failed: {error!r}")

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        while not self._stop_requested.is_set():
            self.launch_cycle()

            next_tick += self.interval_seconds
            delay = next_tick - loop.time()
            if delay < 0:
                # Event loop was blocked or suspended past one or more ticks
                skipped = int(-delay // self.interval_seconds) + 1
                self._logger.warning(f"Scheduler fell behind, skipping {skipped} tick(s)")
                next_tick += skipped * self.interval_seconds
                delay = next_tick - loop.time()

            try:
                await asyncio.wait_for(self._stop_requested.wait(), timeout=delay)
            except asyncio.TimeoutError:
                continue

        self._logger.debug("Scheduler loop exited")
