"""
AnalysisScheduler daemon for periodic and on-demand analysis.

This module implements the scheduler that:
- Runs an analysis pass at a configurable interval
- Runs an initial pass shortly after start
- Accepts manual triggers that return immediately
- Keeps at most one pass in flight; requests during a pass are coalesced
- Handles graceful shutdown on SIGINT/SIGTERM

Daemon pattern:
- Uses asyncio.Event for shutdown coordination
- Registers signal handlers inside run() with get_running_loop()
- Uses wait_for with timeout for interruptible sleep
"""

import asyncio
import functools
import logging
import signal
from dataclasses import dataclass

from recurring_core.analysis.analyzer import AnalysisReport, RecurringIssueAnalyzer
from recurring_core.errors import ConcurrentRunRejected, SnapshotUnavailableError

logger = logging.getLogger(__name__)

SCHEDULER_REQUESTER = "scheduler"


@dataclass(frozen=True)
class TriggerResult:
    """
    Answer to an analysis trigger.

    Attributes:
        accepted: True if a new pass was started
        reason: Why the trigger was not accepted (empty when accepted)
    """

    accepted: bool
    reason: str = ""


class AnalysisScheduler:
    """
    Long-running daemon that runs analysis passes.

    Periodic ticks and manual triggers share one in-flight slot. The slot
    is claimed synchronously, before any await, so two triggers arriving
    back to back can never both start a pass.

    Example:
        scheduler = AnalysisScheduler(analyzer, interval_hours=24.0)
        await scheduler.run()  # Runs until SIGINT/SIGTERM

        # From a request handler in the same event loop:
        result = scheduler.trigger(requested_by="agent1")
    """

    def __init__(
        self,
        analyzer: RecurringIssueAnalyzer,
        interval_hours: float = 24.0,
        initial_delay_seconds: float = 30.0,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            analyzer: Runs the actual passes
            interval_hours: Hours between periodic passes
            initial_delay_seconds: Delay before the first pass after start
        """
        self.analyzer = analyzer
        self.interval = interval_hours * 3600.0
        self.initial_delay = initial_delay_seconds
        self._shutdown = asyncio.Event()
        self._slot: object | None = None
        self._current: asyncio.Task | None = None

        # Stats for heartbeat
        self.last_report: AnalysisReport | None = None
        self.runs_completed = 0
        self.runs_failed = 0

    @property
    def in_flight(self) -> bool:
        """True while a pass is running."""
        return self._slot is not None

    def _claim(self, requested_by: str) -> object:
        """Take the in-flight slot, returning the token that releases it."""
        if self._slot is not None:
            raise ConcurrentRunRejected(requested_by)
        self._slot = token = object()
        return token

    def _release(self, token: object) -> None:
        # A stale token never clears a slot claimed by a later pass
        if self._slot is token:
            self._slot = None

    async def run_once(self, requested_by: str = "manual") -> AnalysisReport:
        """
        Run a pass and wait for it.

        Raises:
            ConcurrentRunRejected: A pass is already in flight
            SnapshotUnavailableError: Ticket source failed
        """
        token = self._claim(requested_by)
        return await self._execute(requested_by, token)

    def trigger(self, requested_by: str = "manual") -> TriggerResult:
        """
        Start a pass in the background and return immediately.

        Must be called from within the running event loop. A trigger while
        a pass is in flight is coalesced into that pass.

        Raises:
            RuntimeError: No running event loop; the slot is left free
        """
        loop = asyncio.get_running_loop()
        try:
            token = self._claim(requested_by)
        except ConcurrentRunRejected as e:
            logger.info("%s", e)
            return TriggerResult(accepted=False, reason=str(e))

        try:
            task = loop.create_task(self._execute_logged(requested_by, token))
        except BaseException:
            self._release(token)
            raise
        # Frees the slot even if the task is cancelled before it starts
        task.add_done_callback(lambda _: self._release(token))
        self._current = task
        return TriggerResult(accepted=True)

    async def wait_idle(self) -> None:
        """Wait for the background pass started by trigger(), if any."""
        if self._current is not None:
            await self._current

    async def _execute(self, requested_by: str, token: object) -> AnalysisReport:
        logger.info("Analysis pass started (requested by %s)", requested_by)
        try:
            report = await self.analyzer.run()
        except Exception:
            self.runs_failed += 1
            raise
        finally:
            self._release(token)

        self.runs_completed += 1
        self.last_report = report
        for alert in report.critical_alerts:
            logger.warning(
                "Critical recurring issue #%s: %s (%d tickets, %d users) - %s",
                alert.id,
                alert.label,
                alert.occurrence_count,
                alert.affected_users,
                alert.suggested_action,
            )
        return report

    async def _execute_logged(self, requested_by: str, token: object) -> None:
        """Background pass: failures are logged and retried on the next tick."""
        try:
            await self._execute(requested_by, token)
        except SnapshotUnavailableError as e:
            logger.warning("Analysis aborted, existing alerts untouched: %s", e)
        except Exception:
            logger.exception("Analysis pass failed")

    async def run(self, install_signal_handlers: bool = True) -> None:
        """
        Run the scheduler until shutdown signal.

        Args:
            install_signal_handlers: Register SIGINT/SIGTERM handlers
        """
        loop = asyncio.get_running_loop()
        if install_signal_handlers:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(
                    sig,
                    functools.partial(self._handle_signal, sig),
                )

        logger.info(
            "Analysis scheduler starting (interval: %.1fh, initial delay: %.0fs)",
            self.interval / 3600.0,
            self.initial_delay,
        )

        delay = self.initial_delay
        while not await self._sleep(delay):
            await self._tick()
            self._log_heartbeat()
            delay = self.interval

        await self.wait_idle()
        logger.info("Analysis scheduler stopped")

    def stop(self) -> None:
        """Request shutdown."""
        self._shutdown.set()

    def _handle_signal(self, sig: signal.Signals) -> None:
        """Handle shutdown signal by setting shutdown event."""
        logger.info("Received %s, shutting down...", sig.name)
        self._shutdown.set()

    async def _sleep(self, seconds: float) -> bool:
        """Wait for the timeout or shutdown. Returns True on shutdown."""
        try:
            await asyncio.wait_for(self._shutdown.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass  # Normal timeout, continue loop
        return self._shutdown.is_set()

    async def _tick(self) -> None:
        """Periodic pass; coalesced if a manual pass is already running."""
        result = self.trigger(requested_by=SCHEDULER_REQUESTER)
        if result.accepted:
            await self.wait_idle()

    def _log_heartbeat(self) -> None:
        """Output periodic status message."""
        if self.last_report is None:
            logger.info("Heartbeat: no completed pass yet (%d failed)", self.runs_failed)
            return
        report = self.last_report
        logger.info(
            "Heartbeat: %d passes, %d failed; last pass %d tickets, %d created, %d updated",
            self.runs_completed,
            self.runs_failed,
            report.tickets_analyzed,
            len(report.created),
            len(report.updated),
        )
