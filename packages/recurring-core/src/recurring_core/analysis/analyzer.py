"""
One recurring-issue analysis pass.

RecurringIssueAnalyzer.run() takes a ticket snapshot, aggregates groups,
plans the reconciliation and applies it through the AlertRepository:

1. Read the snapshot (SnapshotUnavailableError aborts before any write)
2. aggregate_groups() -> candidates
3. reconcile() against open alerts -> creates and refreshes
4. Apply creates, then refreshes, each as its own compare-and-swap write

A refresh that loses a race with a lifecycle action re-reads that single
alert and re-applies the same statistics. If the alert was closed in the
meantime, the refresh is skipped and the next run decides whether the
group needs a new alert.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

from recurring_core.alerts.repository import AlertRepository
from recurring_core.alerts.types import AlertStatus, RecurringAlert, Severity
from recurring_core.analysis.aggregator import (
    DEFAULT_MIN_OCCURRENCES,
    DEFAULT_WINDOW_DAYS,
    aggregate_groups,
    tickets_in_window,
)
from recurring_core.analysis.reconciler import (
    ReconciliationPlan,
    apply_statistics,
    reconcile,
)
from recurring_core.analysis.signals import DEFAULT_KEYWORD_TOP_N
from recurring_core.errors import StaleAlertError
from recurring_protocols import TicketSnapshotReaderProtocol

logger = logging.getLogger(__name__)

MAX_REFRESH_ATTEMPTS = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AnalysisReport:
    """
    Summary of one analysis pass.

    Attributes:
        started_at: Reference time of the pass
        tickets_analyzed: Tickets inside the window
        candidates: Groups that met the threshold
        created: Alerts created
        updated: Alerts refreshed
        skipped: Writes dropped after a conflict (alert closed mid-run,
            or another writer opened the group first)
        critical_alerts: CRITICAL, still ACTIVE alerts created or refreshed
            by this pass, for the notification layer
    """

    started_at: datetime
    tickets_analyzed: int = 0
    candidates: int = 0
    created: list[RecurringAlert] = field(default_factory=list)
    updated: list[RecurringAlert] = field(default_factory=list)
    skipped: int = 0
    critical_alerts: list[RecurringAlert] = field(default_factory=list)


class RecurringIssueAnalyzer:
    """
    Runs analysis passes against a ticket reader and an alert repository.

    Example:
        async with AlertDB(db_path) as db:
            analyzer = RecurringIssueAnalyzer(reader=client, repository=db)
            report = await analyzer.run()
    """

    def __init__(
        self,
        reader: TicketSnapshotReaderProtocol,
        repository: AlertRepository,
        window_days: int = DEFAULT_WINDOW_DAYS,
        min_occurrences: int = DEFAULT_MIN_OCCURRENCES,
        keyword_top_n: int = DEFAULT_KEYWORD_TOP_N,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize the analyzer.

        Args:
            reader: Ticket snapshot source
            repository: Alert storage
            window_days: Trailing window width in days
            min_occurrences: Minimum group size for an alert
            keyword_top_n: Keyword cap per alert
            clock: Source of the pass reference time
        """
        self.reader = reader
        self.repository = repository
        self.window_days = window_days
        self.min_occurrences = min_occurrences
        self.keyword_top_n = keyword_top_n
        self.clock = clock

    async def run(self) -> AnalysisReport:
        """
        Run one analysis pass.

        Returns:
            AnalysisReport for the pass

        Raises:
            SnapshotUnavailableError: Ticket source failed; nothing was written
        """
        now = self.clock()
        report = AnalysisReport(started_at=now)

        window_start = now - timedelta(days=self.window_days)
        snapshot = await self.reader.list_tickets_created_since(window_start)
        tickets_by_id = tickets_in_window(snapshot, now, self.window_days)
        report.tickets_analyzed = len(tickets_by_id)

        candidates = aggregate_groups(
            tickets_by_id.values(), now, self.window_days, self.min_occurrences
        )
        report.candidates = len(candidates)

        existing = await self.repository.list_open_alerts()
        plan = reconcile(
            candidates,
            existing,
            tickets_by_id,
            now,
            min_occurrences=self.min_occurrences,
            keyword_top_n=self.keyword_top_n,
        )
        await self._apply(plan, report, now)

        report.critical_alerts = [
            alert
            for alert in report.created + report.updated
            if alert.severity is Severity.CRITICAL and alert.status is AlertStatus.ACTIVE
        ]

        logger.info(
            "Analysis complete: %d tickets, %d candidates, %d created, %d updated, %d skipped",
            report.tickets_analyzed,
            report.candidates,
            len(report.created),
            len(report.updated),
            report.skipped,
        )
        return report

    async def _apply(
        self, plan: ReconciliationPlan, report: AnalysisReport, now: datetime
    ) -> None:
        """Persist a reconciliation plan, one alert per write."""
        for alert in plan.to_create:
            try:
                created = await self.repository.create_alert(alert)
            except StaleAlertError as e:
                # Another writer opened an alert for this group first
                logger.warning("Skipping create for %s: %s", alert.key, e)
                report.skipped += 1
                continue
            logger.info("Created alert #%s: %s (%s)", created.id, created.label, created.severity.value)
            report.created.append(created)

        for alert in plan.to_update:
            stored = await self._refresh(alert, plan, report, now)
            if stored is None:
                continue
            logger.info("Updated alert #%s: %s (%d tickets)", stored.id, stored.label, stored.occurrence_count)
            report.updated.append(stored)

    async def _refresh(
        self,
        alert: RecurringAlert,
        plan: ReconciliationPlan,
        report: AnalysisReport,
        now: datetime,
    ) -> RecurringAlert | None:
        """
        Write a refresh, re-reading and re-applying after lock conflicts.

        Returns the stored alert, or None when nothing was written. A
        refresh dropped because the alert closed counts as skipped; one
        made redundant by a concurrent identical write does not.
        """
        stats = plan.statistics[alert.key]
        for attempt in range(1, MAX_REFRESH_ATTEMPTS + 1):
            try:
                return await self.repository.refresh_alert(alert)
            except StaleAlertError:
                logger.info(
                    "Alert #%s changed during refresh (attempt %d/%d)",
                    alert.id, attempt, MAX_REFRESH_ATTEMPTS,
                )

            current = await self.repository.get_alert(alert.id)
            if current is None or not current.is_open:
                logger.info("Alert #%s closed during analysis, skipping refresh", alert.id)
                report.skipped += 1
                return None
            refreshed = apply_statistics(current, stats, now)
            if refreshed is None:
                logger.info("Alert #%s already current", alert.id)
                return None
            alert = refreshed

        logger.warning("Giving up refresh of alert #%s after %d attempts", alert.id, MAX_REFRESH_ATTEMPTS)
        report.skipped += 1
        return None
