"""
AlertRepository protocol.

The analyzer and the lifecycle never share alert state in memory; they go
through an injected repository. Every write is a compare-and-swap on the
alert's version so the two writers cannot interleave on one record.
"""

from typing import Protocol, runtime_checkable

from recurring_core.alerts.types import (
    AlertStats,
    AlertStatus,
    AuditEntry,
    GroupType,
    RecurringAlert,
    Severity,
)


@runtime_checkable
class AlertRepository(Protocol):
    """
    Storage interface for recurring alerts and their audit trail.

    Implementations raise StaleAlertError when a compare-and-swap fails
    and never partially apply a write.
    """

    async def create_alert(self, alert: RecurringAlert) -> RecurringAlert:
        """Insert a new alert. Raises StaleAlertError if its group already has an open alert."""
        ...

    async def get_alert(self, alert_id: int) -> RecurringAlert | None:
        """Fetch one alert, or None if the ID is unknown."""
        ...

    async def list_alerts(
        self,
        status: AlertStatus | None = None,
        severity: Severity | None = None,
        group_type: GroupType | None = None,
    ) -> list[RecurringAlert]:
        """List alerts, most severe and most recent first."""
        ...

    async def list_open_alerts(self) -> list[RecurringAlert]:
        """List ACTIVE and ACKNOWLEDGED alerts."""
        ...

    async def refresh_alert(self, alert: RecurringAlert) -> RecurringAlert:
        """
        Write reconciler-owned fields if alert.version is still current
        and the stored alert is still open.
        """
        ...

    async def transition_alert(
        self, alert: RecurringAlert, entry: AuditEntry
    ) -> RecurringAlert:
        """
        Write lifecycle-owned fields and append the audit entry atomically,
        if alert.version is still current and the stored status still
        equals entry.from_status.
        """
        ...

    async def list_audit_entries(self, alert_id: int) -> list[AuditEntry]:
        """Audit trail of one alert, oldest first."""
        ...

    async def get_stats(self) -> AlertStats:
        """Counts by status plus open-alert breakdowns."""
        ...
