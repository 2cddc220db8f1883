"""
AlertService facade for the rest of the helpdesk.

Groups the operations other components call (HTTP router, CLI): listing
and stats over the repository, lifecycle actions, audit history and the
non-blocking analysis trigger.
"""

from recurring_core.alerts.lifecycle import AlertLifecycle
from recurring_core.alerts.repository import AlertRepository
from recurring_core.alerts.types import (
    AlertStats,
    AlertStatus,
    AuditEntry,
    GroupType,
    RecurringAlert,
    Severity,
)
from recurring_core.analysis.scheduler import AnalysisScheduler, TriggerResult
from recurring_core.errors import NotFoundError
from recurring_protocols import UserId


class AlertService:
    """
    Operation contracts exposed by the recurring issue engine.

    Example:
        service = AlertService(db, AlertLifecycle(db), scheduler)
        result = service.trigger_analysis(requested_by="admin")
        alerts = await service.list_alerts(status=AlertStatus.ACTIVE)
    """

    def __init__(
        self,
        repository: AlertRepository,
        lifecycle: AlertLifecycle,
        scheduler: AnalysisScheduler | None = None,
    ) -> None:
        self.repository = repository
        self.lifecycle = lifecycle
        self.scheduler = scheduler

    def trigger_analysis(self, requested_by: str = "manual") -> TriggerResult:
        """Request an out-of-cycle pass. Returns without waiting for it."""
        if self.scheduler is None:
            return TriggerResult(accepted=False, reason="analysis scheduler is not running")
        return self.scheduler.trigger(requested_by=requested_by)

    async def list_alerts(
        self,
        status: AlertStatus | None = None,
        severity: Severity | None = None,
        group_type: GroupType | None = None,
    ) -> list[RecurringAlert]:
        return await self.repository.list_alerts(
            status=status, severity=severity, group_type=group_type
        )

    async def get_alert(self, alert_id: int) -> RecurringAlert:
        alert = await self.repository.get_alert(alert_id)
        if alert is None:
            raise NotFoundError(alert_id)
        return alert

    async def get_alert_stats(self) -> AlertStats:
        return await self.repository.get_stats()

    async def get_audit_trail(self, alert_id: int) -> list[AuditEntry]:
        await self.get_alert(alert_id)
        return await self.repository.list_audit_entries(alert_id)

    async def acknowledge(
        self, alert_id: int, acting_user_id: UserId, notes: str | None = None
    ) -> RecurringAlert:
        return await self.lifecycle.acknowledge(alert_id, acting_user_id, notes)

    async def resolve(
        self, alert_id: int, acting_user_id: UserId, notes: str | None
    ) -> RecurringAlert:
        return await self.lifecycle.resolve(alert_id, acting_user_id, notes)

    async def dismiss(
        self, alert_id: int, acting_user_id: UserId, notes: str | None = None
    ) -> RecurringAlert:
        return await self.lifecycle.dismiss(alert_id, acting_user_id, notes)
