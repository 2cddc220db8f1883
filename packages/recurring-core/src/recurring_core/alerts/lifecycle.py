"""
Alert lifecycle state machine.

Transitions:

    acknowledge   active                -> acknowledged
    resolve       active | acknowledged -> resolved     (notes required)
    dismiss       active | acknowledged -> dismissed

Everything else is rejected with InvalidTransitionError, including
repeating an action on an alert already in that action's target state.
Every successful transition appends an audit entry in the same write.

Writes are optimistic: if the reconciler (or another agent) changed the
alert between read and write, the action re-reads and decides again, so a
concurrent refresh never reverts a status and a concurrent transition is
seen before a second one is applied.
"""

import logging
from datetime import datetime, timezone
from typing import Callable

from recurring_core.alerts.repository import AlertRepository
from recurring_core.alerts.types import (
    AlertAction,
    AlertStatus,
    AuditEntry,
    RecurringAlert,
)
from recurring_core.errors import (
    InvalidTransitionError,
    NotFoundError,
    StaleAlertError,
    ValidationError,
)
from recurring_protocols import UserId

logger = logging.getLogger(__name__)

TRANSITIONS: dict[AlertAction, tuple[frozenset[AlertStatus], AlertStatus]] = {
    AlertAction.ACKNOWLEDGE: (
        frozenset({AlertStatus.ACTIVE}),
        AlertStatus.ACKNOWLEDGED,
    ),
    AlertAction.RESOLVE: (
        frozenset({AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED}),
        AlertStatus.RESOLVED,
    ),
    AlertAction.DISMISS: (
        frozenset({AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED}),
        AlertStatus.DISMISSED,
    ),
}

MAX_WRITE_ATTEMPTS = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def plan_transition(
    alert: RecurringAlert,
    action: AlertAction,
    acting_user_id: UserId,
    notes: str | None,
    now: datetime,
) -> tuple[RecurringAlert, AuditEntry]:
    """
    Check an action against the transition table and build the result.

    Pure: nothing is written.

    Returns:
        The alert after the transition and the audit entry for it

    Raises:
        InvalidTransitionError: Action not allowed from the current status
        ValidationError: Resolve without notes, or missing acting user
    """
    allowed_from, target = TRANSITIONS[action]
    if alert.status not in allowed_from:
        raise InvalidTransitionError(alert.id, action.value, alert.status.value)

    errors = []
    if not acting_user_id or not acting_user_id.strip():
        errors.append("acting user is required")
    if action is AlertAction.RESOLVE and (notes is None or not notes.strip()):
        errors.append("resolution notes are required")
    if errors:
        raise ValidationError(alert.id, errors)

    update: dict = {"status": target, "updated_at": now}
    if notes is not None and notes.strip():
        update["notes"] = notes
    if action is AlertAction.ACKNOWLEDGE:
        update["acknowledged_by"] = acting_user_id
        update["acknowledged_at"] = now
    elif action is AlertAction.RESOLVE:
        update["resolved_by"] = acting_user_id
        update["resolved_at"] = now
    elif action is AlertAction.DISMISS:
        update["dismissed_by"] = acting_user_id
        update["dismissed_at"] = now

    entry = AuditEntry(
        alert_id=alert.id,
        action=action,
        from_status=alert.status,
        to_status=target,
        acting_user_id=acting_user_id,
        timestamp=now,
        notes=notes,
    )
    return alert.model_copy(update=update), entry


class AlertLifecycle:
    """
    Applies agent actions to stored alerts.

    Example:
        async with AlertDB(db_path) as db:
            lifecycle = AlertLifecycle(db)
            alert = await lifecycle.acknowledge(42, "agent1")
            alert = await lifecycle.resolve(42, "agent1", "Replaced faulty switch")
    """

    def __init__(
        self,
        repository: AlertRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize the lifecycle.

        Args:
            repository: Alert storage
            clock: Source of transition timestamps
        """
        self.repository = repository
        self.clock = clock

    async def acknowledge(
        self, alert_id: int, acting_user_id: UserId, notes: str | None = None
    ) -> RecurringAlert:
        """Take ownership of an ACTIVE alert."""
        return await self.apply(alert_id, AlertAction.ACKNOWLEDGE, acting_user_id, notes)

    async def resolve(
        self, alert_id: int, acting_user_id: UserId, notes: str | None
    ) -> RecurringAlert:
        """Close an open alert as fixed. Notes are mandatory."""
        return await self.apply(alert_id, AlertAction.RESOLVE, acting_user_id, notes)

    async def dismiss(
        self, alert_id: int, acting_user_id: UserId, notes: str | None = None
    ) -> RecurringAlert:
        """Close an open alert as not actionable."""
        return await self.apply(alert_id, AlertAction.DISMISS, acting_user_id, notes)

    async def apply(
        self,
        alert_id: int,
        action: AlertAction,
        acting_user_id: UserId,
        notes: str | None = None,
    ) -> RecurringAlert:
        """
        Apply an action to an alert.

        Args:
            alert_id: Target alert
            action: Action to apply
            acting_user_id: Agent performing the action
            notes: Optional notes (mandatory for resolve)

        Returns:
            The alert after the transition

        Raises:
            NotFoundError: Unknown alert ID
            InvalidTransitionError: Action not allowed from current status
            ValidationError: Invalid input for the action
            StaleAlertError: Alert kept changing under us
        """
        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            alert = await self.repository.get_alert(alert_id)
            if alert is None:
                raise NotFoundError(alert_id)

            updated, entry = plan_transition(
                alert, action, acting_user_id, notes, self.clock()
            )
            try:
                stored = await self.repository.transition_alert(updated, entry)
            except StaleAlertError:
                logger.info(
                    "Alert %s changed during %s (attempt %d/%d), re-reading",
                    alert_id, action.value, attempt, MAX_WRITE_ATTEMPTS,
                )
                continue

            logger.info(
                "Alert %s %s -> %s by %s",
                alert_id, entry.from_status.value, entry.to_status.value, acting_user_id,
            )
            return stored

        raise StaleAlertError(alert_id, f"{action.value} lost {MAX_WRITE_ATTEMPTS} races")
