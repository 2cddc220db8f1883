"""Tests for the alert lifecycle state machine."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from recurring_core.alerts.lifecycle import AlertLifecycle, plan_transition
from recurring_core.alerts.types import (
    AlertAction,
    AlertStatus,
    GroupType,
    RecurringAlert,
    Severity,
)
from recurring_core.errors import (
    InvalidTransitionError,
    NotFoundError,
    StaleAlertError,
    ValidationError,
)

T0 = datetime(2026, 3, 10, 8, 0, tzinfo=timezone.utc)


def _alert(status: AlertStatus = AlertStatus.ACTIVE, alert_id: int | None = None) -> RecurringAlert:
    return RecurringAlert(
        id=alert_id,
        group_type=GroupType.CATEGORY,
        group_key="NETWORK",
        label="Category: NETWORK",
        severity=Severity.MEDIUM,
        occurrence_count=5,
        affected_users=2,
        first_occurrence=T0,
        last_occurrence=T0 + timedelta(days=2),
        status=status,
        created_at=T0,
        updated_at=T0,
    )


@pytest.fixture
def clock():
    """Deterministic clock advancing one minute per call."""
    ticks = iter(T0 + timedelta(days=5, minutes=i) for i in range(1000))
    return lambda: next(ticks)


class TestPlanTransition:
    """Tests for the pure transition check."""

    @pytest.mark.parametrize(
        "status,action,target",
        [
            (AlertStatus.ACTIVE, AlertAction.ACKNOWLEDGE, AlertStatus.ACKNOWLEDGED),
            (AlertStatus.ACTIVE, AlertAction.RESOLVE, AlertStatus.RESOLVED),
            (AlertStatus.ACTIVE, AlertAction.DISMISS, AlertStatus.DISMISSED),
            (AlertStatus.ACKNOWLEDGED, AlertAction.RESOLVE, AlertStatus.RESOLVED),
            (AlertStatus.ACKNOWLEDGED, AlertAction.DISMISS, AlertStatus.DISMISSED),
        ],
    )
    def test_allowed_transitions(self, status, action, target):
        updated, entry = plan_transition(_alert(status, 1), action, "agent1", "notes", T0)

        assert updated.status == target
        assert entry.from_status == status
        assert entry.to_status == target
        assert entry.action == action

    @pytest.mark.parametrize(
        "status,action",
        [
            (AlertStatus.ACKNOWLEDGED, AlertAction.ACKNOWLEDGE),
            (AlertStatus.RESOLVED, AlertAction.ACKNOWLEDGE),
            (AlertStatus.RESOLVED, AlertAction.RESOLVE),
            (AlertStatus.RESOLVED, AlertAction.DISMISS),
            (AlertStatus.DISMISSED, AlertAction.ACKNOWLEDGE),
            (AlertStatus.DISMISSED, AlertAction.RESOLVE),
            (AlertStatus.DISMISSED, AlertAction.DISMISS),
        ],
    )
    def test_rejected_transitions(self, status, action):
        with pytest.raises(InvalidTransitionError) as exc_info:
            plan_transition(_alert(status, 1), action, "agent1", "notes", T0)

        assert exc_info.value.current_status == status.value
        assert exc_info.value.action == action.value

    @pytest.mark.parametrize("notes", [None, "", "   "])
    def test_resolve_requires_notes(self, notes):
        with pytest.raises(ValidationError) as exc_info:
            plan_transition(_alert(alert_id=1), AlertAction.RESOLVE, "agent1", notes, T0)

        assert "resolution notes are required" in exc_info.value.errors

    def test_transition_checked_before_notes(self):
        """Resolving a closed alert without notes is an invalid transition."""
        with pytest.raises(InvalidTransitionError):
            plan_transition(_alert(AlertStatus.RESOLVED, 1), AlertAction.RESOLVE, "agent1", "", T0)

    def test_acting_user_required(self):
        with pytest.raises(ValidationError, match="acting user is required"):
            plan_transition(_alert(alert_id=1), AlertAction.ACKNOWLEDGE, " ", None, T0)

    def test_acknowledge_sets_owner(self):
        updated, _ = plan_transition(_alert(alert_id=1), AlertAction.ACKNOWLEDGE, "agent1", None, T0)

        assert updated.acknowledged_by == "agent1"
        assert updated.acknowledged_at == T0
        assert updated.notes is None

    def test_dismiss_sets_fields_and_notes(self):
        updated, entry = plan_transition(
            _alert(alert_id=1), AlertAction.DISMISS, "agent2", "Planned maintenance", T0
        )

        assert updated.dismissed_by == "agent2"
        assert updated.dismissed_at == T0
        assert updated.notes == "Planned maintenance"
        assert entry.notes == "Planned maintenance"

    def test_statistics_untouched(self):
        alert = _alert(alert_id=1)

        updated, _ = plan_transition(alert, AlertAction.ACKNOWLEDGE, "agent1", None, T0)

        assert updated.occurrence_count == alert.occurrence_count
        assert updated.severity == alert.severity
        assert updated.version == alert.version


class TestAlertLifecycle:
    """Tests for AlertLifecycle against a real AlertDB."""

    @pytest.mark.asyncio
    async def test_acknowledge_then_resolve(self, db, clock):
        """Full agent workflow with the audit trail."""
        alert = await db.create_alert(_alert())
        lifecycle = AlertLifecycle(db, clock=clock)

        acknowledged = await lifecycle.acknowledge(alert.id, "agent1")
        assert acknowledged.status == AlertStatus.ACKNOWLEDGED
        assert acknowledged.acknowledged_by == "agent1"
        assert acknowledged.acknowledged_at is not None

        with pytest.raises(ValidationError):
            await lifecycle.resolve(alert.id, "agent1", "")
        assert (await db.get_alert(alert.id)).status == AlertStatus.ACKNOWLEDGED

        resolved = await lifecycle.resolve(alert.id, "agent1", "Replaced faulty switch")
        assert resolved.status == AlertStatus.RESOLVED
        assert resolved.resolved_by == "agent1"
        assert resolved.notes == "Replaced faulty switch"

        for action in AlertAction:
            with pytest.raises(InvalidTransitionError):
                await lifecycle.apply(alert.id, action, "agent1", "again")

        entries = await db.list_audit_entries(alert.id)
        assert [(e.from_status, e.to_status) for e in entries] == [
            (AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED),
            (AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED),
        ]
        assert entries[0].timestamp < entries[1].timestamp

    @pytest.mark.asyncio
    async def test_resolve_without_notes_from_active(self, db, clock):
        alert = await db.create_alert(_alert())
        lifecycle = AlertLifecycle(db, clock=clock)

        with pytest.raises(ValidationError):
            await lifecycle.resolve(alert.id, "agent1", "")

        stored = await db.get_alert(alert.id)
        assert stored.status == AlertStatus.ACTIVE
        assert stored.version == alert.version
        assert await db.list_audit_entries(alert.id) == []

    @pytest.mark.asyncio
    async def test_dismiss_from_active(self, db, clock):
        alert = await db.create_alert(_alert())

        dismissed = await AlertLifecycle(db, clock=clock).dismiss(alert.id, "agent2")

        assert dismissed.status == AlertStatus.DISMISSED
        assert dismissed.dismissed_by == "agent2"

    @pytest.mark.asyncio
    async def test_unknown_alert(self, db, clock):
        with pytest.raises(NotFoundError):
            await AlertLifecycle(db, clock=clock).acknowledge(424242, "agent1")


class TestAlertLifecycleConflicts:
    """Tests for optimistic lock retries."""

    @pytest.mark.asyncio
    async def test_retries_after_stale_write(self):
        alert = _alert(alert_id=7)
        stored = alert.model_copy(update={"status": AlertStatus.ACKNOWLEDGED, "version": 2})
        repository = MagicMock()
        repository.get_alert = AsyncMock(return_value=alert)
        repository.transition_alert = AsyncMock(
            side_effect=[StaleAlertError(7, "version moved"), stored]
        )

        result = await AlertLifecycle(repository).acknowledge(7, "agent1")

        assert result == stored
        assert repository.get_alert.await_count == 2
        assert repository.transition_alert.await_count == 2

    @pytest.mark.asyncio
    async def test_sees_concurrent_transition(self):
        """A second agent's dismiss after a resolve it lost to is rejected."""
        active = _alert(alert_id=7)
        resolved = active.model_copy(update={"status": AlertStatus.RESOLVED, "version": 1})
        repository = MagicMock()
        repository.get_alert = AsyncMock(side_effect=[active, resolved])
        repository.transition_alert = AsyncMock(side_effect=StaleAlertError(7, "status moved"))

        with pytest.raises(InvalidTransitionError):
            await AlertLifecycle(repository).dismiss(7, "agent2")

        assert repository.transition_alert.await_count == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_repeated_conflicts(self):
        repository = MagicMock()
        repository.get_alert = AsyncMock(return_value=_alert(alert_id=7))
        repository.transition_alert = AsyncMock(side_effect=StaleAlertError(7, "version moved"))

        with pytest.raises(StaleAlertError):
            await AlertLifecycle(repository).acknowledge(7, "agent1")

        assert repository.transition_alert.await_count == 3
