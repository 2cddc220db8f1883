"""
Alert module for recurring alert types and lifecycle.

Exports:
    RecurringAlert: Pydantic model of one stored alert
    AuditEntry: Immutable record of a status transition
    AlertStatus, AlertAction, Severity, GroupType, GroupKey: Alert vocabulary
    AlertLifecycle: Applies acknowledge/resolve/dismiss to stored alerts
    AlertRepository: Storage protocol used by the engine
"""

from recurring_core.alerts.lifecycle import AlertLifecycle, plan_transition
from recurring_core.alerts.repository import AlertRepository
from recurring_core.alerts.types import (
    AlertAction,
    AlertStats,
    AlertStatus,
    AuditEntry,
    GroupKey,
    GroupType,
    RecurringAlert,
    Severity,
)

__all__ = [
    "AlertAction",
    "AlertLifecycle",
    "AlertRepository",
    "AlertStats",
    "AlertStatus",
    "AuditEntry",
    "GroupKey",
    "GroupType",
    "RecurringAlert",
    "Severity",
    "plan_transition",
]
