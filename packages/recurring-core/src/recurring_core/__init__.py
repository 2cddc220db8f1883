"""
Recurring Core Library

Recurring issue engine for the helpdesk. Periodically analyzes recently
created tickets, groups them by category, tag and priority, and keeps one
alert per recurring group that agents can acknowledge, resolve or dismiss.

- Analysis: aggregation, severity, keywords and suggested actions
- Alerts: types, lifecycle state machine, audit trail
- Persistence: SQLite alert store
- Scheduler: periodic and on-demand analysis passes
- CLI and HTTP API surfaces
"""

__version__ = "0.1.0"

# Re-export public types for convenient imports
from recurring_core.alerts import (
    AlertAction,
    AlertLifecycle,
    AlertStats,
    AlertStatus,
    AuditEntry,
    GroupKey,
    GroupType,
    RecurringAlert,
    Severity,
)
from recurring_core.analysis import (
    AnalysisReport,
    AnalysisScheduler,
    RecurringIssueAnalyzer,
)
from recurring_core.db import AlertDB
from recurring_core.errors import (
    ConcurrentRunRejected,
    InvalidTransitionError,
    NotFoundError,
    RecurringAlertError,
    SnapshotUnavailableError,
    StaleAlertError,
    ValidationError,
)
from recurring_core.service import AlertService
# Re-export Ticket from recurring_protocols for convenience
from recurring_protocols import Ticket

__all__ = [
    "__version__",
    # Alert types
    "AlertAction",
    "AlertStats",
    "AlertStatus",
    "AuditEntry",
    "GroupKey",
    "GroupType",
    "RecurringAlert",
    "Severity",
    # Engine
    "AlertLifecycle",
    "AlertService",
    "AnalysisReport",
    "AnalysisScheduler",
    "RecurringIssueAnalyzer",
    "AlertDB",
    # Errors
    "ConcurrentRunRejected",
    "InvalidTransitionError",
    "NotFoundError",
    "RecurringAlertError",
    "SnapshotUnavailableError",
    "StaleAlertError",
    "ValidationError",
    # Ticket type (from recurring_protocols)
    "Ticket",
]
