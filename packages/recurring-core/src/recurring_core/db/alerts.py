"""
SQLite-based recurring alert persistence.

This module provides async database operations for alert management:
- Create alerts (one open alert per group, enforced by index)
- Query alerts by status, severity and group type
- Refresh statistics and apply status transitions with optimistic locking
- Append-only audit trail per alert
- Status counts for dashboards

Writes are compare-and-swap on the version column. A write that finds a
different version (or a status it did not expect) changes nothing and
raises StaleAlertError. Within one connection, each write transaction runs
under a connection-scoped lock so transactions from concurrent coroutines
never share a commit.
"""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite

from recurring_core.alerts.types import (
    OPEN_STATUSES,
    AlertAction,
    AlertStats,
    AlertStatus,
    AuditEntry,
    GroupType,
    RecurringAlert,
    Severity,
)
from recurring_core.db.schema import SCHEMA_SQL
from recurring_core.errors import StaleAlertError

_SEVERITY_ORDER_SQL = """
    CASE severity
        WHEN 'critical' THEN 3
        WHEN 'high' THEN 2
        WHEN 'medium' THEN 1
        ELSE 0
    END
"""

_OPEN_STATUS_VALUES = tuple(s.value for s in OPEN_STATUSES)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class AlertDB:
    """
    Async context manager for recurring alert database operations.

    Implements the AlertRepository protocol.

    Example:
        async with AlertDB(Path("alerts.db")) as db:
            alert = await db.create_alert(alert)
            alerts = await db.list_alerts(status=AlertStatus.ACTIVE)
    """

    def __init__(self, db_path: Path) -> None:
        """
        Initialize the database connection manager.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    async def __aenter__(self) -> "AlertDB":
        """Open database connection and ensure schema exists."""
        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._ensure_schema()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def _ensure_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        await self._conn.executescript(SCHEMA_SQL)
        await self._conn.commit()

    def _row_to_alert(self, row: aiosqlite.Row) -> RecurringAlert:
        """
        Convert a database row to a RecurringAlert.

        Args:
            row: Database row with alert fields

        Returns:
            RecurringAlert instance
        """
        return RecurringAlert(
            id=row["id"],
            group_type=GroupType(row["group_type"]),
            group_key=row["group_key"],
            label=row["label"],
            severity=Severity(row["severity"]),
            occurrence_count=row["occurrence_count"],
            affected_users=row["affected_users"],
            first_occurrence=_parse(row["first_occurrence"]),
            last_occurrence=_parse(row["last_occurrence"]),
            keywords=json.loads(row["keywords"]),
            suggested_action=row["suggested_action"],
            status=AlertStatus(row["status"]),
            acknowledged_by=row["acknowledged_by"],
            acknowledged_at=_parse(row["acknowledged_at"]),
            resolved_by=row["resolved_by"],
            resolved_at=_parse(row["resolved_at"]),
            dismissed_by=row["dismissed_by"],
            dismissed_at=_parse(row["dismissed_at"]),
            notes=row["notes"],
            member_ticket_ids=json.loads(row["member_ticket_ids"]),
            version=row["version"],
            created_at=_parse(row["created_at"]),
            updated_at=_parse(row["updated_at"]),
        )

    def _row_to_audit_entry(self, row: aiosqlite.Row) -> AuditEntry:
        """Convert a database row to an AuditEntry."""
        return AuditEntry(
            id=row["id"],
            alert_id=row["alert_id"],
            action=AlertAction(row["action"]),
            from_status=AlertStatus(row["from_status"]),
            to_status=AlertStatus(row["to_status"]),
            acting_user_id=row["acting_user_id"],
            notes=row["notes"],
            timestamp=_parse(row["timestamp"]),
        )

    async def create_alert(self, alert: RecurringAlert) -> RecurringAlert:
        """
        Insert a new alert.

        Args:
            alert: Alert to insert (id is ignored)

        Returns:
            The stored alert with its database ID

        Raises:
            StaleAlertError: An open alert already exists for the group
        """
        created_at = alert.created_at or datetime.now(timezone.utc)
        updated_at = alert.updated_at or created_at

        async with self._write_lock:
            try:
                cursor = await self._conn.execute(
                    """
                    INSERT INTO recurring_alerts (
                        group_type, group_key, label, severity, occurrence_count,
                        affected_users, first_occurrence, last_occurrence, keywords,
                        suggested_action, status, notes, member_ticket_ids, version,
                        created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
                    """,
                    (
                        alert.group_type.value,
                        alert.group_key,
                        alert.label,
                        alert.severity.value,
                        alert.occurrence_count,
                        alert.affected_users,
                        _iso(alert.first_occurrence),
                        _iso(alert.last_occurrence),
                        json.dumps(alert.keywords),
                        alert.suggested_action,
                        alert.status.value,
                        alert.notes,
                        json.dumps(alert.member_ticket_ids),
                        _iso(created_at),
                        _iso(updated_at),
                    ),
                )
                await self._conn.commit()
            except aiosqlite.IntegrityError as e:
                await self._conn.rollback()
                raise StaleAlertError(
                    None, f"open alert already exists for {alert.key}"
                ) from e

        return await self.get_alert(cursor.lastrowid)

    async def get_alert(self, alert_id: int) -> RecurringAlert | None:
        """
        Fetch an alert by ID.

        Args:
            alert_id: The alert ID

        Returns:
            The RecurringAlert if found, None otherwise
        """
        async with self._conn.execute(
            "SELECT * FROM recurring_alerts WHERE id = ?",
            (alert_id,),
        ) as cursor:
            row = await cursor.fetchone()

        if row:
            return self._row_to_alert(row)
        return None

    async def list_alerts(
        self,
        status: AlertStatus | None = None,
        severity: Severity | None = None,
        group_type: GroupType | None = None,
    ) -> list[RecurringAlert]:
        """
        List alerts, optionally filtered.

        Args:
            status: Optional status filter
            severity: Optional severity filter
            group_type: Optional group type filter

        Returns:
            Alerts ordered by severity DESC, last_occurrence DESC
        """
        clauses = []
        params: list[str] = []
        if status:
            clauses.append("status = ?")
            params.append(status.value)
        if severity:
            clauses.append("severity = ?")
            params.append(severity.value)
        if group_type:
            clauses.append("group_type = ?")
            params.append(group_type.value)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        query = f"""
            SELECT * FROM recurring_alerts
            {where}
            ORDER BY {_SEVERITY_ORDER_SQL} DESC, last_occurrence DESC, id DESC
        """

        async with self._conn.execute(query, params) as cursor:
            rows = await cursor.fetchall()

        return [self._row_to_alert(row) for row in rows]

    async def list_open_alerts(self) -> list[RecurringAlert]:
        """List ACTIVE and ACKNOWLEDGED alerts, oldest first."""
        async with self._conn.execute(
            "SELECT * FROM recurring_alerts WHERE status IN (?, ?) ORDER BY id",
            _OPEN_STATUS_VALUES,
        ) as cursor:
            rows = await cursor.fetchall()

        return [self._row_to_alert(row) for row in rows]

    async def refresh_alert(self, alert: RecurringAlert) -> RecurringAlert:
        """
        Write reconciler-owned fields with a version check.

        Only statistics, keywords, suggestion, severity and label are
        written. Status and lifecycle fields are never touched here.

        Args:
            alert: Refreshed alert carrying the version it was read at

        Returns:
            The stored alert after the write

        Raises:
            StaleAlertError: Version changed or alert is no longer open
        """
        async with self._write_lock:
            cursor = await self._conn.execute(
                """
                UPDATE recurring_alerts SET
                    label = ?,
                    severity = ?,
                    occurrence_count = ?,
                    affected_users = ?,
                    first_occurrence = ?,
                    last_occurrence = ?,
                    keywords = ?,
                    suggested_action = ?,
                    member_ticket_ids = ?,
                    updated_at = ?,
                    version = version + 1
                WHERE id = ? AND version = ? AND status IN (?, ?)
                """,
                (
                    alert.label,
                    alert.severity.value,
                    alert.occurrence_count,
                    alert.affected_users,
                    _iso(alert.first_occurrence),
                    _iso(alert.last_occurrence),
                    json.dumps(alert.keywords),
                    alert.suggested_action,
                    json.dumps(alert.member_ticket_ids),
                    _iso(alert.updated_at),
                    alert.id,
                    alert.version,
                    *_OPEN_STATUS_VALUES,
                ),
            )
            if cursor.rowcount == 0:
                await self._conn.rollback()
                raise StaleAlertError(
                    alert.id, f"version {alert.version} is no longer current"
                )
            await self._conn.commit()

        return await self.get_alert(alert.id)

    async def transition_alert(
        self,
        alert: RecurringAlert,
        entry: AuditEntry,
    ) -> RecurringAlert:
        """
        Write a status transition and its audit entry in one transaction.

        Args:
            alert: Alert with the new status and lifecycle fields, carrying
                the version it was read at
            entry: Audit entry describing the transition

        Returns:
            The stored alert after the write

        Raises:
            StaleAlertError: Version or status changed since the read
        """
        async with self._write_lock:
            try:
                cursor = await self._conn.execute(
                    """
                    UPDATE recurring_alerts SET
                        status = ?,
                        acknowledged_by = ?,
                        acknowledged_at = ?,
                        resolved_by = ?,
                        resolved_at = ?,
                        dismissed_by = ?,
                        dismissed_at = ?,
                        notes = ?,
                        updated_at = ?,
                        version = version + 1
                    WHERE id = ? AND version = ? AND status = ?
                    """,
                    (
                        alert.status.value,
                        alert.acknowledged_by,
                        _iso(alert.acknowledged_at),
                        alert.resolved_by,
                        _iso(alert.resolved_at),
                        alert.dismissed_by,
                        _iso(alert.dismissed_at),
                        alert.notes,
                        _iso(alert.updated_at),
                        alert.id,
                        alert.version,
                        entry.from_status.value,
                    ),
                )
                if cursor.rowcount == 0:
                    await self._conn.rollback()
                    raise StaleAlertError(
                        alert.id,
                        f"expected version {alert.version} in status {entry.from_status.value}",
                    )

                await self._conn.execute(
                    """
                    INSERT INTO alert_audit_log (
                        alert_id, action, from_status, to_status,
                        acting_user_id, notes, timestamp
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        entry.alert_id,
                        entry.action.value,
                        entry.from_status.value,
                        entry.to_status.value,
                        entry.acting_user_id,
                        entry.notes,
                        _iso(entry.timestamp),
                    ),
                )
                await self._conn.commit()
            except aiosqlite.Error:
                await self._conn.rollback()
                raise

        return await self.get_alert(alert.id)

    async def list_audit_entries(self, alert_id: int) -> list[AuditEntry]:
        """
        Retrieve the audit trail of an alert in chronological order.

        Args:
            alert_id: Alert identifier

        Returns:
            List of audit entries, oldest first
        """
        async with self._conn.execute(
            """
            SELECT * FROM alert_audit_log
            WHERE alert_id = ?
            ORDER BY timestamp ASC, id ASC
            """,
            (alert_id,),
        ) as cursor:
            rows = await cursor.fetchall()

        return [self._row_to_audit_entry(row) for row in rows]

    async def get_stats(self) -> AlertStats:
        """
        Count alerts by status, plus severity and group type breakdowns.

        Breakdowns cover open (ACTIVE/ACKNOWLEDGED) alerts only.
        """
        async with self._conn.execute(
            "SELECT status, COUNT(*) AS n FROM recurring_alerts GROUP BY status"
        ) as cursor:
            by_status = {row["status"]: row["n"] for row in await cursor.fetchall()}

        async with self._conn.execute(
            """
            SELECT group_type, COUNT(*) AS n FROM recurring_alerts
            WHERE status IN (?, ?) GROUP BY group_type
            """,
            _OPEN_STATUS_VALUES,
        ) as cursor:
            by_group_type = {row["group_type"]: row["n"] for row in await cursor.fetchall()}

        async with self._conn.execute(
            """
            SELECT severity, COUNT(*) AS n FROM recurring_alerts
            WHERE status IN (?, ?) GROUP BY severity
            """,
            _OPEN_STATUS_VALUES,
        ) as cursor:
            by_severity = {row["severity"]: row["n"] for row in await cursor.fetchall()}

        return AlertStats(
            total=sum(by_status.values()),
            active=by_status.get(AlertStatus.ACTIVE.value, 0),
            acknowledged=by_status.get(AlertStatus.ACKNOWLEDGED.value, 0),
            resolved=by_status.get(AlertStatus.RESOLVED.value, 0),
            dismissed=by_status.get(AlertStatus.DISMISSED.value, 0),
            by_group_type=by_group_type,
            by_severity=by_severity,
        )
