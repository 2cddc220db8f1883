"""
SQLite schema for recurring alert persistence.

This module defines the database schema for:
- Recurring alerts (one row per detected recurring issue)
- Alert audit log (one row per status transition)

The schema supports:
- Alert lifecycle (active -> acknowledged -> resolved/dismissed)
- At most one open alert per group via a partial unique index
- Optimistic locking via the version column
- History retention: rows are never deleted
"""

SCHEMA_SQL = """
-- Recurring alerts, one per detected recurring ticket group
CREATE TABLE IF NOT EXISTS recurring_alerts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    group_type TEXT NOT NULL,              -- category, tag, priority
    group_key TEXT NOT NULL,               -- category value, tag id, priority value
    label TEXT NOT NULL,
    severity TEXT NOT NULL,                -- low, medium, high, critical
    occurrence_count INTEGER NOT NULL,
    affected_users INTEGER NOT NULL,
    first_occurrence TEXT NOT NULL,        -- ISO8601 timestamp
    last_occurrence TEXT NOT NULL,
    keywords TEXT NOT NULL DEFAULT '[]',   -- JSON array, most frequent first
    suggested_action TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT 'active', -- active, acknowledged, resolved, dismissed
    acknowledged_by TEXT,
    acknowledged_at TEXT,
    resolved_by TEXT,
    resolved_at TEXT,
    dismissed_by TEXT,
    dismissed_at TEXT,
    notes TEXT,
    member_ticket_ids TEXT NOT NULL DEFAULT '[]',  -- JSON array, sorted
    version INTEGER NOT NULL DEFAULT 0,    -- Optimistic lock counter
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- One open alert per group; closed alerts do not block a new one
CREATE UNIQUE INDEX IF NOT EXISTS idx_recurring_alerts_open_group
ON recurring_alerts(group_type, group_key)
WHERE status IN ('active', 'acknowledged');

-- Index for status filters and stats
CREATE INDEX IF NOT EXISTS idx_recurring_alerts_status
ON recurring_alerts(status);

-- Audit log for alert status transitions
CREATE TABLE IF NOT EXISTS alert_audit_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    alert_id INTEGER NOT NULL,
    action TEXT NOT NULL,                  -- acknowledge, resolve, dismiss
    from_status TEXT NOT NULL,
    to_status TEXT NOT NULL,
    acting_user_id TEXT NOT NULL,
    notes TEXT,
    timestamp TEXT NOT NULL,               -- ISO8601 timestamp
    FOREIGN KEY (alert_id) REFERENCES recurring_alerts(id)
);

-- Index for per-alert history
CREATE INDEX IF NOT EXISTS idx_alert_audit_alert
ON alert_audit_log(alert_id);

-- Audit entries are append-only
CREATE TRIGGER IF NOT EXISTS alert_audit_log_no_update
BEFORE UPDATE ON alert_audit_log
BEGIN
    SELECT RAISE(ABORT, 'alert_audit_log is append-only');
END;

CREATE TRIGGER IF NOT EXISTS alert_audit_log_no_delete
BEFORE DELETE ON alert_audit_log
BEGIN
    SELECT RAISE(ABORT, 'alert_audit_log is append-only');
END;
"""
