"""
Alert types for the recurring issue engine.

This module defines the core data structures for alert management:
- GroupType / GroupKey: Tagged variant identifying a ticket group
- Severity: Ordered alert urgency levels
- AlertStatus: Valid alert states
- AlertCandidate: Ephemeral group statistics from one analysis run
- RecurringAlert: Persistent, lifecycle-managed alert record
- AuditEntry: Immutable record of one status transition

Per project patterns:
- Use str enum for easy JSON serialization
- Dataclasses for ephemeral values, Pydantic BaseModel for persisted records
- Field() with descriptions for documentation
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from recurring_protocols import TicketId, UserId


class GroupType(str, Enum):
    """Dimension a ticket group was partitioned on."""

    CATEGORY = "category"
    TAG = "tag"
    PRIORITY = "priority"


# Tie-break order when two groups share count and key string
GROUP_TYPE_ORDER: dict[GroupType, int] = {
    GroupType.CATEGORY: 0,
    GroupType.TAG: 1,
    GroupType.PRIORITY: 2,
}


@dataclass(frozen=True)
class GroupKey:
    """
    Identifies one ticket group: a dimension plus the shared value.

    Category and priority values and tag IDs are all carried as strings,
    but the type tag keeps them apart, so category "HIGH" and priority
    "HIGH" are different groups.
    """

    type: GroupType
    value: str

    @property
    def label(self) -> str:
        """Human-readable rendering used as the alert label."""
        if self.type is GroupType.CATEGORY:
            return f"Category: {self.value}"
        if self.type is GroupType.TAG:
            return f"Tag: #{self.value}"
        if self.type is GroupType.PRIORITY:
            return f"Priority: {self.value}"
        raise ValueError(f"Unknown group type: {self.type!r}")

    def __str__(self) -> str:
        return f"{self.type.value}:{self.value}"


class Severity(str, Enum):
    """Alert urgency, ordered LOW < MEDIUM < HIGH < CRITICAL."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Numeric rank for ordering (higher is more urgent)."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class AlertStatus(str, Enum):
    """
    Valid alert states.

    Alerts flow through these states:
        active -> acknowledged -> resolved/dismissed
        active -> resolved/dismissed
    """

    ACTIVE = "active"
    """Detected, nobody has looked at it yet."""

    ACKNOWLEDGED = "acknowledged"
    """An agent has taken ownership."""

    RESOLVED = "resolved"
    """Root cause fixed. Terminal."""

    DISMISSED = "dismissed"
    """Judged not actionable. Terminal."""

    @property
    def is_terminal(self) -> bool:
        """True for states no action can leave."""
        return self in (AlertStatus.RESOLVED, AlertStatus.DISMISSED)


OPEN_STATUSES: tuple[AlertStatus, ...] = (AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED)


class AlertAction(str, Enum):
    """Agent actions that drive the alert lifecycle."""

    ACKNOWLEDGE = "acknowledge"
    RESOLVE = "resolve"
    DISMISS = "dismiss"


@dataclass(frozen=True)
class AlertCandidate:
    """
    A group of tickets sharing one dimension value, from a single run.

    Candidates are computed fresh on every analysis run and never
    persisted. occurrence_count always equals len(member_ticket_ids).

    Attributes:
        group_key: Dimension and value the members share
        member_ticket_ids: IDs of tickets in the group
        occurrence_count: Number of member tickets
        affected_user_count: Distinct ticket authors among members
        first_occurrence: Earliest member created_at
        last_occurrence: Latest member created_at
    """

    group_key: GroupKey
    member_ticket_ids: frozenset[TicketId]
    occurrence_count: int
    affected_user_count: int
    first_occurrence: datetime
    last_occurrence: datetime


class RecurringAlert(BaseModel):
    """
    Persistent record of a recognized recurring issue.

    Statistics fields are owned by the reconciler and refreshed on every
    analysis run while the alert is open. Status and the *_by / *_at
    fields are owned by the lifecycle. version increments on every write
    and guards both writers against lost updates.

    Attributes:
        id: Database ID (None before insert)
        group_type: Dimension the alert groups on
        group_key: Shared value (category, tag ID or priority)
        label: Human-readable group description
        severity: Derived urgency, never edited by hand
        occurrence_count: Number of member tickets
        affected_users: Distinct ticket authors among members
        first_occurrence: Earliest member ticket seen for this alert
        last_occurrence: Latest member ticket seen for this alert
        keywords: Most frequent tokens in member tickets
        suggested_action: Guidance text for agents
        status: Current lifecycle state
        acknowledged_by / acknowledged_at: Who took ownership and when
        resolved_by / resolved_at: Who resolved and when
        dismissed_by / dismissed_at: Who dismissed and when
        notes: Free-text notes from the last action that supplied them
        member_ticket_ids: Sorted IDs of tickets in the group
        version: Optimistic lock counter
        created_at / updated_at: Record timestamps
    """

    id: int | None = Field(default=None, description="Database ID (None before insert)")
    group_type: GroupType = Field(..., description="Dimension the alert groups on")
    group_key: str = Field(..., description="Category value, tag ID or priority value")
    label: str = Field(..., description="Human-readable group description")
    severity: Severity = Field(..., description="Derived urgency level")
    occurrence_count: int = Field(..., ge=0, description="Number of member tickets")
    affected_users: int = Field(..., ge=0, description="Distinct ticket authors")
    first_occurrence: datetime
    last_occurrence: datetime
    keywords: list[str] = Field(default_factory=list)
    suggested_action: str = ""
    status: AlertStatus = AlertStatus.ACTIVE
    acknowledged_by: UserId | None = None
    acknowledged_at: datetime | None = None
    resolved_by: UserId | None = None
    resolved_at: datetime | None = None
    dismissed_by: UserId | None = None
    dismissed_at: datetime | None = None
    notes: str | None = None
    member_ticket_ids: list[TicketId] = Field(default_factory=list)
    version: int = Field(default=0, description="Optimistic lock counter")
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def key(self) -> GroupKey:
        """The alert's group as a GroupKey."""
        return GroupKey(self.group_type, self.group_key)

    @property
    def is_open(self) -> bool:
        """True while the alert is ACTIVE or ACKNOWLEDGED."""
        return not self.status.is_terminal

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return self.model_dump(mode="json")


class AuditEntry(BaseModel):
    """
    Immutable record of one alert status transition.

    Attributes:
        id: Database ID (None before insert)
        alert_id: The alert that changed
        action: The action that caused the change
        from_status: Status before the transition
        to_status: Status after the transition
        acting_user_id: Agent who performed the action
        timestamp: When the transition happened
        notes: Notes supplied with the action
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = Field(default=None, description="Database ID (None before insert)")
    alert_id: int
    action: AlertAction
    from_status: AlertStatus
    to_status: AlertStatus
    acting_user_id: UserId
    timestamp: datetime
    notes: str | None = None


class AlertStats(BaseModel):
    """Alert counts by status, plus breakdowns of open alerts."""

    total: int = 0
    active: int = 0
    acknowledged: int = 0
    resolved: int = 0
    dismissed: int = 0
    by_group_type: dict[str, int] = Field(default_factory=dict)
    by_severity: dict[str, int] = Field(default_factory=dict)
