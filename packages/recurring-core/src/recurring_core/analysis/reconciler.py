"""
Reconciliation of fresh candidates against stored alerts.

reconcile() is a pure planning step: it decides which alerts to create and
which open alerts to refresh, and the analyzer applies the plan through
the AlertRepository. Reconciliation never changes an alert's status and
never closes an alert whose group stopped recurring; closing is always an
agent decision.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping

from recurring_core.alerts.types import (
    AlertCandidate,
    AlertStatus,
    GroupKey,
    RecurringAlert,
    Severity,
)
from recurring_core.analysis.severity import severity_for
from recurring_core.analysis.signals import (
    DEFAULT_KEYWORD_TOP_N,
    extract_keywords,
    suggest_action,
)
from recurring_protocols import Ticket, TicketId


@dataclass(frozen=True)
class AlertStatistics:
    """
    Everything the reconciler owns on an alert, derived from one candidate.

    Attributes:
        group_key: Group the statistics describe
        occurrence_count: Number of member tickets
        affected_users: Distinct ticket authors
        first_occurrence: Earliest member created_at
        last_occurrence: Latest member created_at
        member_ticket_ids: Sorted member IDs
        keywords: Extracted keywords
        suggested_action: Guidance text
        severity: Derived severity
    """

    group_key: GroupKey
    occurrence_count: int
    affected_users: int
    first_occurrence: datetime
    last_occurrence: datetime
    member_ticket_ids: tuple[TicketId, ...]
    keywords: tuple[str, ...]
    suggested_action: str
    severity: Severity


@dataclass
class ReconciliationPlan:
    """
    Outcome of reconcile().

    Attributes:
        to_create: New ACTIVE alerts, not yet persisted
        to_update: Refreshed copies of open alerts, still carrying the
            version they were read at
        statistics: Statistics per group, for re-applying a refresh after
            an optimistic lock conflict
    """

    to_create: list[RecurringAlert] = field(default_factory=list)
    to_update: list[RecurringAlert] = field(default_factory=list)
    statistics: dict[GroupKey, AlertStatistics] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.to_create and not self.to_update


def summarize_candidate(
    candidate: AlertCandidate,
    tickets_by_id: Mapping[TicketId, Ticket],
    min_occurrences: int = 3,
    keyword_top_n: int = DEFAULT_KEYWORD_TOP_N,
) -> AlertStatistics:
    """
    Derive alert statistics, keywords, suggestion and severity for a candidate.

    Member texts are read in (created_at, id) order so keyword tie-breaking
    does not depend on snapshot order.
    """
    members = sorted(
        (tickets_by_id[ticket_id] for ticket_id in candidate.member_ticket_ids),
        key=lambda t: (t.created_at, t.id),
    )
    keywords = extract_keywords((t.text for t in members), keyword_top_n)
    return AlertStatistics(
        group_key=candidate.group_key,
        occurrence_count=candidate.occurrence_count,
        affected_users=candidate.affected_user_count,
        first_occurrence=candidate.first_occurrence,
        last_occurrence=candidate.last_occurrence,
        member_ticket_ids=tuple(sorted(candidate.member_ticket_ids)),
        keywords=tuple(keywords),
        suggested_action=suggest_action(
            candidate.group_key, candidate.occurrence_count, keywords
        ),
        severity=severity_for(candidate, len(tickets_by_id), min_occurrences),
    )


def new_alert(stats: AlertStatistics, now: datetime) -> RecurringAlert:
    """Build a fresh ACTIVE alert from statistics."""
    return RecurringAlert(
        group_type=stats.group_key.type,
        group_key=stats.group_key.value,
        label=stats.group_key.label,
        severity=stats.severity,
        occurrence_count=stats.occurrence_count,
        affected_users=stats.affected_users,
        first_occurrence=stats.first_occurrence,
        last_occurrence=stats.last_occurrence,
        keywords=list(stats.keywords),
        suggested_action=stats.suggested_action,
        status=AlertStatus.ACTIVE,
        member_ticket_ids=list(stats.member_ticket_ids),
        created_at=now,
        updated_at=now,
    )


def apply_statistics(
    alert: RecurringAlert,
    stats: AlertStatistics,
    now: datetime,
) -> RecurringAlert | None:
    """
    Refresh an open alert with new statistics.

    first_occurrence only moves earlier and last_occurrence only moves
    later, so an alert keeps its full observed span as the window slides.
    Status, lifecycle fields and version are left as they are.

    Returns:
        The refreshed copy, or None when nothing would change
    """
    update = {
        "occurrence_count": stats.occurrence_count,
        "affected_users": stats.affected_users,
        "first_occurrence": min(alert.first_occurrence, stats.first_occurrence),
        "last_occurrence": max(alert.last_occurrence, stats.last_occurrence),
        "member_ticket_ids": list(stats.member_ticket_ids),
        "keywords": list(stats.keywords),
        "suggested_action": stats.suggested_action,
        "severity": stats.severity,
        "label": stats.group_key.label,
    }
    if all(getattr(alert, name) == value for name, value in update.items()):
        return None
    update["updated_at"] = now
    return alert.model_copy(update=update)


def reconcile(
    candidates: Iterable[AlertCandidate],
    existing_alerts: Iterable[RecurringAlert],
    tickets_by_id: Mapping[TicketId, Ticket],
    now: datetime,
    min_occurrences: int = 3,
    keyword_top_n: int = DEFAULT_KEYWORD_TOP_N,
) -> ReconciliationPlan:
    """
    Plan the merge of candidates into the stored alert set.

    For each candidate, in the order given:
    - an open (ACTIVE/ACKNOWLEDGED) alert for the same group is refreshed
    - otherwise a new ACTIVE alert is planned, even if closed alerts exist
      for that group

    Closed alerts and alerts without a candidate are never touched.

    Args:
        candidates: Output of aggregate_groups()
        existing_alerts: Stored alerts (closed ones are ignored)
        tickets_by_id: The snapshot the candidates were built from
        now: Timestamp for created_at/updated_at
        min_occurrences: Inclusion threshold, used by severity
        keyword_top_n: Keyword cap

    Returns:
        ReconciliationPlan with creates and refreshes
    """
    open_by_key = {alert.key: alert for alert in existing_alerts if alert.is_open}

    plan = ReconciliationPlan()
    for candidate in candidates:
        stats = summarize_candidate(candidate, tickets_by_id, min_occurrences, keyword_top_n)
        plan.statistics[candidate.group_key] = stats

        existing = open_by_key.get(candidate.group_key)
        if existing is None:
            plan.to_create.append(new_alert(stats, now))
            continue

        refreshed = apply_statistics(existing, stats, now)
        if refreshed is not None:
            plan.to_update.append(refreshed)

    return plan
