"""
Severity classification for alert candidates.

Rules are applied in order and the first match wins:

    CRITICAL  occurrences >= 10 or affected users >= 8
    HIGH      occurrences >= 6 or (occurrences >= 4 and affected users >= 4)
    MEDIUM    occurrences >= min_occurrences
    LOW       anything else

Breadth of impact (affected users) escalates faster than raw count, but
count alone still escalates, so a single department filing near-duplicate
tickets over and over is caught too.
"""

from recurring_core.alerts.types import AlertCandidate, GroupType, Severity

CRITICAL_OCCURRENCES = 10
CRITICAL_AFFECTED_USERS = 8
HIGH_OCCURRENCES = 6
HIGH_BROAD_OCCURRENCES = 4
HIGH_BROAD_AFFECTED_USERS = 4


def classify_severity(
    occurrence_count: int,
    affected_users: int,
    group_type: GroupType,
    min_occurrences: int = 3,
) -> Severity:
    """
    Map group statistics to a severity level.

    Pure function: identical inputs always give the same result. The same
    thresholds apply to every group type.

    Args:
        occurrence_count: Number of tickets in the group
        affected_users: Distinct ticket authors in the group
        group_type: Dimension of the group
        min_occurrences: Inclusion threshold used by the aggregator

    Returns:
        The Severity for these statistics
    """
    if group_type not in (GroupType.CATEGORY, GroupType.TAG, GroupType.PRIORITY):
        raise ValueError(f"Unknown group type: {group_type!r}")

    if occurrence_count >= CRITICAL_OCCURRENCES or affected_users >= CRITICAL_AFFECTED_USERS:
        return Severity.CRITICAL
    if occurrence_count >= HIGH_OCCURRENCES or (
        occurrence_count >= HIGH_BROAD_OCCURRENCES
        and affected_users >= HIGH_BROAD_AFFECTED_USERS
    ):
        return Severity.HIGH
    if occurrence_count >= min_occurrences:
        return Severity.MEDIUM
    return Severity.LOW


def severity_for(
    candidate: AlertCandidate,
    total_tickets_in_window: int,
    min_occurrences: int = 3,
) -> Severity:
    """
    Classify a candidate.

    total_tickets_in_window is part of the call signature so callers can
    pass window context, but the current rules do not use it.
    """
    return classify_severity(
        candidate.occurrence_count,
        candidate.affected_user_count,
        candidate.group_key.type,
        min_occurrences,
    )
