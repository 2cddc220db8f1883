"""
Group aggregation over a ticket snapshot.

Partitions tickets three independent ways (by category, by each tag, by
priority) and turns every partition key with enough members into an
AlertCandidate. Output order is deterministic: descending occurrence
count, then ascending key string, then group type.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterable

from recurring_core.alerts.types import (
    GROUP_TYPE_ORDER,
    AlertCandidate,
    GroupKey,
    GroupType,
)
from recurring_protocols import Ticket, TicketId

DEFAULT_WINDOW_DAYS = 30
DEFAULT_MIN_OCCURRENCES = 3


def group_keys_for(ticket: Ticket) -> list[GroupKey]:
    """
    Every group a ticket belongs to.

    A ticket always lands in exactly one CATEGORY and one PRIORITY group,
    and in one TAG group per attached tag.
    """
    keys = [GroupKey(GroupType.CATEGORY, ticket.category)]
    keys.extend(GroupKey(GroupType.TAG, tag_id) for tag_id in sorted(ticket.tag_ids))
    keys.append(GroupKey(GroupType.PRIORITY, ticket.priority))
    return keys


def tickets_in_window(
    tickets: Iterable[Ticket],
    now: datetime,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> dict[TicketId, Ticket]:
    """
    Index tickets created inside the trailing window by ID.

    Duplicate IDs collapse to one entry (last one wins).
    """
    window_start = now - timedelta(days=window_days)
    return {t.id: t for t in tickets if t.created_at >= window_start}


def _sort_key(candidate: AlertCandidate) -> tuple[int, str, int]:
    return (
        -candidate.occurrence_count,
        candidate.group_key.value,
        GROUP_TYPE_ORDER[candidate.group_key.type],
    )


def aggregate_groups(
    tickets: Iterable[Ticket],
    now: datetime,
    window_days: int = DEFAULT_WINDOW_DAYS,
    min_occurrences: int = DEFAULT_MIN_OCCURRENCES,
) -> list[AlertCandidate]:
    """
    Build alert candidates from a ticket snapshot.

    Args:
        tickets: Snapshot from the ticket reader
        now: Reference time the window trails from
        window_days: Width of the trailing window in days
        min_occurrences: Groups with fewer members are discarded

    Returns:
        Candidates ordered by descending occurrence count, ties broken by
        ascending group key string. Empty snapshot gives an empty list.
    """
    members: dict[GroupKey, list[Ticket]] = defaultdict(list)
    for ticket in tickets_in_window(tickets, now, window_days).values():
        for key in group_keys_for(ticket):
            members[key].append(ticket)

    candidates = []
    for key, group in members.items():
        if len(group) < min_occurrences:
            continue
        created = [t.created_at for t in group]
        candidates.append(
            AlertCandidate(
                group_key=key,
                member_ticket_ids=frozenset(t.id for t in group),
                occurrence_count=len(group),
                affected_user_count=len({t.created_by_user_id for t in group}),
                first_occurrence=min(created),
                last_occurrence=max(created),
            )
        )

    candidates.sort(key=_sort_key)
    return candidates
