"""Tests for ticket group aggregation."""

from dataclasses import replace
from datetime import timedelta

from recurring_core.alerts.types import GroupKey, GroupType
from recurring_core.analysis.aggregator import (
    aggregate_groups,
    group_keys_for,
    tickets_in_window,
)


class TestGroupKeys:
    """Tests for group_keys_for()."""

    def test_category_and_priority_always_present(self, make_ticket):
        """A ticket without tags lands in one category and one priority group."""
        ticket = make_ticket(category="HARDWARE", priority="HIGH")

        assert group_keys_for(ticket) == [
            GroupKey(GroupType.CATEGORY, "HARDWARE"),
            GroupKey(GroupType.PRIORITY, "HIGH"),
        ]

    def test_one_group_per_tag(self, make_ticket):
        """Each tag adds its own group."""
        ticket = make_ticket(tags=("12", "4"))

        keys = group_keys_for(ticket)

        assert GroupKey(GroupType.TAG, "12") in keys
        assert GroupKey(GroupType.TAG, "4") in keys
        assert len(keys) == 4

    def test_same_value_different_type_are_distinct(self):
        """Category HIGH and priority HIGH are different groups."""
        assert GroupKey(GroupType.CATEGORY, "HIGH") != GroupKey(GroupType.PRIORITY, "HIGH")


class TestAggregateGroups:
    """Tests for aggregate_groups()."""

    def test_network_tickets_form_single_candidate(self, make_ticket, now):
        """Five NETWORK tickets from two users give one category candidate."""
        priorities = ["LOW", "LOW", "MEDIUM", "MEDIUM", "HIGH"]
        users = ["anna", "anna", "anna", "piotr", "piotr"]
        tickets = [
            make_ticket(category="NETWORK", priority=p, user=u)
            for p, u in zip(priorities, users)
        ]

        candidates = aggregate_groups(tickets, now)

        assert len(candidates) == 1
        candidate = candidates[0]
        assert candidate.group_key == GroupKey(GroupType.CATEGORY, "NETWORK")
        assert candidate.occurrence_count == 5
        assert candidate.affected_user_count == 2
        assert candidate.member_ticket_ids == frozenset(t.id for t in tickets)

    def test_group_below_threshold_is_dropped(self, make_ticket, now):
        """Two tickets are not enough for the default threshold of three."""
        tickets = [make_ticket(priority="LOW"), make_ticket(priority="HIGH")]

        assert aggregate_groups(tickets, now) == []

    def test_empty_snapshot(self, now):
        """No tickets, no candidates."""
        assert aggregate_groups([], now) == []

    def test_custom_min_occurrences(self, make_ticket, now):
        """The threshold is configurable."""
        tickets = [make_ticket(priority="LOW"), make_ticket(priority="HIGH")]

        candidates = aggregate_groups(tickets, now, min_occurrences=2)

        assert [c.group_key for c in candidates] == [GroupKey(GroupType.CATEGORY, "NETWORK")]

    def test_tickets_outside_window_are_ignored(self, make_ticket, now):
        """Tickets older than the window never count."""
        tickets = [
            make_ticket(priority="LOW", days_ago=2),
            make_ticket(priority="MEDIUM", days_ago=3),
            make_ticket(priority="HIGH", days_ago=31),
        ]

        assert aggregate_groups(tickets, now, window_days=30) == []

    def test_window_start_is_inclusive(self, make_ticket, now):
        """A ticket created exactly at the window start is inside."""
        boundary = replace(make_ticket(priority="HIGH"), created_at=now - timedelta(days=30))
        tickets = [make_ticket(priority="LOW"), make_ticket(priority="MEDIUM"), boundary]

        candidates = aggregate_groups(tickets, now, window_days=30)

        assert candidates[0].occurrence_count == 3
        assert candidates[0].first_occurrence == boundary.created_at

    def test_ticket_counts_in_every_group(self, make_ticket, now):
        """Three tickets sharing category, priority and tag give three candidates."""
        tickets = [make_ticket(category="NETWORK", priority="LOW", tags=("7",)) for _ in range(3)]

        candidates = aggregate_groups(tickets, now)

        assert [c.group_key for c in candidates] == [
            GroupKey(GroupType.TAG, "7"),
            GroupKey(GroupType.PRIORITY, "LOW"),
            GroupKey(GroupType.CATEGORY, "NETWORK"),
        ]

    def test_ordered_by_count_then_key(self, make_ticket, now):
        """Larger groups come first; equal counts are ordered by key string."""
        tickets = (
            [make_ticket(category="SOFTWARE", priority="P1") for _ in range(3)]
            + [make_ticket(category="NETWORK", priority="P2") for _ in range(4)]
        )

        candidates = aggregate_groups(tickets, now)

        assert [(c.group_key.value, c.occurrence_count) for c in candidates] == [
            ("NETWORK", 4),
            ("P2", 4),
            ("P1", 3),
            ("SOFTWARE", 3),
        ]

    def test_equal_key_string_ordered_by_group_type(self, make_ticket, now):
        """Category HIGH sorts before priority HIGH when counts tie."""
        tickets = [make_ticket(category="HIGH", priority="HIGH") for _ in range(3)]

        candidates = aggregate_groups(tickets, now)

        assert [c.group_key.type for c in candidates] == [GroupType.CATEGORY, GroupType.PRIORITY]

    def test_occurrence_span(self, make_ticket, now):
        """first/last occurrence are the min/max member created_at."""
        tickets = [
            make_ticket(priority="LOW", days_ago=10),
            make_ticket(priority="MEDIUM", days_ago=1),
            make_ticket(priority="HIGH", days_ago=5),
        ]

        candidate = aggregate_groups(tickets, now)[0]

        assert candidate.first_occurrence == tickets[0].created_at
        assert candidate.last_occurrence == tickets[1].created_at

    def test_duplicate_ticket_counted_once(self, make_ticket, now):
        """A ticket listed twice in the snapshot is one occurrence."""
        first = make_ticket(priority="LOW")
        tickets = [first, first, make_ticket(priority="MEDIUM"), make_ticket(priority="HIGH")]

        candidate = aggregate_groups(tickets, now)[0]

        assert candidate.occurrence_count == 3
        assert candidate.occurrence_count == len(candidate.member_ticket_ids)


class TestTicketsInWindow:
    """Tests for tickets_in_window()."""

    def test_indexes_by_id(self, make_ticket, now):
        tickets = [make_ticket(ticket_id="A"), make_ticket(ticket_id="B")]

        indexed = tickets_in_window(tickets, now)

        assert set(indexed) == {"A", "B"}
