"""Tests for severity classification."""

from datetime import datetime, timezone

import pytest

from recurring_core.alerts.types import AlertCandidate, GroupKey, GroupType, Severity
from recurring_core.analysis.severity import classify_severity, severity_for


class TestClassifySeverity:
    """Tests for the ordered severity rules."""

    @pytest.mark.parametrize(
        "occurrences,users,expected",
        [
            (10, 1, Severity.CRITICAL),
            (3, 8, Severity.CRITICAL),
            (25, 20, Severity.CRITICAL),
            (6, 1, Severity.HIGH),
            (9, 7, Severity.HIGH),
            (8, 2, Severity.HIGH),
            (4, 4, Severity.HIGH),
            (4, 3, Severity.MEDIUM),
            (5, 2, Severity.MEDIUM),
            (3, 1, Severity.MEDIUM),
            (2, 1, Severity.LOW),
        ],
    )
    def test_rules(self, occurrences, users, expected):
        assert classify_severity(occurrences, users, GroupType.CATEGORY) == expected

    @pytest.mark.parametrize("group_type", list(GroupType))
    def test_same_thresholds_for_every_group_type(self, group_type):
        """Group type does not change the outcome."""
        assert classify_severity(10, 1, group_type) == Severity.CRITICAL
        assert classify_severity(5, 2, group_type) == Severity.MEDIUM

    def test_medium_follows_min_occurrences(self):
        """Below a raised threshold the result is LOW."""
        assert classify_severity(4, 1, GroupType.TAG, min_occurrences=5) == Severity.LOW
        assert classify_severity(5, 1, GroupType.TAG, min_occurrences=5) == Severity.MEDIUM

    def test_unknown_group_type_rejected(self):
        with pytest.raises(ValueError, match="Unknown group type"):
            classify_severity(5, 2, "department")

    def test_deterministic(self):
        """Identical inputs give identical results."""
        results = {classify_severity(7, 3, GroupType.PRIORITY) for _ in range(5)}
        assert results == {Severity.HIGH}


class TestSeverityFor:
    """Tests for candidate classification."""

    def test_uses_candidate_statistics(self):
        ts = datetime(2026, 3, 1, tzinfo=timezone.utc)
        candidate = AlertCandidate(
            group_key=GroupKey(GroupType.CATEGORY, "NETWORK"),
            member_ticket_ids=frozenset(f"T{i}" for i in range(8)),
            occurrence_count=8,
            affected_user_count=2,
            first_occurrence=ts,
            last_occurrence=ts,
        )

        assert severity_for(candidate, total_tickets_in_window=40) == Severity.HIGH


class TestSeverityOrdering:
    """Tests for Severity.rank."""

    def test_rank_order(self):
        ranks = [s.rank for s in (Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL)]
        assert ranks == sorted(ranks)
        assert len(set(ranks)) == 4
