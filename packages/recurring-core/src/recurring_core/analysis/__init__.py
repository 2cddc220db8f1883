"""
Analysis module for detecting recurring ticket groups.

Exports:
    aggregate_groups: Group window tickets into alert candidates
    reconcile: Plan creates and refreshes against open alerts
    RecurringIssueAnalyzer: Runs one analysis pass
    AnalysisScheduler: Daemon for periodic and on-demand passes
"""

from recurring_core.analysis.aggregator import aggregate_groups
from recurring_core.analysis.analyzer import AnalysisReport, RecurringIssueAnalyzer
from recurring_core.analysis.reconciler import ReconciliationPlan, reconcile
from recurring_core.analysis.scheduler import AnalysisScheduler, TriggerResult

__all__ = [
    "AnalysisReport",
    "AnalysisScheduler",
    "ReconciliationPlan",
    "RecurringIssueAnalyzer",
    "TriggerResult",
    "aggregate_groups",
    "reconcile",
]
