"""
Database module for alert persistence.

Exports:
    AlertDB: Async context manager for alert database operations
"""

from recurring_core.db.alerts import AlertDB

__all__ = ["AlertDB"]
