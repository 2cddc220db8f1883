"""
Exception classes for recurring alert analysis and lifecycle actions.

This module defines the error taxonomy of the engine:
- SnapshotUnavailableError: Ticket source unreachable during a run
- ValidationError: Action input rejected (e.g., resolve without notes)
- InvalidTransitionError: Status transition not permitted
- NotFoundError: Unknown alert ID
- ConcurrentRunRejected: Analysis requested while a run is in flight
- StaleAlertError: Optimistic lock conflict on an alert record

Per project patterns:
- Store context data in attributes for error handling
- Include descriptive message with relevant details
"""


class RecurringAlertError(Exception):
    """Base class for all engine errors."""


class SnapshotUnavailableError(RecurringAlertError):
    """
    Raised when the ticket source cannot provide a snapshot.

    The analysis run aborts before any alert is written. The scheduler
    logs the failure and retries on its next tick.

    Attributes:
        source: Description of the ticket source (URL, name)
        reason: Why the snapshot could not be read
    """

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Ticket snapshot unavailable from {source}: {reason}")


class ValidationError(RecurringAlertError):
    """
    Raised when a lifecycle action is called with invalid input.

    Attributes:
        alert_id: The alert the action targeted
        errors: List of human-readable error messages
    """

    def __init__(self, alert_id: int, errors: list[str]) -> None:
        self.alert_id = alert_id
        self.errors = errors
        super().__init__(str(self))

    def __str__(self) -> str:
        """Format as readable error message."""
        error_list = "; ".join(self.errors)
        return f"Validation failed for alert {self.alert_id}: {error_list}"


class InvalidTransitionError(RecurringAlertError):
    """
    Raised when an action is not permitted from the alert's current status.

    Attributes:
        alert_id: The alert the action targeted
        action: The requested action (acknowledge, resolve, dismiss)
        current_status: Status the alert was in
    """

    def __init__(self, alert_id: int, action: str, current_status: str) -> None:
        self.alert_id = alert_id
        self.action = action
        self.current_status = current_status
        super().__init__(
            f"Cannot {action} alert {alert_id}: alert is {current_status}"
        )


class NotFoundError(RecurringAlertError):
    """
    Raised when an alert ID does not exist.

    Attributes:
        alert_id: The unknown alert ID
    """

    def __init__(self, alert_id: int) -> None:
        self.alert_id = alert_id
        super().__init__(f"Alert {alert_id} not found")


class ConcurrentRunRejected(RecurringAlertError):
    """
    Raised when an analysis run is requested while another is in flight.

    Callers treat this as a successful no-op: the in-flight run covers the
    same intent.

    Attributes:
        requested_by: Who asked for the rejected run
    """

    def __init__(self, requested_by: str) -> None:
        self.requested_by = requested_by
        super().__init__(
            f"Analysis requested by {requested_by} rejected: a run is already in progress"
        )


class StaleAlertError(RecurringAlertError):
    """
    Raised when an alert changed between read and write.

    Writers compare the version they read with the stored version. A
    mismatch means a concurrent writer got there first; the caller re-reads
    the record and decides again.

    Attributes:
        alert_id: The contended alert (None when a create collided)
        reason: What was detected
    """

    def __init__(self, alert_id: int | None, reason: str) -> None:
        self.alert_id = alert_id
        self.reason = reason
        target = f"alert {alert_id}" if alert_id is not None else "new alert"
        super().__init__(f"Concurrent modification of {target}: {reason}")
