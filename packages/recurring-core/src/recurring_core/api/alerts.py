"""Recurring alert API endpoints."""

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel

from recurring_core.alerts.types import (
    AlertStats,
    AlertStatus,
    AuditEntry,
    GroupType,
    RecurringAlert,
    Severity,
)
from recurring_core.errors import (
    InvalidTransitionError,
    NotFoundError,
    RecurringAlertError,
    StaleAlertError,
    ValidationError,
)
from recurring_core.service import AlertService

alerts_router = APIRouter(prefix="/api/recurring-alerts", tags=["recurring-alerts"])


class AlertListResponse(BaseModel):
    """Response from GET /api/recurring-alerts."""

    alerts: list[RecurringAlert]
    count: int


class AlertActionRequest(BaseModel):
    """Body of acknowledge/resolve/dismiss requests."""

    notes: str | None = None


class AlertActionResponse(BaseModel):
    """Response from acknowledge/resolve/dismiss."""

    alert: RecurringAlert
    message: str


class TriggerResponse(BaseModel):
    """Response from POST /api/recurring-alerts/analyze."""

    accepted: bool
    message: str


def get_alert_service(request: Request) -> AlertService:
    """Dependency returning the service wired into the application."""
    return request.app.state.alert_service


def _to_http_error(error: RecurringAlertError) -> HTTPException:
    """Map engine errors to HTTP status codes."""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, (InvalidTransitionError, StaleAlertError)):
        return HTTPException(status_code=409, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


def _notes(body: AlertActionRequest | None) -> str | None:
    return body.notes if body is not None else None


@alerts_router.get("", response_model=AlertListResponse)
async def list_alerts(
    status: AlertStatus | None = None,
    severity: Severity | None = None,
    group_type: GroupType | None = None,
    service: AlertService = Depends(get_alert_service),
) -> AlertListResponse:
    """Return alerts, most severe and most recent first."""
    alerts = await service.list_alerts(status=status, severity=severity, group_type=group_type)
    return AlertListResponse(alerts=alerts, count=len(alerts))


@alerts_router.get("/stats", response_model=AlertStats)
async def get_stats(service: AlertService = Depends(get_alert_service)) -> AlertStats:
    """Return alert counts by status."""
    return await service.get_alert_stats()


@alerts_router.post("/analyze", response_model=TriggerResponse)
async def trigger_analysis(
    x_user_id: str = Header(..., alias="X-User-Id"),
    service: AlertService = Depends(get_alert_service),
) -> TriggerResponse:
    """Start an out-of-cycle analysis pass without waiting for it."""
    result = service.trigger_analysis(requested_by=x_user_id)
    if result.accepted:
        return TriggerResponse(accepted=True, message="Analysis started in background")
    return TriggerResponse(accepted=False, message=result.reason)


@alerts_router.get("/{alert_id}", response_model=RecurringAlert)
async def get_alert(
    alert_id: int,
    service: AlertService = Depends(get_alert_service),
) -> RecurringAlert:
    """Return one alert."""
    try:
        return await service.get_alert(alert_id)
    except RecurringAlertError as e:
        raise _to_http_error(e) from e


@alerts_router.get("/{alert_id}/audit", response_model=list[AuditEntry])
async def get_audit_trail(
    alert_id: int,
    service: AlertService = Depends(get_alert_service),
) -> list[AuditEntry]:
    """Return the status history of one alert, oldest first."""
    try:
        return await service.get_audit_trail(alert_id)
    except RecurringAlertError as e:
        raise _to_http_error(e) from e


@alerts_router.post("/{alert_id}/acknowledge", response_model=AlertActionResponse)
async def acknowledge_alert(
    alert_id: int,
    body: AlertActionRequest | None = None,
    x_user_id: str = Header(..., alias="X-User-Id"),
    service: AlertService = Depends(get_alert_service),
) -> AlertActionResponse:
    """Take ownership of an active alert."""
    try:
        alert = await service.acknowledge(alert_id, x_user_id, _notes(body))
    except RecurringAlertError as e:
        raise _to_http_error(e) from e
    return AlertActionResponse(alert=alert, message="Alert acknowledged successfully")


@alerts_router.post("/{alert_id}/resolve", response_model=AlertActionResponse)
async def resolve_alert(
    alert_id: int,
    body: AlertActionRequest | None = None,
    x_user_id: str = Header(..., alias="X-User-Id"),
    service: AlertService = Depends(get_alert_service),
) -> AlertActionResponse:
    """Close an alert as fixed. Notes are required."""
    try:
        alert = await service.resolve(alert_id, x_user_id, _notes(body))
    except RecurringAlertError as e:
        raise _to_http_error(e) from e
    return AlertActionResponse(alert=alert, message="Alert resolved successfully")


@alerts_router.post("/{alert_id}/dismiss", response_model=AlertActionResponse)
async def dismiss_alert(
    alert_id: int,
    body: AlertActionRequest | None = None,
    x_user_id: str = Header(..., alias="X-User-Id"),
    service: AlertService = Depends(get_alert_service),
) -> AlertActionResponse:
    """Close an alert as not actionable."""
    try:
        alert = await service.dismiss(alert_id, x_user_id, _notes(body))
    except RecurringAlertError as e:
        raise _to_http_error(e) from e
    return AlertActionResponse(alert=alert, message="Alert dismissed successfully")
