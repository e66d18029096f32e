import uuid

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from sitepulse.services.analytics import (
    SiteNotConfiguredError,
    SiteNotFoundError,
    TelemetryUnavailableError,
)

router = APIRouter()


def _scheduler(request: Request):
    return request.app.state.scheduler


def _analytics(request: Request):
    return request.app.state.analytics


@router.get("/health")
def health():
    return {"status": "ok"}


class IntervalUpdateRequest(BaseModel):
    minutes: int


@router.post("/sync/refresh")
def refresh(request: Request):
    """Run a data sync now. Returns success=false if one is already running."""
    return _scheduler(request).manual_refresh()


@router.get("/sync/stats")
def sync_stats(request: Request):
    scheduler = _scheduler(request)
    return {
        "state": scheduler.state,
        "interval_minutes": scheduler.interval_minutes,
        "cadence": scheduler.cadence,
        "stats": scheduler.get_stats(),
    }


@router.put("/sync/interval")
def update_interval(req: IntervalUpdateRequest, request: Request):
    return _scheduler(request).update_interval(req.minutes)


@router.get("/sites/{site_id}/predictions")
def site_predictions(site_id: uuid.UUID, request: Request, notify: bool = False):
    """
    Run degradation, equipment, maintenance and weather analyses for a site.

    With `notify=true`, critical and high findings are also emailed to the
    site's operations users.
    """
    analytics = _analytics(request)
    try:
        predictions = analytics.analyze_site_performance(site_id)
    except SiteNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SiteNotConfiguredError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TelemetryUnavailableError as e:
        raise HTTPException(status_code=502, detail=f"Telemetry unavailable: {e}")

    notified = analytics.send_alert_notifications(predictions, site_id) if notify else 0
    return {"site_id": site_id, "predictions": predictions, "notifications_sent": notified}


@router.get("/organizations/{organization_id}/health")
def organization_health(organization_id: uuid.UUID, request: Request):
    return {"organization_id": organization_id,
            "sites": _analytics(request).get_system_health_overview(organization_id)}
