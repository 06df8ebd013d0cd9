"""
Alerts API
Endpoints for alert history, lifecycle actions and live streams.

Endpoints:
    GET    /api/alerts                          → List alerts (filters)
    GET    /api/alerts/statistics               → Counts by status/level/target type
    GET    /api/alerts/unread-count             → Unread alert count
    GET    /api/alerts/subscribers              → Live subscriber counts
    GET    /api/alerts/engine                   → Engine counters
    POST   /api/alerts/mark-as-read             → Mark given alerts as read
    POST   /api/alerts/mark-all-as-read         → Mark every alert as read
    DELETE /api/alerts                          → Delete alerts (all when no ids)
    GET    /api/alerts/subscribe                → SSE stream, every alert
    GET    /api/alerts/{target}/{id}/subscribe  → SSE stream, one target
    GET    /api/alerts/{id}                     → Alert detail
    POST   /api/alerts/{id}/acknowledge         → Acknowledge an alert
    POST   /api/alerts/{id}/resolve             → Resolve an alert
"""

import asyncio
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from alerts import AlertEngine
from config import Settings, get_settings
from core import (
    TargetRef,
    AlertLevel,
    AlertStatus,
    AlertNotFoundError,
)
from services import AlertNotifier, Subscription, ALL_TOPIC

from .deps import get_alert_engine, get_notifier, parse_target_type

router = APIRouter(prefix="/alerts", tags=["Alerts"])


# =============================================================================
# Request Models
# =============================================================================

class AlertIdsRequest(BaseModel):
    """Request body carrying alert ids"""
    alert_ids: List[int]


class DeleteAlertsRequest(BaseModel):
    """Omit alert_ids to delete every alert"""
    alert_ids: Optional[List[int]] = None


class AlertActionRequest(BaseModel):
    """Who performed an acknowledge/resolve action"""
    user: Optional[str] = None


# =============================================================================
# History & Statistics
# =============================================================================

@router.get("")
def list_alerts(
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    level: Optional[str] = None,
    status: Optional[str] = None,
    hours: Optional[int] = Query(default=None, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    engine: AlertEngine = Depends(get_alert_engine),
):
    """
    List alerts, most recent first.

    Filters: target_type (+ target_id), level (WARNING/CRITICAL),
    status (TRIGGERED/ACKNOWLEDGED/RESOLVED), hours (look-back window).
    """
    parsed_type = parse_target_type(target_type) if target_type else None
    if target_id is not None and parsed_type is None:
        raise HTTPException(400, "target_id requires target_type")

    try:
        parsed_level = AlertLevel(level.upper()) if level else None
        parsed_status = AlertStatus(status.upper()) if status else None
    except ValueError:
        raise HTTPException(400, f"Invalid filter: level={level} status={status}")

    target = TargetRef(parsed_type, target_id) if target_id is not None else None
    since = datetime.now() - timedelta(hours=hours) if hours else None

    alerts = engine.alerts.list_alerts(
        target=target,
        target_type=parsed_type,
        level=parsed_level,
        status=parsed_status,
        since=since,
        limit=limit,
        offset=offset,
    )
    return {
        "count": len(alerts),
        "alerts": [a.to_dict() for a in alerts],
    }


@router.get("/statistics")
def get_statistics(
    hours: Optional[int] = Query(default=None, ge=1),
    engine: AlertEngine = Depends(get_alert_engine),
):
    """Alert counts by status, level and target type"""
    since = datetime.now() - timedelta(hours=hours) if hours else None
    return engine.alerts.statistics(since=since)


@router.get("/unread-count")
def get_unread_count(engine: AlertEngine = Depends(get_alert_engine)):
    return {"unread_count": engine.alerts.count_unread()}


@router.get("/subscribers")
async def get_subscribers(
    topic: Optional[str] = None,
    notifier: AlertNotifier = Depends(get_notifier),
):
    """Live subscriber counts, per topic and total"""
    if topic:
        return {"topic": topic, "count": notifier.subscriber_count(topic)}
    return {
        "total": notifier.total_subscriber_count(),
        "topics": notifier.topics(),
    }


@router.get("/engine")
async def get_engine_stats(
    engine: AlertEngine = Depends(get_alert_engine),
    notifier: AlertNotifier = Depends(get_notifier),
):
    """Alert engine and notifier counters"""
    return {
        "engine": engine.stats(),
        "notifier": notifier.stats(),
    }


# =============================================================================
# Read / Delete
# =============================================================================

@router.post("/mark-as-read")
def mark_as_read(request: AlertIdsRequest, engine: AlertEngine = Depends(get_alert_engine)):
    if not request.alert_ids:
        raise HTTPException(400, "alert_ids must not be empty")
    updated = engine.alerts.mark_as_read(request.alert_ids)
    return {"message": f"{updated} alert(s) marked as read", "updated": updated}


@router.post("/mark-all-as-read")
def mark_all_as_read(engine: AlertEngine = Depends(get_alert_engine)):
    updated = engine.alerts.mark_all_as_read()
    return {"message": f"{updated} alert(s) marked as read", "updated": updated}


@router.delete("")
def delete_alerts(
    request: Optional[DeleteAlertsRequest] = None,
    engine: AlertEngine = Depends(get_alert_engine),
):
    alert_ids = request.alert_ids if request else None
    deleted = engine.alerts.delete(alert_ids)
    return {"message": f"{deleted} alert(s) deleted", "deleted": deleted}


# =============================================================================
# SSE Streams
# =============================================================================

async def _event_stream(
    request: Request,
    sub: Subscription,
    notifier: AlertNotifier,
    config: Settings,
):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + config.sse_timeout_seconds

    try:
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0 or await request.is_disconnected():
                break

            event = await sub.next_event(timeout=min(config.sse_keepalive_seconds, remaining))
            if event is not None:
                yield event.to_sse()
            elif sub.closed:
                break
            else:
                yield ": keepalive\n\n"
    finally:
        notifier.unsubscribe(sub)


def _sse_response(request: Request, sub: Subscription, notifier: AlertNotifier, config: Settings):
    return StreamingResponse(
        _event_stream(request, sub, notifier, config),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"  # Disable nginx buffering
        }
    )


@router.get("/subscribe")
async def subscribe_all(
    request: Request,
    notifier: AlertNotifier = Depends(get_notifier),
    config: Settings = Depends(get_settings),
):
    """
    Server-Sent Events stream of every alert lifecycle event.

    Connect via EventSource in browser:
        const es = new EventSource('/api/alerts/subscribe');
        es.addEventListener('alert-triggered', (e) => console.log(JSON.parse(e.data)));
    """
    sub = notifier.subscribe(ALL_TOPIC)
    return _sse_response(request, sub, notifier, config)


@router.get("/{target_type}/{target_id}/subscribe")
async def subscribe_target(
    target_type: str,
    target_id: int,
    request: Request,
    notifier: AlertNotifier = Depends(get_notifier),
    config: Settings = Depends(get_settings),
):
    """SSE stream of alerts for one equipment, rack, server room or data center"""
    parsed = parse_target_type(target_type)
    sub = notifier.subscribe_target(parsed, target_id)
    return _sse_response(request, sub, notifier, config)


# =============================================================================
# Single Alert
# =============================================================================

@router.get("/{alert_id}")
def get_alert(alert_id: int, engine: AlertEngine = Depends(get_alert_engine)):
    try:
        return {"alert": engine.alerts.get(alert_id).to_dict()}
    except AlertNotFoundError as e:
        raise HTTPException(404, str(e))


@router.post("/{alert_id}/acknowledge")
def acknowledge_alert(
    alert_id: int,
    request: Optional[AlertActionRequest] = None,
    engine: AlertEngine = Depends(get_alert_engine),
):
    """Acknowledge a triggered alert; subscribers get alert-acknowledged"""
    try:
        alert = engine.acknowledge(alert_id, request.user if request else None)
    except AlertNotFoundError as e:
        raise HTTPException(404, str(e))
    return {"message": f"Alert {alert_id} acknowledged", "alert": alert.to_dict()}


@router.post("/{alert_id}/resolve")
def resolve_alert(
    alert_id: int,
    request: Optional[AlertActionRequest] = None,
    engine: AlertEngine = Depends(get_alert_engine),
):
    """Resolve an alert by hand; subscribers get alert-resolved"""
    try:
        alert = engine.resolve(alert_id, request.user if request else None)
    except AlertNotFoundError as e:
        raise HTTPException(404, str(e))
    return {"message": f"Alert {alert_id} resolved", "alert": alert.to_dict()}
