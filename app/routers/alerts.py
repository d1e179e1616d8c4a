# app/routers/alerts.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.dependencies import get_hub
from app.models.alert import AlertSeverity
from app.schemas.alert import AlertCountStats, AlertCreate, AlertOut, AlertSeverityStats
from app.services import alert_service, vehicle_service
from app.services.broadcast import ALERTS_TOPIC, alert_to_dict, alert_update, broadcast_alert
from app.services.subscriber_hub import SubscriberHub
from typing import Optional

router = APIRouter()


@router.get("/alerts", response_model=list[AlertOut], summary="All alerts, filterable")
def get_all_alerts(
    alert_type: Optional[str] = None,
    severity: Optional[AlertSeverity] = None,
    acknowledged: Optional[bool] = None,
    vehicle_id: Optional[int] = None,
    limit: int = 50,
    db: Session = Depends(get_db)
):
    """Combined alerts endpoint. Filter by type, severity, acknowledged or vehicle."""
    return alert_service.list_alerts(db, vehicle_id=vehicle_id, alert_type=alert_type,
                                     severity=severity, acknowledged=acknowledged, limit=limit)


@router.post("/alerts", response_model=AlertOut, status_code=status.HTTP_201_CREATED,
             summary="Raise an alert manually")
def create_alert(body: AlertCreate, db: Session = Depends(get_db), hub: SubscriberHub = Depends(get_hub)):
    vehicle = vehicle_service.get_vehicle(db, body.vehicle_id)
    if not vehicle:
        raise HTTPException(status_code=404, detail=f"Vehicle {body.vehicle_id} not found")
    alert = alert_service.create_alert(db, body.vehicle_id, body.alert_type, body.severity, body.message)
    broadcast_alert(hub, alert_to_dict(alert), driver_id=vehicle.driver_id)
    return alert


@router.get("/alerts/unacknowledged", response_model=list[AlertOut])
def unacknowledged_alerts(db: Session = Depends(get_db)):
    return alert_service.list_alerts(db, acknowledged=False)


@router.get("/alerts/critical", response_model=list[AlertOut], summary="HIGH and CRITICAL alerts")
def critical_alerts(db: Session = Depends(get_db)):
    return alert_service.list_critical_alerts(db)


@router.get("/alerts/recent", response_model=list[AlertOut])
def recent_alerts(limit: int = 10, db: Session = Depends(get_db)):
    return alert_service.list_alerts(db, limit=limit)


@router.get("/alerts/vehicle/{vehicle_id}", response_model=list[AlertOut])
def alerts_by_vehicle(vehicle_id: int, db: Session = Depends(get_db)):
    return alert_service.list_alerts(db, vehicle_id=vehicle_id)


@router.get("/alerts/stats/count", response_model=AlertCountStats)
def alert_count_stats(db: Session = Depends(get_db)):
    return AlertCountStats(
        total_alerts=alert_service.count_alerts(db),
        unacknowledged_alerts=alert_service.count_alerts(db, acknowledged=False),
        critical_alerts=alert_service.count_critical_alerts(db),
    )


@router.get("/alerts/stats/severity", response_model=AlertSeverityStats)
def alert_severity_stats(db: Session = Depends(get_db)):
    return AlertSeverityStats(
        low_alerts=alert_service.count_alerts(db, severity=AlertSeverity.LOW),
        medium_alerts=alert_service.count_alerts(db, severity=AlertSeverity.MEDIUM),
        high_alerts=alert_service.count_alerts(db, severity=AlertSeverity.HIGH),
        critical_alerts=alert_service.count_alerts(db, severity=AlertSeverity.CRITICAL),
    )


@router.get("/alerts/{alert_id}", response_model=AlertOut)
def get_alert(alert_id: int, db: Session = Depends(get_db)):
    alert = alert_service.get_alert(db, alert_id)
    if not alert:
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
    return alert


@router.put("/alerts/{alert_id}/acknowledge", response_model=AlertOut)
def acknowledge_alert(alert_id: int, db: Session = Depends(get_db), hub: SubscriberHub = Depends(get_hub)):
    alert = alert_service.acknowledge_alert(db, alert_id)
    if not alert:
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
    hub.publish(ALERTS_TOPIC, alert_update(alert_to_dict(alert)))
    return alert


@router.delete("/alerts/{alert_id}", summary="Soft-delete an alert")
def deactivate_alert(alert_id: int, db: Session = Depends(get_db)):
    if not alert_service.set_alert_active(db, alert_id, False):
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
    return {"status": "deactivated", "id": alert_id}


@router.put("/alerts/{alert_id}/reactivate")
def reactivate_alert(alert_id: int, db: Session = Depends(get_db)):
    if not alert_service.set_alert_active(db, alert_id, True):
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
    return {"status": "reactivated", "id": alert_id}
