# app/services/alert_service.py
"""
Alert store.
Creation is used by the ingestion pipeline (one call per threshold candidate)
and by POST /alerts. Every write commits immediately; lookups return None
instead of raising when an alert does not exist.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.alert import Alert, AlertSeverity, CRITICAL_SEVERITIES
from app.utils.logger import get_logger

logger = get_logger(__name__)


def create_alert(db: Session, vehicle_id: int, alert_type, severity: AlertSeverity,
                 message: str, timestamp: Optional[datetime] = None) -> Alert:
    """Create and persist an alert record. Raises SQLAlchemyError on storage failure."""
    now = datetime.utcnow()
    alert = Alert(
        vehicle_id=vehicle_id,
        alert_type=getattr(alert_type, "value", alert_type),
        severity=AlertSeverity(severity).value,
        message=message,
        acknowledged=False,
        timestamp=timestamp or now,
        is_active=True,
        creation_date=now,
        last_update_on=now,
    )
    db.add(alert)
    db.commit()
    db.refresh(alert)
    logger.warning(f"[ALERT][{alert.alert_type}][{alert.severity}] vehicle={vehicle_id} {message}")
    return alert


def get_alert(db: Session, alert_id: int) -> Optional[Alert]:
    return db.query(Alert).filter(Alert.id == alert_id).first()


def list_alerts(db: Session, vehicle_id: int = None, alert_type: str = None,
                severity: AlertSeverity = None, acknowledged: bool = None,
                active_only: bool = True, limit: int = None) -> list[Alert]:
    """Filterable alert listing, newest first."""
    q = db.query(Alert)
    if active_only:
        q = q.filter(Alert.is_active.is_(True))
    if vehicle_id is not None:
        q = q.filter(Alert.vehicle_id == vehicle_id)
    if alert_type:
        q = q.filter(Alert.alert_type == alert_type)
    if severity is not None:
        q = q.filter(Alert.severity == AlertSeverity(severity).value)
    if acknowledged is not None:
        q = q.filter(Alert.acknowledged.is_(acknowledged))
    q = q.order_by(Alert.timestamp.desc(), Alert.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def list_critical_alerts(db: Session) -> list[Alert]:
    """Active alerts of HIGH or CRITICAL severity."""
    return (db.query(Alert)
            .filter(Alert.is_active.is_(True),
                    Alert.severity.in_([s.value for s in CRITICAL_SEVERITIES]))
            .order_by(Alert.timestamp.desc())
            .all())


def acknowledge_alert(db: Session, alert_id: int) -> Optional[Alert]:
    alert = get_alert(db, alert_id)
    if not alert:
        return None
    alert.acknowledged = True
    alert.last_update_on = datetime.utcnow()
    db.commit()
    db.refresh(alert)
    logger.info(f"Alert {alert_id} acknowledged")
    return alert


def set_alert_active(db: Session, alert_id: int, active: bool) -> Optional[Alert]:
    """Soft delete (active=False) or reactivate an alert."""
    alert = get_alert(db, alert_id)
    if not alert:
        return None
    alert.is_active = active
    alert.last_update_on = datetime.utcnow()
    db.commit()
    db.refresh(alert)
    return alert


def count_alerts(db: Session, vehicle_id: int = None, severity: AlertSeverity = None,
                 acknowledged: bool = None) -> int:
    q = db.query(func.count(Alert.id)).filter(Alert.is_active.is_(True))
    if vehicle_id is not None:
        q = q.filter(Alert.vehicle_id == vehicle_id)
    if severity is not None:
        q = q.filter(Alert.severity == AlertSeverity(severity).value)
    if acknowledged is not None:
        q = q.filter(Alert.acknowledged.is_(acknowledged))
    return q.scalar() or 0


def count_critical_alerts(db: Session) -> int:
    return (db.query(func.count(Alert.id))
            .filter(Alert.is_active.is_(True),
                    Alert.severity.in_([s.value for s in CRITICAL_SEVERITIES]))
            .scalar() or 0)
