# app/services/telemetry_service.py
"""
Telemetry store, an append-only reading log.
Readings are inserted once and never edited; "delete" flips is_active.
Used by the ingestion pipeline (writes) and the telemetry router (reads).
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.telemetry import TelemetryReading
from app.schemas.telemetry import TelemetryStats
from app.utils.logger import get_logger

logger = get_logger(__name__)


def create_reading(db: Session, vehicle_id: int, speed: int, fuel: int, temperature: int,
                   location: str, timestamp: Optional[datetime] = None) -> TelemetryReading:
    """Insert one reading. Raises SQLAlchemyError on storage failure."""
    now = datetime.utcnow()
    reading = TelemetryReading(
        vehicle_id=vehicle_id,
        speed=speed,
        fuel=fuel,
        temperature=temperature,
        location=location,
        timestamp=timestamp or now,
        is_active=True,
        creation_date=now,
        last_update_on=now,
    )
    db.add(reading)
    db.commit()
    db.refresh(reading)
    logger.debug(f"Reading {reading.id} stored for vehicle {vehicle_id}")
    return reading


def get_reading(db: Session, reading_id: int) -> Optional[TelemetryReading]:
    return db.query(TelemetryReading).filter(TelemetryReading.id == reading_id).first()


def list_readings(db: Session, vehicle_id: int = None, start: datetime = None,
                  end: datetime = None, limit: int = None) -> list[TelemetryReading]:
    """Active readings, newest first, optionally filtered by vehicle and event-time range."""
    q = db.query(TelemetryReading).filter(TelemetryReading.is_active.is_(True))
    if vehicle_id is not None:
        q = q.filter(TelemetryReading.vehicle_id == vehicle_id)
    if start is not None:
        q = q.filter(TelemetryReading.timestamp >= start)
    if end is not None:
        q = q.filter(TelemetryReading.timestamp <= end)
    q = q.order_by(TelemetryReading.timestamp.desc(), TelemetryReading.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def latest_reading(db: Session, vehicle_id: int) -> Optional[TelemetryReading]:
    readings = list_readings(db, vehicle_id=vehicle_id, limit=1)
    return readings[0] if readings else None


def latest_readings_for_all(db: Session) -> list[TelemetryReading]:
    """Most recent active reading per vehicle."""
    newest = (db.query(TelemetryReading.vehicle_id,
                       func.max(TelemetryReading.timestamp).label("ts"))
              .filter(TelemetryReading.is_active.is_(True))
              .group_by(TelemetryReading.vehicle_id)
              .subquery())
    rows = (db.query(TelemetryReading)
            .join(newest, (TelemetryReading.vehicle_id == newest.c.vehicle_id)
                  & (TelemetryReading.timestamp == newest.c.ts))
            .filter(TelemetryReading.is_active.is_(True))
            .order_by(TelemetryReading.vehicle_id, TelemetryReading.id.desc())
            .all())
    # Two readings can share a timestamp; keep the newest insert
    latest = {}
    for row in rows:
        latest.setdefault(row.vehicle_id, row)
    return list(latest.values())


def set_reading_active(db: Session, reading_id: int, active: bool) -> Optional[TelemetryReading]:
    """Soft delete (active=False) or reactivate. Sensor values are left untouched."""
    reading = get_reading(db, reading_id)
    if not reading:
        return None
    reading.is_active = active
    reading.last_update_on = datetime.utcnow()
    db.commit()
    db.refresh(reading)
    return reading


def count_readings(db: Session, vehicle_id: int = None) -> int:
    q = db.query(func.count(TelemetryReading.id)).filter(TelemetryReading.is_active.is_(True))
    if vehicle_id is not None:
        q = q.filter(TelemetryReading.vehicle_id == vehicle_id)
    return q.scalar() or 0


def reading_statistics(db: Session, vehicle_id: int, start: datetime = None,
                       end: datetime = None) -> TelemetryStats:
    """Averages (2 dp) and min/max per metric over the selected readings."""
    readings = list_readings(db, vehicle_id=vehicle_id, start=start, end=end)
    if not readings:
        return TelemetryStats(vehicle_id=vehicle_id)

    speeds = [r.speed for r in readings]
    fuels = [r.fuel for r in readings]
    temps = [r.temperature for r in readings]
    return TelemetryStats(
        vehicle_id=vehicle_id,
        total_records=len(readings),
        average_speed=round(sum(speeds) / len(speeds), 2),
        average_fuel=round(sum(fuels) / len(fuels), 2),
        average_temperature=round(sum(temps) / len(temps), 2),
        min_speed=min(speeds), max_speed=max(speeds),
        min_fuel=min(fuels), max_fuel=max(fuels),
        min_temperature=min(temps), max_temperature=max(temps),
    )
