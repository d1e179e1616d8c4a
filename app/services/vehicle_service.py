# app/services/vehicle_service.py
"""
Vehicle lookup and snapshot helpers.
Used by the ingestion pipeline, the status path and the vehicles router.
Every lookup is by id and returns None when the vehicle is missing or inactive.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from app.models.vehicle import (Vehicle, VehicleStatus, SPEED_RANGE, FUEL_RANGE,
                                TEMPERATURE_RANGE)
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _clamp(value: int, bounds: tuple) -> int:
    low, high = bounds
    return max(low, min(high, value))


def get_vehicle(db: Session, vehicle_id: int, include_inactive: bool = False) -> Optional[Vehicle]:
    q = db.query(Vehicle).filter(Vehicle.id == vehicle_id)
    if not include_inactive:
        q = q.filter(Vehicle.is_active.is_(True))
    return q.first()


def list_vehicles(db: Session, status: VehicleStatus = None) -> list[Vehicle]:
    q = db.query(Vehicle).filter(Vehicle.is_active.is_(True))
    if status is not None:
        q = q.filter(Vehicle.status == VehicleStatus(status).value)
    return q.order_by(Vehicle.id).all()


def count_vehicles(db: Session) -> int:
    return db.query(Vehicle).filter(Vehicle.is_active.is_(True)).count()


def register_vehicle(db: Session, **fields) -> Vehicle:
    now = datetime.utcnow()
    status = fields.pop("status", VehicleStatus.IDLE)
    vehicle = Vehicle(status=VehicleStatus(status).value, is_active=True,
                      creation_date=now, last_update_on=now, **fields)
    db.add(vehicle)
    db.commit()
    db.refresh(vehicle)
    logger.info(f"Vehicle {vehicle.id} registered (driver={vehicle.driver_id})")
    return vehicle


def apply_snapshot(vehicle: Vehicle, speed: int, fuel: int, temperature: int, location: str):
    """
    Copy a reading onto the vehicle's cached snapshot (no commit).
    Values are clamped to the vehicle ranges; the reading itself keeps raw values.
    """
    vehicle.speed = _clamp(speed, SPEED_RANGE)
    vehicle.fuel_level = _clamp(fuel, FUEL_RANGE)
    vehicle.temperature = _clamp(temperature, TEMPERATURE_RANGE)
    vehicle.location = location

    # Maintenance / parked are set explicitly, not inferred from speed
    current = VehicleStatus.parse(vehicle.status)
    if current not in (VehicleStatus.MAINTENANCE, VehicleStatus.PARKED):
        if vehicle.speed > 0:
            vehicle.status = VehicleStatus.MOVING.value
        elif current == VehicleStatus.MOVING:
            vehicle.status = VehicleStatus.IDLE.value
    vehicle.last_update_on = datetime.utcnow()


def update_status(db: Session, vehicle_id: int, status: VehicleStatus) -> Optional[Vehicle]:
    vehicle = get_vehicle(db, vehicle_id)
    if not vehicle:
        return None
    vehicle.status = VehicleStatus(status).value
    vehicle.last_update_on = datetime.utcnow()
    db.commit()
    db.refresh(vehicle)
    return vehicle
