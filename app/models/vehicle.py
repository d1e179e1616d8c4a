# app/models/vehicle.py
"""
Vehicles table: one row per monitored car.
Holds the latest sensor snapshot; the reading history lives in `telemetry`.
Snapshot columns are only written by the ingestion pipeline and the status path.
"""

from enum import Enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean
from app.database import Base

SPEED_RANGE = (0, 200)            # km/h
FUEL_RANGE = (0, 100)             # %
TEMPERATURE_RANGE = (-20, 60)     # °C


class VehicleStatus(str, Enum):
    IDLE = "IDLE"
    MOVING = "MOVING"
    PARKED = "PARKED"
    MAINTENANCE = "MAINTENANCE"

    @classmethod
    def parse(cls, value):
        """Case-insensitive lookup. Returns None for unknown values."""
        if value is None:
            return None
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    driver_id = Column(Integer, index=True)   # Driver accounts are managed elsewhere
    status = Column(String(20), default=VehicleStatus.IDLE.value, nullable=False)
    speed = Column(Integer, default=0, nullable=False)
    fuel_level = Column(Integer, default=100, nullable=False)
    temperature = Column(Integer, default=25, nullable=False)
    location = Column(String(255), default="Unknown", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    creation_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_update_on = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Vehicle {self.id} status={self.status} active={self.is_active}>"
