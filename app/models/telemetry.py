# app/models/telemetry.py
"""
Telemetry table: append-only log of sensor readings.
Sensor values are never updated after insert; is_active is the only mutable flag.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from app.database import Base


class TelemetryReading(Base):
    __tablename__ = "telemetry"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    timestamp = Column(DateTime, nullable=False, index=True)   # event time from the car
    speed = Column(Integer, nullable=False)
    fuel = Column(Integer, nullable=False)
    temperature = Column(Integer, nullable=False)
    location = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    creation_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_update_on = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<TelemetryReading {self.id} vehicle={self.vehicle_id} at={self.timestamp}>"
