# app/models/alert.py
"""
Alerts table: alerts derived from telemetry thresholds (or created manually).
After insert only `acknowledged` and `is_active` change.
"""

from enum import Enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, ForeignKey
from app.database import Base


class AlertType(str, Enum):
    LOW_FUEL = "LOW_FUEL"
    HIGH_TEMPERATURE = "HIGH_TEMPERATURE"
    HIGH_SPEED = "HIGH_SPEED"


class AlertSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, AlertSeverity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, AlertSeverity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, AlertSeverity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, AlertSeverity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK = {
    AlertSeverity.LOW: 0,
    AlertSeverity.MEDIUM: 1,
    AlertSeverity.HIGH: 2,
    AlertSeverity.CRITICAL: 3,
}

# Severities listed by GET /alerts/critical and counted as "critical" in stats
CRITICAL_SEVERITIES = (AlertSeverity.HIGH, AlertSeverity.CRITICAL)


class Alert(Base):
    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    alert_type = Column(String(50), nullable=False, index=True)
    severity = Column(String(20), nullable=False, index=True)
    message = Column(Text)
    acknowledged = Column(Boolean, default=False, nullable=False)
    timestamp = Column(DateTime, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    creation_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_update_on = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Alert {self.id} type={self.alert_type} severity={self.severity} ack={self.acknowledged}>"
