# app/schemas/alert.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from app.models.alert import AlertSeverity


class AlertCreate(BaseModel):
    vehicle_id: int
    alert_type: str
    severity: AlertSeverity
    message: str


class AlertOut(BaseModel):
    id: int
    vehicle_id: int
    alert_type: str
    severity: str
    message: Optional[str]
    acknowledged: bool
    timestamp: datetime
    is_active: bool
    creation_date: datetime
    last_update_on: Optional[datetime]

    class Config:
        from_attributes = True


class AlertCountStats(BaseModel):
    total_alerts: int
    unacknowledged_alerts: int
    critical_alerts: int


class AlertSeverityStats(BaseModel):
    low_alerts: int
    medium_alerts: int
    high_alerts: int
    critical_alerts: int
