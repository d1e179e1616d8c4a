# app/schemas/telemetry.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class TelemetryPayload(BaseModel):
    """Body of `{prefix}/{vehicleId}/telemetry` messages and POST /telemetry."""
    speed: int
    fuel_level: int = Field(alias="fuelLevel")
    temperature: int
    location: str
    timestamp: Optional[datetime] = None

    class Config:
        populate_by_name = True


class TelemetryCreate(TelemetryPayload):
    vehicle_id: int = Field(alias="carId")


class TelemetryOut(BaseModel):
    id: int
    vehicle_id: int
    speed: int
    fuel: int
    temperature: int
    location: str
    timestamp: datetime
    is_active: bool
    creation_date: datetime
    last_update_on: Optional[datetime]

    class Config:
        from_attributes = True


class TelemetryStats(BaseModel):
    vehicle_id: int
    total_records: int = 0
    average_speed: float = 0.0
    average_fuel: float = 0.0
    average_temperature: float = 0.0
    min_speed: int = 0
    max_speed: int = 0
    min_fuel: int = 0
    max_fuel: int = 0
    min_temperature: int = 0
    max_temperature: int = 0
