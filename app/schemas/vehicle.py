# app/schemas/vehicle.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from app.models.vehicle import VehicleStatus


class VehicleCreate(BaseModel):
    driver_id: Optional[int] = None
    status: VehicleStatus = VehicleStatus.IDLE
    speed: int = Field(0, ge=0, le=200)
    fuel_level: int = Field(100, ge=0, le=100)
    temperature: int = Field(25, ge=-20, le=60)
    location: str = "Unknown"


class VehicleOut(BaseModel):
    id: int
    driver_id: Optional[int]
    status: str
    speed: int
    fuel_level: int
    temperature: int
    location: str
    is_active: bool
    creation_date: datetime
    last_update_on: Optional[datetime]

    class Config:
        from_attributes = True
