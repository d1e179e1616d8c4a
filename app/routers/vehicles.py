# app/routers/vehicles.py
"""Vehicle registry, just enough to register cars that may publish telemetry."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.vehicle import VehicleStatus
from app.schemas.vehicle import VehicleCreate, VehicleOut
from app.services import vehicle_service
from typing import Optional

router = APIRouter()


@router.get("/vehicles", response_model=list[VehicleOut], summary="List active vehicles")
def list_vehicles(status: Optional[VehicleStatus] = None, db: Session = Depends(get_db)):
    return vehicle_service.list_vehicles(db, status=status)


@router.post("/vehicles", response_model=VehicleOut, status_code=201,
             summary="Register a vehicle")
def register_vehicle(body: VehicleCreate, db: Session = Depends(get_db)):
    return vehicle_service.register_vehicle(db, **body.model_dump())


@router.get("/vehicles/{vehicle_id}", response_model=VehicleOut, summary="Vehicle with its latest snapshot")
def get_vehicle(vehicle_id: int, db: Session = Depends(get_db)):
    vehicle = vehicle_service.get_vehicle(db, vehicle_id)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return vehicle
