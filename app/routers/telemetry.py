# app/routers/telemetry.py
"""
Telemetry readings: REST access to the reading log.
POST goes through the ingestion pipeline so REST readings raise the same
alerts and live events as MQTT readings.
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.dependencies import get_pipeline
from app.schemas.telemetry import TelemetryCreate, TelemetryOut, TelemetryStats
from app.services import telemetry_service
from app.services.ingestion_pipeline import IngestError, IngestionPipeline
from app.services.telemetry_parser import normalize_timestamp

router = APIRouter()

_INGEST_ERROR_STATUS = {
    IngestError.UNKNOWN_VEHICLE: status.HTTP_404_NOT_FOUND,
    IngestError.STORAGE_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
    IngestError.MALFORMED: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


@router.post("/telemetry", status_code=status.HTTP_201_CREATED, summary="Ingest one reading")
async def create_telemetry(body: TelemetryCreate, pipeline: IngestionPipeline = Depends(get_pipeline)):
    body.timestamp = normalize_timestamp(body.timestamp)
    result = await pipeline.ingest_reading(body.vehicle_id, body)
    if not result.ok:
        raise HTTPException(status_code=_INGEST_ERROR_STATUS[result.error],
                            detail=f"{result.error.value}: vehicle {body.vehicle_id}")
    return {"status": "ok", "reading": result.reading, "alerts": result.alerts}


@router.get("/telemetry", response_model=list[TelemetryOut], summary="List active readings")
def list_telemetry(limit: int = 100, db: Session = Depends(get_db)):
    return telemetry_service.list_readings(db, limit=limit)


@router.get("/telemetry/latest/all", response_model=list[TelemetryOut],
            summary="Latest reading of every vehicle")
def latest_for_all(db: Session = Depends(get_db)):
    return telemetry_service.latest_readings_for_all(db)


@router.get("/telemetry/vehicle/{vehicle_id}", response_model=list[TelemetryOut])
def telemetry_by_vehicle(vehicle_id: int, limit: int = 100, db: Session = Depends(get_db)):
    return telemetry_service.list_readings(db, vehicle_id=vehicle_id, limit=limit)


@router.get("/telemetry/vehicle/{vehicle_id}/latest", response_model=TelemetryOut)
def latest_by_vehicle(vehicle_id: int, db: Session = Depends(get_db)):
    reading = telemetry_service.latest_reading(db, vehicle_id)
    if not reading:
        raise HTTPException(status_code=404, detail=f"No telemetry for vehicle {vehicle_id}")
    return reading


@router.get("/telemetry/vehicle/{vehicle_id}/range", response_model=list[TelemetryOut])
def telemetry_in_range(vehicle_id: int, start: datetime, end: datetime, db: Session = Depends(get_db)):
    """Readings whose event time falls in [start, end]."""
    return telemetry_service.list_readings(db, vehicle_id=vehicle_id,
                                           start=normalize_timestamp(start), end=normalize_timestamp(end))


@router.get("/telemetry/stats/vehicle/{vehicle_id}", response_model=TelemetryStats)
def telemetry_stats(vehicle_id: int, start: Optional[datetime] = None, end: Optional[datetime] = None,
                    db: Session = Depends(get_db)):
    return telemetry_service.reading_statistics(db, vehicle_id,
                                                start=normalize_timestamp(start), end=normalize_timestamp(end))


@router.get("/telemetry/{reading_id}", response_model=TelemetryOut)
def get_telemetry(reading_id: int, db: Session = Depends(get_db)):
    reading = telemetry_service.get_reading(db, reading_id)
    if not reading:
        raise HTTPException(status_code=404, detail=f"Telemetry {reading_id} not found")
    return reading


@router.delete("/telemetry/{reading_id}", summary="Soft-delete a reading")
def deactivate_telemetry(reading_id: int, db: Session = Depends(get_db)):
    if not telemetry_service.set_reading_active(db, reading_id, False):
        raise HTTPException(status_code=404, detail=f"Telemetry {reading_id} not found")
    return {"status": "deactivated", "id": reading_id}


@router.put("/telemetry/{reading_id}/reactivate")
def reactivate_telemetry(reading_id: int, db: Session = Depends(get_db)):
    if not telemetry_service.set_reading_active(db, reading_id, True):
        raise HTTPException(status_code=404, detail=f"Telemetry {reading_id} not found")
    return {"status": "reactivated", "id": reading_id}
