# app/services/ingestion_pipeline.py
"""
Telemetry ingestion: one inbound message → reading row, alert rows, live events.

    parse → resolve vehicle → store reading → evaluate thresholds → store alerts
          → publish events → refresh vehicle snapshot

Failures before the reading is stored end the message with an IngestError and
nothing is published. Alert and snapshot writes are separate transactions: if
one fails it is logged and the stored reading stays. The vehicle snapshot only
moves forward in event time: a late reading is stored but leaves it alone.

Each message is its own unit of work. Blocking SQLAlchemy calls run in a
worker thread (bounded by INGEST_MAX_CONCURRENCY), so vehicles never wait on
each other and the event loop keeps serving the MQTT dispatch and WebSockets.
On SQLite the bound is forced to 1 since it has a single writer lock.
Redelivered messages are not deduplicated.
"""

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from app.config import settings
from app.database import SessionLocal, allows_parallel_writes
from app.models.vehicle import VehicleStatus
from app.schemas.telemetry import TelemetryPayload
from app.services import alert_service, telemetry_service, vehicle_service
from app.services.broadcast import (SYSTEM_STATUS_TOPIC, alert_to_dict, broadcast_alert,
                                    broadcast_reading, reading_to_dict, system_status)
from app.services.telemetry_parser import parse_status_payload, parse_telemetry_payload
from app.services.threshold_evaluator import evaluate
from app.utils.logger import get_logger

logger = get_logger(__name__)


class IngestError(str, Enum):
    MALFORMED = "MALFORMED"
    UNKNOWN_VEHICLE = "UNKNOWN_VEHICLE"
    STORAGE_FAILURE = "STORAGE_FAILURE"


@dataclass
class IngestResult:
    vehicle_id: int
    error: Optional[IngestError] = None
    reading: Optional[dict] = None
    alerts: list = field(default_factory=list)
    driver_id: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def reading_id(self) -> Optional[int]:
        return self.reading["id"] if self.reading else None

    @property
    def alert_ids(self) -> list:
        return [a["id"] for a in self.alerts]


class IngestionPipeline:
    def __init__(self, hub, session_factory=None, max_concurrency: int = None):
        self.hub = hub
        self.session_factory = session_factory or SessionLocal
        self.max_concurrency = max_concurrency or settings.INGEST_MAX_CONCURRENCY
        bind = getattr(self.session_factory, "kw", {}).get("bind")
        if self.max_concurrency > 1 and not allows_parallel_writes(bind):
            logger.info(f"[INGEST] {bind.dialect.name} backend, storage writes serialised")
            self.max_concurrency = 1
        self._semaphore = asyncio.Semaphore(self.max_concurrency)
        self.stats = Counter()

    # ── Telemetry path ───────────────────────────────────────────────────────
    async def ingest(self, vehicle_id: int, raw_payload) -> IngestResult:
        """Entry point for `{prefix}/{vehicleId}/telemetry` messages."""
        payload = parse_telemetry_payload(raw_payload)
        if payload is None:
            self.stats[IngestError.MALFORMED.value] += 1
            logger.warning(f"[INGEST] vehicle={vehicle_id} dropped: malformed payload")
            return IngestResult(vehicle_id, error=IngestError.MALFORMED)
        return await self.ingest_reading(vehicle_id, payload)

    async def ingest_reading(self, vehicle_id: int, payload: TelemetryPayload) -> IngestResult:
        """Entry point for an already validated payload (REST, tests)."""
        async with self._semaphore:
            result = await asyncio.to_thread(self._persist, vehicle_id, payload)

        if not result.ok:
            self.stats[result.error.value] += 1
            return result

        self.stats["ingested"] += 1
        self.stats["alerts"] += len(result.alerts)
        self._publish(result)
        logger.info(
            f"[INGEST] vehicle={vehicle_id} reading={result.reading_id} "
            f"speed={payload.speed} fuel={payload.fuel_level} temp={payload.temperature} "
            f"alerts={len(result.alerts)}"
        )
        return result

    def _persist(self, vehicle_id: int, payload: TelemetryPayload) -> IngestResult:
        """Runs in a worker thread with its own session."""
        db = self.session_factory()
        try:
            try:
                vehicle = vehicle_service.get_vehicle(db, vehicle_id)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"[INGEST] vehicle={vehicle_id} storage failure on vehicle lookup: {e}")
                return IngestResult(vehicle_id, error=IngestError.STORAGE_FAILURE)
            if not vehicle:
                logger.warning(f"[INGEST] vehicle={vehicle_id} dropped: unknown vehicle")
                return IngestResult(vehicle_id, error=IngestError.UNKNOWN_VEHICLE)
            driver_id = vehicle.driver_id

            try:
                reading = telemetry_service.create_reading(
                    db, vehicle_id,
                    speed=payload.speed,
                    fuel=payload.fuel_level,
                    temperature=payload.temperature,
                    location=payload.location,
                    timestamp=payload.timestamp,
                )
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"[INGEST] vehicle={vehicle_id} storage failure on reading: {e}")
                return IngestResult(vehicle_id, error=IngestError.STORAGE_FAILURE)

            result = IngestResult(vehicle_id, reading=reading_to_dict(reading), driver_id=driver_id)

            for candidate in evaluate(reading):
                try:
                    alert = alert_service.create_alert(
                        db, vehicle_id, candidate.alert_type, candidate.severity, candidate.message
                    )
                    result.alerts.append(alert_to_dict(alert))
                except SQLAlchemyError as e:
                    db.rollback()
                    self.stats["alert_failures"] += 1
                    logger.error(
                        f"[INGEST] vehicle={vehicle_id} reading={result.reading_id} "
                        f"lost {candidate.alert_type.value} alert: {e}"
                    )

            try:
                self._refresh_snapshot(db, vehicle_id, reading, payload)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"[INGEST] vehicle={vehicle_id} snapshot update failed: {e}")

            return result
        finally:
            db.close()

    def _refresh_snapshot(self, db, vehicle_id: int, reading, payload: TelemetryPayload):
        """Copy the reading onto the vehicle unless a newer reading is already stored."""
        newest = telemetry_service.latest_reading(db, vehicle_id)
        if newest is not None and newest.id != reading.id and newest.timestamp > reading.timestamp:
            logger.info(f"[INGEST] vehicle={vehicle_id} reading={reading.id} older than "
                        f"reading={newest.id}, snapshot kept")
            return
        vehicle = vehicle_service.get_vehicle(db, vehicle_id)
        if vehicle:
            vehicle_service.apply_snapshot(vehicle, payload.speed, payload.fuel_level,
                                           payload.temperature, payload.location)
            db.commit()

    def _publish(self, result: IngestResult):
        broadcast_reading(self.hub, result.reading)
        for alert in result.alerts:
            broadcast_alert(self.hub, alert, driver_id=result.driver_id)

    # ── Status path ──────────────────────────────────────────────────────────
    async def handle_status(self, vehicle_id: int, raw_payload) -> str:
        """
        Entry point for `{prefix}/{vehicleId}/status` messages. Always relayed
        as SYSTEM_STATUS; known statuses also update the vehicle row.
        """
        status_text = parse_status_payload(raw_payload)
        status = VehicleStatus.parse(status_text)
        if status is not None:
            async with self._semaphore:
                await asyncio.to_thread(self._update_status, vehicle_id, status)
        else:
            logger.info(f"[STATUS] vehicle={vehicle_id} freeform status {status_text!r}")

        self.hub.publish(SYSTEM_STATUS_TOPIC, system_status({"carId": vehicle_id, "status": status_text}))
        return status_text

    def _update_status(self, vehicle_id: int, status: VehicleStatus):
        db = self.session_factory()
        try:
            if vehicle_service.update_status(db, vehicle_id, status) is None:
                logger.warning(f"[STATUS] vehicle={vehicle_id} unknown, status {status.value} not stored")
            else:
                logger.info(f"[STATUS] vehicle={vehicle_id} → {status.value}")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[STATUS] vehicle={vehicle_id} status update failed: {e}")
        finally:
            db.close()
