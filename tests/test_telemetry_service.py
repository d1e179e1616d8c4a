# tests/test_telemetry_service.py
"""Unit tests for the reading log and vehicle snapshot helpers."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timedelta
from app.models.vehicle import VehicleStatus
from app.services import telemetry_service, vehicle_service

T0 = datetime(2026, 3, 1, 12, 0, 0)


def store(db, vehicle, minutes=0, speed=50, fuel=50, temperature=30):
    return telemetry_service.create_reading(db, vehicle.id, speed=speed, fuel=fuel,
                                            temperature=temperature, location="X",
                                            timestamp=T0 + timedelta(minutes=minutes))


class TestTelemetryService:
    def test_list_newest_first(self, db, vehicle):
        first = store(db, vehicle, minutes=0)
        second = store(db, vehicle, minutes=5)
        assert [r.id for r in telemetry_service.list_readings(db, vehicle_id=vehicle.id)] == [second.id, first.id]
        assert telemetry_service.latest_reading(db, vehicle.id).id == second.id

    def test_range_is_inclusive(self, db, vehicle):
        store(db, vehicle, minutes=0)
        inside = store(db, vehicle, minutes=10)
        store(db, vehicle, minutes=30)

        found = telemetry_service.list_readings(db, vehicle_id=vehicle.id,
                                                start=T0 + timedelta(minutes=10),
                                                end=T0 + timedelta(minutes=20))
        assert [r.id for r in found] == [inside.id]

    def test_latest_for_all(self, db, vehicle):
        other = vehicle_service.register_vehicle(db, location="Y")
        store(db, vehicle, minutes=0)
        latest_own = store(db, vehicle, minutes=1)
        latest_other = store(db, other, minutes=0)

        latest = {r.vehicle_id: r.id for r in telemetry_service.latest_readings_for_all(db)}
        assert latest == {vehicle.id: latest_own.id, other.id: latest_other.id}

    def test_soft_delete_keeps_values(self, db, vehicle):
        reading = store(db, vehicle, speed=77)
        telemetry_service.set_reading_active(db, reading.id, False)

        assert telemetry_service.count_readings(db) == 0
        kept = telemetry_service.get_reading(db, reading.id)
        assert kept.is_active is False
        assert kept.speed == 77

    def test_statistics(self, db, vehicle):
        store(db, vehicle, minutes=0, speed=40, fuel=80, temperature=20)
        store(db, vehicle, minutes=1, speed=61, fuel=70, temperature=25)

        stats = telemetry_service.reading_statistics(db, vehicle.id)
        assert stats.total_records == 2
        assert stats.average_speed == 50.5
        assert stats.min_fuel == 70
        assert stats.max_temperature == 25

    def test_statistics_empty(self, db, vehicle):
        stats = telemetry_service.reading_statistics(db, vehicle.id)
        assert stats.total_records == 0
        assert stats.average_speed == 0.0


class TestSnapshot:
    def test_clamps_to_vehicle_ranges(self, db, vehicle):
        vehicle_service.apply_snapshot(vehicle, speed=250, fuel=-5, temperature=90, location="Z")
        assert (vehicle.speed, vehicle.fuel_level, vehicle.temperature) == (200, 0, 60)

    def test_moving_and_idle_inferred(self, db, vehicle):
        vehicle_service.apply_snapshot(vehicle, 30, 50, 30, "Z")
        assert vehicle.status == VehicleStatus.MOVING.value
        vehicle_service.apply_snapshot(vehicle, 0, 50, 30, "Z")
        assert vehicle.status == VehicleStatus.IDLE.value

    def test_maintenance_is_sticky(self, db, vehicle):
        vehicle.status = VehicleStatus.MAINTENANCE.value
        vehicle_service.apply_snapshot(vehicle, 30, 50, 30, "Z")
        assert vehicle.status == VehicleStatus.MAINTENANCE.value

    def test_status_parse(self):
        assert VehicleStatus.parse(" moving ") == VehicleStatus.MOVING
        assert VehicleStatus.parse("flying") is None
        assert VehicleStatus.parse(None) is None
