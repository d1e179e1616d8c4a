# app/services/broadcast.py
"""
Live-update events and the hub topics they are published on.

Every event is serialised as the dashboard envelope
    {"type": ..., "data" | "connected" | "running" | "message" | "location": ..., "timestamp": ...}
Events are transient: built, published once, never stored.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class EventType(str, Enum):
    TELEMETRY_UPDATE = "TELEMETRY_UPDATE"
    CAR_TELEMETRY = "CAR_TELEMETRY"
    ALERT_UPDATE = "ALERT_UPDATE"
    CRITICAL_ALERT = "CRITICAL_ALERT"
    SYSTEM_STATUS = "SYSTEM_STATUS"
    MQTT_STATUS = "MQTT_STATUS"
    SIMULATOR_STATUS = "SIMULATOR_STATUS"
    CAR_LOCATION = "CAR_LOCATION"
    DASHBOARD_STATS = "DASHBOARD_STATS"
    NOTIFICATION = "NOTIFICATION"
    HEARTBEAT = "HEARTBEAT"


# ── Topics ───────────────────────────────────────────────────────────────────
TELEMETRY_TOPIC = "telemetry"
ALERTS_TOPIC = "alerts"
CRITICAL_ALERTS_TOPIC = "admin/critical-alerts"
MAP_LOCATIONS_TOPIC = "map/locations"
SYSTEM_STATUS_TOPIC = "system/status"
MQTT_STATUS_TOPIC = "system/mqtt-status"
SIMULATOR_STATUS_TOPIC = "system/simulator-status"
DASHBOARD_STATS_TOPIC = "dashboard/stats"
HEARTBEAT_TOPIC = "heartbeat"


def vehicle_telemetry_topic(vehicle_id) -> str:
    return f"vehicle/{vehicle_id}/telemetry"


def vehicle_location_topic(vehicle_id) -> str:
    return f"vehicle/{vehicle_id}/location"


def user_notifications_topic(user_id) -> str:
    return f"user/{user_id}/notifications"


@dataclass
class BroadcastEvent:
    type: EventType
    fields: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_message(self) -> dict:
        return {"type": self.type.value, **self.fields, "timestamp": self.timestamp.isoformat()}


# ── Payload serialisers ──────────────────────────────────────────────────────
def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else value


def reading_to_dict(reading) -> dict:
    """TelemetryReading row → camelCase dict matching the inbound MQTT schema."""
    return {
        "id": reading.id,
        "carId": reading.vehicle_id,
        "speed": reading.speed,
        "fuelLevel": reading.fuel,
        "temperature": reading.temperature,
        "location": reading.location,
        "timestamp": _iso(reading.timestamp),
    }


def alert_to_dict(alert) -> dict:
    return {
        "id": alert.id,
        "carId": alert.vehicle_id,
        "type": alert.alert_type,
        "severity": alert.severity,
        "message": alert.message,
        "acknowledged": alert.acknowledged,
        "timestamp": _iso(alert.timestamp),
    }


# ── Event builders ───────────────────────────────────────────────────────────
def telemetry_update(data: dict) -> BroadcastEvent:
    return BroadcastEvent(EventType.TELEMETRY_UPDATE, {"data": data})


def car_telemetry(vehicle_id: int, data: dict) -> BroadcastEvent:
    return BroadcastEvent(EventType.CAR_TELEMETRY, {"carId": vehicle_id, "data": data})


def car_location(vehicle_id: int, location: str) -> BroadcastEvent:
    return BroadcastEvent(EventType.CAR_LOCATION, {"carId": vehicle_id, "location": location})


def alert_update(data: dict) -> BroadcastEvent:
    return BroadcastEvent(EventType.ALERT_UPDATE, {"data": data})


def critical_alert(data: dict) -> BroadcastEvent:
    return BroadcastEvent(EventType.CRITICAL_ALERT, {"data": data})


def system_status(data: dict) -> BroadcastEvent:
    return BroadcastEvent(EventType.SYSTEM_STATUS, {"data": data})


def connection_status(connected: bool) -> BroadcastEvent:
    return BroadcastEvent(EventType.MQTT_STATUS, {"connected": connected})


def simulator_status(running: bool) -> BroadcastEvent:
    return BroadcastEvent(EventType.SIMULATOR_STATUS, {"running": running})


def dashboard_stats(data: dict) -> BroadcastEvent:
    return BroadcastEvent(EventType.DASHBOARD_STATS, {"data": data})


def notification(message: str) -> BroadcastEvent:
    return BroadcastEvent(EventType.NOTIFICATION, {"message": message})


def heartbeat() -> BroadcastEvent:
    return BroadcastEvent(EventType.HEARTBEAT)


# ── Publish helpers ──────────────────────────────────────────────────────────
def broadcast_reading(hub, reading_data: dict):
    """Global + per-vehicle telemetry, per-vehicle + map location."""
    vehicle_id = reading_data["carId"]
    hub.publish(TELEMETRY_TOPIC, telemetry_update(reading_data))
    hub.publish(vehicle_telemetry_topic(vehicle_id), car_telemetry(vehicle_id, reading_data))
    location_event = car_location(vehicle_id, reading_data["location"])
    hub.publish(vehicle_location_topic(vehicle_id), location_event)
    hub.publish(MAP_LOCATIONS_TOPIC, location_event)


def broadcast_alert(hub, alert_data: dict, driver_id: int = None):
    """ALERT_UPDATE always; CRITICAL_ALERT and a driver notification for CRITICAL severity."""
    hub.publish(ALERTS_TOPIC, alert_update(alert_data))
    if alert_data["severity"] == "CRITICAL":
        hub.publish(CRITICAL_ALERTS_TOPIC, critical_alert(alert_data))
        if driver_id is not None:
            hub.publish(user_notifications_topic(driver_id),
                        notification(f"Critical alert on car {alert_data['carId']}: {alert_data['message']}"))
