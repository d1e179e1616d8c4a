# app/services/threshold_evaluator.py
"""
Threshold rules: telemetry reading → alert candidates.
Pure function, no DB or broadcast access. Each metric is checked on its own,
so one reading can yield up to three candidates.

  fuel         < 10  CRITICAL   10–19   HIGH
  temperature  > 60  CRITICAL   51–60   HIGH
  speed        > 150 CRITICAL   121–150 MEDIUM
"""

from dataclasses import dataclass
from app.models.alert import AlertType, AlertSeverity

LOW_FUEL_THRESHOLD = 20
CRITICAL_FUEL_THRESHOLD = 10
HIGH_TEMPERATURE_THRESHOLD = 50
CRITICAL_TEMPERATURE_THRESHOLD = 60
HIGH_SPEED_THRESHOLD = 120
CRITICAL_SPEED_THRESHOLD = 150


@dataclass(frozen=True)
class AlertCandidate:
    alert_type: AlertType
    severity: AlertSeverity
    message: str


def evaluate(reading) -> list[AlertCandidate]:
    """
    `reading` is anything with speed / fuel (or fuel_level) / temperature
    attributes: a TelemetryPayload, a TelemetryReading row, a test double.
    """
    fuel = getattr(reading, "fuel_level", None)
    if fuel is None:
        fuel = reading.fuel

    candidates = []

    if fuel < LOW_FUEL_THRESHOLD:
        severity = AlertSeverity.CRITICAL if fuel < CRITICAL_FUEL_THRESHOLD else AlertSeverity.HIGH
        candidates.append(AlertCandidate(AlertType.LOW_FUEL, severity, f"Low fuel level: {fuel}%"))

    if reading.temperature > HIGH_TEMPERATURE_THRESHOLD:
        severity = (AlertSeverity.CRITICAL if reading.temperature > CRITICAL_TEMPERATURE_THRESHOLD
                    else AlertSeverity.HIGH)
        candidates.append(AlertCandidate(AlertType.HIGH_TEMPERATURE, severity,
                                         f"High temperature: {reading.temperature}°C"))

    if reading.speed > HIGH_SPEED_THRESHOLD:
        severity = (AlertSeverity.CRITICAL if reading.speed > CRITICAL_SPEED_THRESHOLD
                    else AlertSeverity.MEDIUM)
        candidates.append(AlertCandidate(AlertType.HIGH_SPEED, severity,
                                         f"High speed: {reading.speed} km/h"))

    return candidates
