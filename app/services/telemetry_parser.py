# app/services/telemetry_parser.py
"""
Parses inbound MQTT payloads.
  {prefix}/{vehicleId}/telemetry → TelemetryPayload (JSON, validated by pydantic)
  {prefix}/{vehicleId}/status    → status string (freeform or {"status": ...})
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import ValidationError
from app.schemas.telemetry import TelemetryPayload
from app.utils.json_parser import decode_payload, is_json_object, safe_parse_json
from app.utils.logger import get_logger

logger = get_logger(__name__)


def normalize_timestamp(value: Optional[datetime]) -> Optional[datetime]:
    """Aware datetimes → naive UTC, the form every DateTime column stores."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_telemetry_payload(raw) -> Optional[TelemetryPayload]:
    """Returns None (and logs why) when the payload is not a valid telemetry body."""
    data = safe_parse_json(raw)
    if not isinstance(data, dict):
        logger.warning(f"Malformed telemetry payload (not a JSON object): {decode_payload(raw)[:200]!r}")
        return None
    try:
        payload = TelemetryPayload.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        logger.warning(f"Malformed telemetry payload (invalid: {fields}): {decode_payload(raw)[:200]!r}")
        return None
    payload.timestamp = normalize_timestamp(payload.timestamp)
    return payload


def parse_status_payload(raw) -> str:
    """
    The car publishes {"status": "...", "timestamp": "..."}; other producers send
    a bare string. Either way the status text is returned, stripped.
    """
    text = decode_payload(raw).strip()
    if is_json_object(text):
        data = safe_parse_json(text)
        if isinstance(data, dict) and data.get("status") is not None:
            return str(data["status"]).strip()
    return text.strip('"')
