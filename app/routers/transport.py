# app/routers/transport.py
"""
MQTT transport status and outbound publishing.
The publish endpoints relay to the broker exactly like a car would, so the
message comes back in through the normal subscription.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from app.config import settings
from app.dependencies import get_hub, get_transport
from app.schemas.telemetry import TelemetryPayload
from app.services.broadcast import SIMULATOR_STATUS_TOPIC, simulator_status
from app.services.subscriber_hub import SubscriberHub
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


class StatusBody(BaseModel):
    status: str


class SimulatorStatusBody(BaseModel):
    running: bool


@router.get("/mqtt/status", summary="Broker connection state")
def mqtt_status(transport=Depends(get_transport)):
    return {
        "state": transport.state.value,
        "connected": transport.is_connected,
        "client_id": transport.client_id,
        "broker": f"{settings.MQTT_BROKER_HOST}:{settings.MQTT_BROKER_PORT}",
        "topics": list(transport.topic_filters),
        "stats": dict(transport.stats),
    }


@router.post("/mqtt/vehicles/{vehicle_id}/telemetry", summary="Publish a reading to the broker")
async def publish_telemetry(vehicle_id: int, body: TelemetryPayload, transport=Depends(get_transport)):
    payload = body.model_dump(by_alias=True, mode="json", exclude_none=True)
    if not await transport.publish_telemetry(vehicle_id, payload):
        raise HTTPException(status_code=502, detail="Broker publish failed")
    return {"status": "published", "vehicle_id": vehicle_id}


@router.post("/mqtt/vehicles/{vehicle_id}/status", summary="Publish a status update to the broker")
async def publish_status(vehicle_id: int, body: StatusBody, transport=Depends(get_transport)):
    if not await transport.publish_status(vehicle_id, body.status):
        raise HTTPException(status_code=502, detail="Broker publish failed")
    return {"status": "published", "vehicle_id": vehicle_id}


@router.post("/system/simulator-status", summary="Relay a telemetry producer's run state")
async def report_simulator_status(body: SimulatorStatusBody, hub: SubscriberHub = Depends(get_hub)):
    """External simulators call this on start/stop; dashboards get SIMULATOR_STATUS."""
    delivered = hub.publish(SIMULATOR_STATUS_TOPIC, simulator_status(body.running))
    logger.info(f"Simulator {'running' if body.running else 'stopped'} ({delivered} subscribers)")
    return {"running": body.running, "delivered": delivered}
