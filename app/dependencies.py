# app/dependencies.py
"""FastAPI dependencies for the long-lived runtime objects created at startup."""

from fastapi import HTTPException, Request
from app.services.ingestion_pipeline import IngestionPipeline
from app.services.subscriber_hub import SubscriberHub


def get_hub(request: Request) -> SubscriberHub:
    return request.app.state.hub


def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


def get_transport(request: Request):
    """The MQTT adapter, or 503 when MQTT is disabled."""
    transport = getattr(request.app.state, "transport", None)
    if transport is None:
        raise HTTPException(status_code=503, detail="MQTT transport is disabled")
    return transport
