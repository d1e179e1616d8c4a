# app/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + MQTT broker connection + live subscribers.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from sqlalchemy import text
from app.database import get_db
from datetime import datetime

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - MQTT state (or "disabled")
    - Live subscriber count and ingestion counters
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "mqtt": "disabled",
        "subscribers": 0,
        "ingestion": {},
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    state = request.app.state
    transport = getattr(state, "transport", None)
    if transport is not None:
        result["mqtt"] = transport.state.value.lower()
        if not transport.is_connected:
            result["status"] = "degraded"

    hub = getattr(state, "hub", None)
    if hub is not None:
        result["subscribers"] = hub.subscriber_count()

    pipeline = getattr(state, "pipeline", None)
    if pipeline is not None:
        result["ingestion"] = dict(pipeline.stats)

    return result
