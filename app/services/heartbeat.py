# app/services/heartbeat.py
"""
Periodic HEARTBEAT + DASHBOARD_STATS broadcaster.
Keeps idle dashboard sockets alive and refreshes the summary tiles
(vehicles, readings, alerts) without the dashboard polling REST.
"""

import asyncio
from sqlalchemy.exc import SQLAlchemyError
from app.config import settings
from app.database import SessionLocal
from app.services import alert_service, telemetry_service, vehicle_service
from app.services.broadcast import (DASHBOARD_STATS_TOPIC, HEARTBEAT_TOPIC,
                                    dashboard_stats, heartbeat)
from app.utils.logger import get_logger

logger = get_logger(__name__)


def collect_dashboard_stats(session_factory=None) -> dict:
    db = (session_factory or SessionLocal)()
    try:
        return {
            "activeVehicles": vehicle_service.count_vehicles(db),
            "totalReadings": telemetry_service.count_readings(db),
            "activeAlerts": alert_service.count_alerts(db),
            "unacknowledgedAlerts": alert_service.count_alerts(db, acknowledged=False),
            "criticalAlerts": alert_service.count_critical_alerts(db),
        }
    finally:
        db.close()


async def publish_heartbeat(hub, session_factory=None):
    """One heartbeat tick. Stats are skipped (logged) if the DB is unavailable."""
    hub.publish(HEARTBEAT_TOPIC, heartbeat())
    try:
        stats = await asyncio.to_thread(collect_dashboard_stats, session_factory)
    except SQLAlchemyError as e:
        logger.warning(f"Dashboard stats unavailable: {e}")
        return
    hub.publish(DASHBOARD_STATS_TOPIC, dashboard_stats(stats))


async def run_heartbeat(hub, interval: int = None, session_factory=None):
    """Loops until cancelled. Started once at backend startup."""
    interval = interval or settings.HEARTBEAT_INTERVAL_SECONDS
    logger.info(f"💓 Heartbeat every {interval}s")
    while True:
        await asyncio.sleep(interval)
        try:
            await publish_heartbeat(hub, session_factory)
        except Exception as e:
            logger.error(f"Heartbeat tick failed: {e}", exc_info=True)
