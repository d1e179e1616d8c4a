# tests/test_heartbeat.py
"""Tests for the heartbeat / dashboard stats publisher."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import patch
from sqlalchemy.exc import OperationalError
from app.models.alert import AlertSeverity, AlertType
from app.services import alert_service
from app.services.broadcast import EventType
from app.services.heartbeat import collect_dashboard_stats, publish_heartbeat
from app.services.subscriber_hub import SubscriberHub


class TestHeartbeat:
    def test_collect_dashboard_stats(self, db, vehicle, session_factory):
        alert_service.create_alert(db, vehicle.id, AlertType.LOW_FUEL, AlertSeverity.CRITICAL, "x")
        alert_service.create_alert(db, vehicle.id, AlertType.HIGH_SPEED, AlertSeverity.MEDIUM, "y")

        stats = collect_dashboard_stats(session_factory)
        assert stats == {
            "activeVehicles": 1,
            "totalReadings": 0,
            "activeAlerts": 2,
            "unacknowledgedAlerts": 2,
            "criticalAlerts": 1,
        }

    @pytest.mark.asyncio
    async def test_publish_heartbeat(self, session_factory):
        hub = SubscriberHub(queue_size=5)
        beat = hub.subscribe("heartbeat")
        tiles = hub.subscribe("dashboard/stats")

        await publish_heartbeat(hub, session_factory)

        assert beat.queue.get_nowait().type == EventType.HEARTBEAT
        assert tiles.queue.get_nowait().type == EventType.DASHBOARD_STATS

    @pytest.mark.asyncio
    async def test_stats_skipped_when_db_down(self, session_factory):
        hub = SubscriberHub(queue_size=5)
        beat = hub.subscribe("heartbeat")
        tiles = hub.subscribe("dashboard/stats")

        with patch("app.services.heartbeat.collect_dashboard_stats",
                   side_effect=OperationalError("SELECT 1", {}, Exception("down"))):
            await publish_heartbeat(hub, session_factory)

        assert beat.queue.qsize() == 1
        assert tiles.queue.empty()
