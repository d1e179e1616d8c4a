# tests/test_alert_service.py
"""Unit tests for the alert store."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timedelta
from app.models.alert import AlertSeverity, AlertType
from app.services import alert_service


def raise_alert(db, vehicle, severity=AlertSeverity.HIGH, alert_type=AlertType.LOW_FUEL, **kw):
    return alert_service.create_alert(db, vehicle.id, alert_type, severity, "test alert", **kw)


class TestAlertService:
    def test_create_alert_defaults(self, db, vehicle):
        alert = raise_alert(db, vehicle)

        assert alert.id is not None
        assert alert.alert_type == "LOW_FUEL"
        assert alert.severity == "HIGH"
        assert alert.acknowledged is False
        assert alert.is_active is True
        assert alert.timestamp is not None

    def test_acknowledge(self, db, vehicle):
        alert = raise_alert(db, vehicle)
        acked = alert_service.acknowledge_alert(db, alert.id)
        assert acked.acknowledged is True
        assert alert_service.count_alerts(db, acknowledged=False) == 0

    def test_acknowledge_missing(self, db):
        assert alert_service.acknowledge_alert(db, 12345) is None

    def test_list_newest_first_with_filters(self, db, vehicle):
        now = datetime.utcnow()
        old = raise_alert(db, vehicle, timestamp=now - timedelta(hours=1))
        new = raise_alert(db, vehicle, severity=AlertSeverity.CRITICAL,
                          alert_type=AlertType.HIGH_SPEED, timestamp=now)

        assert [a.id for a in alert_service.list_alerts(db)] == [new.id, old.id]
        assert [a.id for a in alert_service.list_alerts(db, alert_type="HIGH_SPEED")] == [new.id]
        assert [a.id for a in alert_service.list_alerts(db, severity=AlertSeverity.HIGH)] == [old.id]
        assert len(alert_service.list_alerts(db, limit=1)) == 1

    def test_critical_includes_high_and_critical(self, db, vehicle):
        raise_alert(db, vehicle, severity=AlertSeverity.MEDIUM)
        raise_alert(db, vehicle, severity=AlertSeverity.HIGH)
        raise_alert(db, vehicle, severity=AlertSeverity.CRITICAL)

        assert {a.severity for a in alert_service.list_critical_alerts(db)} == {"HIGH", "CRITICAL"}
        assert alert_service.count_critical_alerts(db) == 2
        assert alert_service.count_alerts(db, severity=AlertSeverity.MEDIUM) == 1

    def test_soft_delete_hides_from_listing(self, db, vehicle):
        alert = raise_alert(db, vehicle)
        alert_service.set_alert_active(db, alert.id, False)

        assert alert_service.list_alerts(db) == []
        assert alert_service.count_alerts(db) == 0
        assert alert_service.get_alert(db, alert.id) is not None

        alert_service.set_alert_active(db, alert.id, True)
        assert alert_service.count_alerts(db) == 1
