# tests/test_telemetry_parser.py
"""Unit tests for inbound MQTT payload parsing."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
from datetime import datetime, timedelta, timezone
from app.services.telemetry_parser import (normalize_timestamp, parse_status_payload,
                                           parse_telemetry_payload)


class TestTelemetryPayload:
    def test_valid_payload(self):
        raw = json.dumps({"speed": 80, "fuelLevel": 45, "temperature": 30,
                          "location": "36.80,10.18"}).encode()
        payload = parse_telemetry_payload(raw)
        assert payload.speed == 80
        assert payload.fuel_level == 45
        assert payload.temperature == 30
        assert payload.location == "36.80,10.18"
        assert payload.timestamp is None

    def test_aware_timestamp_becomes_naive_utc(self):
        raw = json.dumps({"speed": 0, "fuelLevel": 50, "temperature": 20, "location": "X",
                          "timestamp": "2026-03-01T12:00:00+02:00"})
        payload = parse_telemetry_payload(raw)
        assert payload.timestamp == datetime(2026, 3, 1, 10, 0, 0)

    def test_not_json(self):
        assert parse_telemetry_payload(b"speed=80") is None

    def test_json_array(self):
        assert parse_telemetry_payload(b"[1, 2, 3]") is None

    def test_missing_field(self):
        assert parse_telemetry_payload(json.dumps({"speed": 80, "temperature": 30, "location": "X"})) is None

    def test_wrong_type(self):
        raw = json.dumps({"speed": "fast", "fuelLevel": 45, "temperature": 30, "location": "X"})
        assert parse_telemetry_payload(raw) is None

    def test_bad_timestamp(self):
        raw = json.dumps({"speed": 1, "fuelLevel": 45, "temperature": 30, "location": "X",
                          "timestamp": "yesterday-ish"})
        assert parse_telemetry_payload(raw) is None

    def test_undecodable_bytes(self):
        assert parse_telemetry_payload(b"\xff\xfe\x00") is None


class TestStatusPayload:
    def test_json_status(self):
        raw = json.dumps({"status": "MOVING", "timestamp": "2026-03-01T12:00:00"}).encode()
        assert parse_status_payload(raw) == "MOVING"

    def test_bare_string(self):
        assert parse_status_payload(b"  engine check  ") == "engine check"

    def test_quoted_string(self):
        assert parse_status_payload('"PARKED"') == "PARKED"

    def test_json_without_status_is_kept_verbatim(self):
        assert parse_status_payload('{"foo": 1}') == '{"foo": 1}'


class TestNormalizeTimestamp:
    def test_none(self):
        assert normalize_timestamp(None) is None

    def test_naive_untouched(self):
        ts = datetime(2026, 1, 1, 8, 30)
        assert normalize_timestamp(ts) is ts

    def test_aware_converted(self):
        ts = datetime(2026, 1, 1, 8, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert normalize_timestamp(ts) == datetime(2026, 1, 1, 13, 30)
