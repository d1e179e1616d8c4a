# tests/test_subscriber_hub.py
"""Unit tests for the live-update subscriber hub."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import pytest
from app.services.broadcast import (EventType, car_location, heartbeat, telemetry_update,
                                    BroadcastEvent)
from app.services.subscriber_hub import SubscriberHub


class TestSubscriberHub:
    @pytest.mark.asyncio
    async def test_subscriber_receives_published_event(self):
        hub = SubscriberHub(queue_size=10)
        sub = hub.subscribe("telemetry")

        assert hub.publish("telemetry", telemetry_update({"carId": 1})) == 1
        event = await sub.get(timeout=1)
        assert event.type == EventType.TELEMETRY_UPDATE
        assert event.fields["data"] == {"carId": 1}

    @pytest.mark.asyncio
    async def test_no_replay_for_late_subscriber(self):
        hub = SubscriberHub(queue_size=10)
        hub.publish("telemetry", telemetry_update({"carId": 1}))
        late = hub.subscribe("telemetry")

        assert late.queue.empty()
        with pytest.raises(asyncio.TimeoutError):
            await late.get(timeout=0.05)

    def test_topics_are_isolated(self):
        hub = SubscriberHub(queue_size=10)
        alerts = hub.subscribe("alerts")
        telemetry = hub.subscribe("telemetry")

        hub.publish("telemetry", telemetry_update({"carId": 1}))
        assert alerts.queue.empty()
        assert telemetry.queue.qsize() == 1

    def test_publish_without_subscribers(self):
        hub = SubscriberHub(queue_size=10)
        assert hub.publish("map/locations", car_location(1, "A")) == 0

    def test_full_queue_only_affects_its_owner(self):
        hub = SubscriberHub(queue_size=2)
        slow = hub.subscribe("telemetry")
        fast = hub.subscribe("telemetry")

        for i in range(2):
            hub.publish("telemetry", telemetry_update({"n": i}))
        while not fast.queue.empty():
            fast.queue.get_nowait()

        delivered = hub.publish("telemetry", telemetry_update({"n": 2}))

        assert delivered == 1
        assert slow.dropped == 1
        assert slow.queue.qsize() == 2
        assert fast.queue.get_nowait().fields["data"] == {"n": 2}

    def test_unsubscribe_stops_delivery(self):
        hub = SubscriberHub(queue_size=10)
        sub = hub.subscribe("heartbeat")
        hub.unsubscribe(sub)

        assert hub.publish("heartbeat", heartbeat()) == 0
        assert sub.closed
        assert hub.subscriber_count() == 0

    def test_unsubscribe_twice_is_harmless(self):
        hub = SubscriberHub(queue_size=10)
        sub = hub.subscribe("heartbeat")
        hub.unsubscribe(sub)
        hub.unsubscribe(sub)
        assert hub.subscriber_count("heartbeat") == 0

    def test_closed_during_publish_is_skipped(self):
        hub = SubscriberHub(queue_size=10)
        first = hub.subscribe("alerts")
        second = hub.subscribe("alerts")

        original = first.deliver

        def deliver_and_close_second(event):
            original(event)
            hub.unsubscribe(second)

        first.deliver = deliver_and_close_second
        delivered = hub.publish("alerts", heartbeat())

        assert delivered == 1
        assert second.queue.empty()

    def test_failing_subscriber_does_not_block_others(self):
        hub = SubscriberHub(queue_size=10)
        broken = hub.subscribe("alerts")
        healthy = hub.subscribe("alerts")

        def explode(event):
            raise RuntimeError("socket gone")

        broken.deliver = explode
        assert hub.publish("alerts", heartbeat()) == 1
        assert healthy.queue.qsize() == 1

    def test_subscriber_count(self):
        hub = SubscriberHub(queue_size=10)
        hub.subscribe("telemetry")
        hub.subscribe("telemetry")
        hub.subscribe("vehicle/3/telemetry")
        assert hub.subscriber_count("telemetry") == 2
        assert hub.subscriber_count("vehicle/3/telemetry") == 1
        assert hub.subscriber_count() == 3


class TestBroadcastEvent:
    def test_message_envelope(self):
        event = car_location(4, "36.8,10.1")
        message = event.to_message()
        assert message["type"] == "CAR_LOCATION"
        assert message["carId"] == 4
        assert message["location"] == "36.8,10.1"
        assert "timestamp" in message

    def test_heartbeat_has_only_type_and_timestamp(self):
        assert set(BroadcastEvent(EventType.HEARTBEAT).to_message()) == {"type", "timestamp"}


class TestCrossThreadPublish:
    @pytest.mark.asyncio
    async def test_publish_from_worker_thread_lands_on_loop(self):
        hub = SubscriberHub(queue_size=10)
        hub.bind(asyncio.get_running_loop())
        sub = hub.subscribe("alerts")

        await asyncio.to_thread(hub.publish, "alerts", heartbeat())

        event = await sub.get(timeout=1)
        assert event.type == EventType.HEARTBEAT
