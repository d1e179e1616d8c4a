# app/services/mqtt_adapter.py
"""
MQTT transport: connects to the broker, subscribes to car topics and routes
messages into the ingestion pipeline.

Topics (prefix = MQTT_TOPIC_PREFIX):
    {prefix}/{vehicleId}/telemetry   JSON reading  → pipeline.ingest
    {prefix}/{vehicleId}/status      freeform      → pipeline.handle_status

Connection state machine:
    DISCONNECTED → CONNECTING → SUBSCRIBED
    SUBSCRIBED → DISCONNECTED (connection lost) → RECONNECTING → SUBSCRIBED

paho runs its own network thread (loop_start) and reconnects with
exponential backoff (MQTT_RECONNECT_MIN_DELAY … MQTT_RECONNECT_MAX_DELAY).
Every connection gets a generation number; subscriptions are made once per
generation, so repeated on_connect callbacks never double-subscribe and a
subscribe belonging to a dropped connection is abandoned.

Callbacks execute on the paho thread and hand work to the asyncio loop with
run_coroutine_threadsafe / call_soon_threadsafe.
"""

import asyncio
import json
import threading
import uuid
from collections import Counter
from datetime import datetime
from enum import Enum
from typing import Optional
import paho.mqtt.client as mqtt
from app.config import settings
from app.services.broadcast import MQTT_STATUS_TOPIC, connection_status
from app.utils.logger import get_logger

logger = get_logger(__name__)

TELEMETRY_KIND = "telemetry"
STATUS_KIND = "status"


class ConnectionState(str, Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    SUBSCRIBED = "SUBSCRIBED"
    RECONNECTING = "RECONNECTING"


class MqttTransportAdapter:
    def __init__(self, pipeline, hub, client: Optional[mqtt.Client] = None,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        self.pipeline = pipeline
        self.hub = hub
        self.prefix = settings.MQTT_TOPIC_PREFIX.rstrip("/")
        self.qos = settings.MQTT_QOS
        self.client_id = settings.MQTT_CLIENT_ID or f"smartcar-backend-{uuid.uuid4().hex[:8]}"

        self._client = client or self._build_client()
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

        self._loop = loop
        self._lock = threading.Lock()
        self._state = ConnectionState.DISCONNECTED
        self._generation = 0
        self._subscribed_generation: Optional[int] = None
        self._stopping = False
        self._publish_slots = asyncio.Semaphore(settings.MQTT_MAX_INFLIGHT_PUBLISHES)
        self.stats = Counter()

    def _build_client(self) -> mqtt.Client:
        client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=self.client_id,
                             clean_session=True)
        if settings.MQTT_USERNAME:
            client.username_pw_set(settings.MQTT_USERNAME, settings.MQTT_PASSWORD)
        client.enable_logger(get_logger("paho.mqtt"))
        return client

    # ── State ────────────────────────────────────────────────────────────────
    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.SUBSCRIBED

    @property
    def topic_filters(self) -> tuple:
        return (f"{self.prefix}/+/{TELEMETRY_KIND}", f"{self.prefix}/+/{STATUS_KIND}")

    def _set_state(self, state: ConnectionState):
        if state != self._state:
            logger.info(f"[MQTT] {self._state.value} → {state.value}")
        self._state = state

    # ── Lifecycle ────────────────────────────────────────────────────────────
    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        """Begin connecting in the background. Call from the event loop thread."""
        self._loop = loop or self._loop or asyncio.get_running_loop()
        self._stopping = False
        with self._lock:
            self._set_state(ConnectionState.CONNECTING)
        logger.info(f"📡 Connecting to MQTT broker {settings.MQTT_BROKER_HOST}:{settings.MQTT_BROKER_PORT} "
                    f"as {self.client_id}")
        self._client.reconnect_delay_set(min_delay=settings.MQTT_RECONNECT_MIN_DELAY,
                                         max_delay=settings.MQTT_RECONNECT_MAX_DELAY)
        self._client.connect_async(settings.MQTT_BROKER_HOST, settings.MQTT_BROKER_PORT,
                                   keepalive=settings.MQTT_KEEPALIVE)
        self._client.loop_start()

    def stop(self):
        self._stopping = True
        try:
            self._client.disconnect()
        finally:
            self._client.loop_stop()
        with self._lock:
            self._generation += 1
            self._subscribed_generation = None
            self._set_state(ConnectionState.DISCONNECTED)
        self._notify_connection(False)
        logger.info("🛑 MQTT transport stopped")

    # ── paho callbacks (network thread) ──────────────────────────────────────
    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.error(f"❌ MQTT connect refused: {reason_code}")
            with self._lock:
                self._set_state(ConnectionState.RECONNECTING)
            return

        with self._lock:
            generation = self._generation
        logger.info(f"✅ MQTT connected (generation {generation})")
        if self._subscribe_once(generation):
            self._notify_connection(True)

    def _subscribe_once(self, generation: int) -> bool:
        """Subscribe every topic filter for `generation`. False if skipped or failed."""
        with self._lock:
            if generation != self._generation:
                logger.info(f"[MQTT] Subscribe for generation {generation} superseded by {self._generation}")
                return False
            if self._subscribed_generation == generation:
                logger.debug(f"[MQTT] Generation {generation} already subscribed")
                return False

            for topic_filter in self.topic_filters:
                result, _mid = self._client.subscribe(topic_filter, qos=self.qos)
                if result != mqtt.MQTT_ERR_SUCCESS:
                    logger.error(
                        f"[MQTT] Subscribe to {topic_filter} failed: {mqtt.error_string(result)}. "
                        f"Connected but not subscribed (state={self._state.value}), inbound messages "
                        f"are dropped until the next reconnect"
                    )
                    self.stats["subscribe_failures"] += 1
                    return False
                logger.info(f"[MQTT] Subscribed to {topic_filter} (qos={self.qos})")

            self._subscribed_generation = generation
            self._set_state(ConnectionState.SUBSCRIBED)
        return True

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties=None):
        with self._lock:
            self._generation += 1
            self._subscribed_generation = None
            self._set_state(ConnectionState.DISCONNECTED)
        if self._stopping:
            return

        logger.warning(f"⚠️  MQTT connection lost: {reason_code}. Reconnecting...")
        self._notify_connection(False)
        with self._lock:
            self._set_state(ConnectionState.RECONNECTING)

    def _on_message(self, client, userdata, msg):
        try:
            if self._state != ConnectionState.SUBSCRIBED:
                self.stats["dropped_not_subscribed"] += 1
                logger.debug(f"[MQTT] Not subscribed, dropping message on {msg.topic}")
                return

            route = self.parse_topic(msg.topic)
            if route is None:
                self.stats["dropped_bad_topic"] += 1
                logger.warning(f"[MQTT] Unroutable topic {msg.topic!r}")
                return

            vehicle_id, kind = route
            logger.debug(f"📥 {msg.topic} ({len(msg.payload)} bytes)")
            self.stats[kind] += 1
            if kind == TELEMETRY_KIND:
                self._dispatch(self.pipeline.ingest(vehicle_id, msg.payload), msg.topic)
            else:
                self._dispatch(self.pipeline.handle_status(vehicle_id, msg.payload), msg.topic)
        except Exception as e:
            logger.error(f"[MQTT] Error handling message on {msg.topic}: {e}", exc_info=True)

    # ── Routing ──────────────────────────────────────────────────────────────
    def parse_topic(self, topic: str) -> Optional[tuple]:
        """`{prefix}/{vehicleId}/{kind}` → (vehicle_id, kind), or None."""
        head = f"{self.prefix}/"
        if not topic.startswith(head):
            return None
        parts = topic[len(head):].split("/")
        if len(parts) != 2 or parts[1] not in (TELEMETRY_KIND, STATUS_KIND):
            return None
        try:
            vehicle_id = int(parts[0])
        except ValueError:
            return None
        return vehicle_id, parts[1]

    def _dispatch(self, coro, topic: str):
        if self._loop is None or self._loop.is_closed():
            coro.close()
            logger.error(f"[MQTT] No event loop, dropping message on {topic}")
            return
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        future.add_done_callback(lambda f: self._log_dispatch_failure(f, topic))

    @staticmethod
    def _log_dispatch_failure(future, topic: str):
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error(f"[MQTT] Processing of {topic} failed: {exc}", exc_info=exc)

    def _notify_connection(self, connected: bool):
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self.hub.publish, MQTT_STATUS_TOPIC, connection_status(connected))

    # ── Outbound ─────────────────────────────────────────────────────────────
    async def publish(self, topic: str, payload, qos: Optional[int] = None) -> bool:
        """
        Publish once. At most MQTT_MAX_INFLIGHT_PUBLISHES run together and each
        waits at most MQTT_PUBLISH_TIMEOUT_SECONDS for the broker ack.
        Failures are logged and reported as False; nothing is retried here.
        """
        if isinstance(payload, (dict, list)):
            payload = json.dumps(payload, default=str)
        qos = self.qos if qos is None else qos

        async with self._publish_slots:
            try:
                info = self._client.publish(topic, payload, qos=qos, retain=False)
                if info.rc != mqtt.MQTT_ERR_SUCCESS:
                    logger.error(f"[MQTT] Publish to {topic} failed: {mqtt.error_string(info.rc)}")
                    self.stats["publish_failures"] += 1
                    return False
                if qos > 0:
                    await asyncio.to_thread(info.wait_for_publish, settings.MQTT_PUBLISH_TIMEOUT_SECONDS)
                    if not info.is_published():
                        logger.error(f"[MQTT] Publish to {topic} not acknowledged within "
                                     f"{settings.MQTT_PUBLISH_TIMEOUT_SECONDS}s")
                        self.stats["publish_failures"] += 1
                        return False
            except (ValueError, RuntimeError) as e:
                logger.error(f"[MQTT] Publish to {topic} failed: {e}")
                self.stats["publish_failures"] += 1
                return False

        self.stats["published"] += 1
        logger.debug(f"[MQTT] Published to {topic}")
        return True

    async def publish_telemetry(self, vehicle_id: int, payload: dict) -> bool:
        return await self.publish(f"{self.prefix}/{vehicle_id}/{TELEMETRY_KIND}", payload)

    async def publish_status(self, vehicle_id: int, status: str) -> bool:
        body = {"status": status, "timestamp": datetime.utcnow().isoformat()}
        return await self.publish(f"{self.prefix}/{vehicle_id}/{STATUS_KIND}", body)
