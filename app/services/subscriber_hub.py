# app/services/subscriber_hub.py
"""
In-process fan-out of live events to WebSocket subscribers.

Each subscriber owns a bounded asyncio.Queue. publish() never awaits: it
put_nowait()s into every queue of the topic, so a slow dashboard only loses
its own events (logged as a broadcast failure) and never delays ingestion or
other subscribers. There is no history; a late subscriber sees only events
published after it subscribed.

Queues belong to the event loop the hub is bound to (bind() at startup).
publish() called from any other thread, such as a sync route running in the
threadpool, is re-scheduled onto that loop with call_soon_threadsafe().
"""

import asyncio
import itertools
import threading
from typing import Optional
from app.config import settings
from app.services.broadcast import BroadcastEvent
from app.utils.logger import get_logger

logger = get_logger(__name__)


class Subscription:
    _ids = itertools.count(1)

    def __init__(self, topic: str, maxsize: int):
        self.id = next(self._ids)
        self.topic = topic
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.closed = False
        self.dropped = 0

    def deliver(self, event: BroadcastEvent):
        self.queue.put_nowait(event)

    async def get(self, timeout: Optional[float] = None) -> BroadcastEvent:
        if timeout is None:
            return await self.queue.get()
        return await asyncio.wait_for(self.queue.get(), timeout)

    def __repr__(self):
        return f"<Subscription {self.id} topic={self.topic} closed={self.closed}>"


class SubscriberHub:
    def __init__(self, queue_size: int = None):
        self.queue_size = queue_size or settings.HUB_SUBSCRIBER_QUEUE_SIZE
        self._topics: dict[str, list[Subscription]] = {}
        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop

    def _off_loop(self) -> bool:
        if self._loop is None or self._loop.is_closed():
            return False
        try:
            return asyncio.get_running_loop() is not self._loop
        except RuntimeError:
            return True

    def subscribe(self, topic: str) -> Subscription:
        subscription = Subscription(topic, self.queue_size)
        with self._lock:
            self._topics.setdefault(topic, []).append(subscription)
        logger.debug(f"[HUB] +{subscription} ({self.subscriber_count(topic)} on {topic})")
        return subscription

    def unsubscribe(self, subscription: Subscription):
        subscription.closed = True
        with self._lock:
            subs = self._topics.get(subscription.topic, [])
            if subscription in subs:
                subs.remove(subscription)
            if not subs:
                self._topics.pop(subscription.topic, None)
        logger.debug(f"[HUB] -{subscription}")

    def subscriber_count(self, topic: str = None) -> int:
        with self._lock:
            if topic is not None:
                return len(self._topics.get(topic, []))
            return sum(len(subs) for subs in self._topics.values())

    def publish(self, topic: str, event: BroadcastEvent) -> int:
        """
        Deliver `event` to current subscribers of `topic`. Returns how many got it;
        off the loop thread delivery is deferred and the current subscriber count
        is returned instead.
        """
        if self._off_loop():
            self._loop.call_soon_threadsafe(self.publish, topic, event)
            return self.subscriber_count(topic)

        with self._lock:
            targets = list(self._topics.get(topic, []))

        delivered = 0
        for subscription in targets:
            if subscription.closed:
                continue
            try:
                subscription.deliver(event)
                delivered += 1
            except asyncio.QueueFull:
                subscription.dropped += 1
                logger.warning(
                    f"[HUB] Broadcast failure: {subscription} queue full, "
                    f"dropped {event.type.value} ({subscription.dropped} dropped so far)"
                )
            except Exception as e:
                logger.error(f"[HUB] Broadcast failure: {subscription} on {topic}: {e}", exc_info=True)

        logger.debug(f"[HUB] {event.type.value} → {topic} ({delivered}/{len(targets)})")
        return delivered
