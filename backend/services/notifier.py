"""
Alert Notifier
Per-topic subscriber registry that pushes alert lifecycle events to live clients.

Topics:
    all                 every alert
    equipment-<id>      alerts for one piece of equipment
    rack-<id>           alerts for one rack
    serverroom-<id>     alerts for one server room
    datacenter-<id>     alerts for one data center

Usage:
    notifier = get_notifier()
    sub = notifier.subscribe_all()
    notifier.send_alert_triggered(alert)
    event = await sub.next_event(timeout=30)
    notifier.unsubscribe(sub)

Delivery is best-effort and at-most-once. A subscriber whose channel refuses
an event is dropped on the spot; nothing is replayed to late subscribers.
"""

import asyncio
import json
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from core import TargetRef, TargetType, DeliveryError

logger = logging.getLogger(__name__)


ALL_TOPIC = "all"

CONNECTED = "connected"
ALERT_TRIGGERED = "alert-triggered"
ALERT_ACKNOWLEDGED = "alert-acknowledged"
ALERT_RESOLVED = "alert-resolved"


def target_topic(target_type: TargetType, target_id: int) -> str:
    return TargetRef(target_type, target_id).topic


@dataclass
class ChannelEvent:
    """One named event as pushed to a subscriber"""
    name: str
    data: Any
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    created_at: datetime = field(default_factory=datetime.now)

    def to_sse(self) -> str:
        """Server-Sent Events wire format"""
        data = self.data if isinstance(self.data, str) else json.dumps(self.data)
        lines = [f"id: {self.id}", f"event: {self.name}"]
        lines += [f"data: {line}" for line in data.splitlines() or [""]]
        return "\n".join(lines) + "\n\n"


_CLOSED = object()


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class Subscription:
    """
    A live push channel for one topic.

    send() never blocks: it either enqueues the event or raises
    DeliveryError (closed channel, backlog full, owning loop gone).
    Events sent from other threads are handed to the owning event loop.
    The backlog counts those hand-offs too, run or not.
    """

    def __init__(
        self,
        topic: str,
        max_pending: int = 100,
        loop: asyncio.AbstractEventLoop = None,
    ):
        self.id = f"sub_{uuid.uuid4().hex[:8]}"
        self.topic = topic
        self.created_at = datetime.now()
        self._max_pending = max_pending
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue()
        self._pending = 0
        self._pending_lock = threading.Lock()
        self._closed = False
        self.delivered = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._pending

    def _enqueue(self, item) -> None:
        loop = self._loop
        if loop is None or _running_loop() is loop:
            self._queue.put_nowait(item)
        else:
            loop.call_soon_threadsafe(self._queue.put_nowait, item)

    def send(self, event: ChannelEvent) -> None:
        if self._closed:
            raise DeliveryError(f"{self.id} is closed")
        with self._pending_lock:
            if self._pending >= self._max_pending:
                raise DeliveryError(f"{self.id} backlog full ({self._max_pending})")
            self._pending += 1
        try:
            self._enqueue(event)
        except RuntimeError as exc:  # owning loop closed
            self._taken()
            raise DeliveryError(f"{self.id} loop unavailable") from exc
        with self._pending_lock:
            self.delivered += 1

    def _taken(self) -> None:
        with self._pending_lock:
            self._pending -= 1

    def close(self) -> None:
        """Stop further deliveries and wake a waiting reader"""
        if self._closed:
            return
        self._closed = True
        try:
            self._enqueue(_CLOSED)
        except RuntimeError:
            pass

    async def next_event(self, timeout: float = None) -> Optional[ChannelEvent]:
        """Next event, or None on timeout or once the channel is closed"""
        if self._closed and self._queue.empty():
            return None
        try:
            if timeout:
                item = await asyncio.wait_for(self._queue.get(), timeout)
            else:
                item = await self._queue.get()
        except asyncio.TimeoutError:
            return None
        if item is _CLOSED:
            return None
        self._taken()
        return item

    def drain(self) -> List[ChannelEvent]:
        """Pop everything queued without waiting"""
        events = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is not _CLOSED:
                self._taken()
                events.append(item)
        return events

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "topic": self.topic,
            "created_at": self.created_at.isoformat(),
            "pending": self.pending,
            "delivered": self.delivered,
            "closed": self._closed,
        }


class AlertNotifier:
    """
    Owns the topic → subscribers registry.

    Publishes iterate a snapshot of the topic's subscribers, so
    subscribe/unsubscribe may run concurrently with publishing.
    """

    def __init__(self, max_pending: int = 100):
        self._max_pending = max_pending
        self._subscribers: Dict[str, List[Subscription]] = {}
        self._lock = threading.RLock()
        self._stats = {
            "published": 0,
            "delivered": 0,
            "dropped": 0,
            "start_time": datetime.now(),
        }

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def subscribe(self, topic: str, loop: asyncio.AbstractEventLoop = None) -> Subscription:
        sub = Subscription(topic, self._max_pending, loop or _running_loop())
        with self._lock:
            self._subscribers.setdefault(topic, []).append(sub)

        try:
            sub.send(ChannelEvent(CONNECTED, f"Connected to {topic}"))
        except DeliveryError:
            logger.error("Initial send failed, dropping subscriber: topic=%s", topic)
            self.unsubscribe(sub)
            return sub

        logger.info("Subscriber connected: topic=%s id=%s", topic, sub.id)
        return sub

    def subscribe_all(self, loop: asyncio.AbstractEventLoop = None) -> Subscription:
        return self.subscribe(ALL_TOPIC, loop)

    def subscribe_target(
        self,
        target_type: TargetType,
        target_id: int,
        loop: asyncio.AbstractEventLoop = None,
    ) -> Subscription:
        return self.subscribe(target_topic(target_type, target_id), loop)

    def unsubscribe(self, sub: Subscription) -> bool:
        removed = self._remove(sub)
        sub.close()
        if removed:
            logger.info("Subscriber disconnected: topic=%s id=%s", sub.topic, sub.id)
        return removed

    def _remove(self, sub: Subscription) -> bool:
        with self._lock:
            subs = self._subscribers.get(sub.topic)
            if not subs or sub not in subs:
                return False
            subs.remove(sub)
            if not subs:
                del self._subscribers[sub.topic]
            return True

    # =========================================================================
    # Publishing
    # =========================================================================

    def publish(self, topic: str, event_name: str, payload: Any) -> int:
        """Push one event to every subscriber of ``topic``. Returns deliveries."""
        with self._lock:
            subs = list(self._subscribers.get(topic, ()))
        if not subs:
            return 0

        event = ChannelEvent(event_name, payload)
        delivered = 0
        for sub in subs:
            try:
                sub.send(event)
                delivered += 1
            except DeliveryError as exc:
                logger.debug("Send failed, removing subscriber: topic=%s (%s)", topic, exc)
                if self._remove(sub):
                    with self._lock:
                        self._stats["dropped"] += 1
                sub.close()

        with self._lock:
            self._stats["published"] += 1
            self._stats["delivered"] += delivered
        return delivered

    def _publish_alert(self, event_name: str, alert) -> int:
        payload = alert.to_dict()
        delivered = self.publish(ALL_TOPIC, event_name, payload)
        delivered += self.publish(alert.target.topic, event_name, payload)
        return delivered

    def send_alert_triggered(self, alert) -> int:
        return self._publish_alert(ALERT_TRIGGERED, alert)

    def send_alert_acknowledged(self, alert) -> int:
        return self._publish_alert(ALERT_ACKNOWLEDGED, alert)

    def send_alert_resolved(self, alert) -> int:
        return self._publish_alert(ALERT_RESOLVED, alert)

    # =========================================================================
    # Introspection & Lifecycle
    # =========================================================================

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, ()))

    def total_subscriber_count(self) -> int:
        with self._lock:
            return sum(len(subs) for subs in self._subscribers.values())

    def topics(self) -> Dict[str, int]:
        with self._lock:
            return {topic: len(subs) for topic, subs in self._subscribers.items()}

    def close(self) -> None:
        """Disconnect everyone. Used at shutdown."""
        with self._lock:
            subs = [s for topic_subs in self._subscribers.values() for s in topic_subs]
            self._subscribers.clear()
        for sub in subs:
            sub.close()
        if subs:
            logger.info("Closed %d subscriber(s)", len(subs))

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            counters = dict(self._stats)
        uptime = (datetime.now() - counters["start_time"]).total_seconds()
        return {
            "published": counters["published"],
            "delivered": counters["delivered"],
            "dropped": counters["dropped"],
            "uptime_seconds": round(uptime, 2),
            "total_subscribers": self.total_subscriber_count(),
            "topics": self.topics(),
        }


_notifier: Optional[AlertNotifier] = None


def get_notifier(max_pending: int = 100) -> AlertNotifier:
    """Get or create notifier singleton"""
    global _notifier
    if _notifier is None:
        _notifier = AlertNotifier(max_pending=max_pending)
    return _notifier
