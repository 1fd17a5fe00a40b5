"""Push vitals snapshots to every connected stream subscriber.

One background task ticks on a fixed schedule, collects a snapshot in a
worker thread, serializes it once and hands it to every active subscription.
Delivery to the network happens in each subscriber's own task (the SSE
response), so a slow or broken client never stalls the tick loop or the
other subscribers.
"""

import asyncio
import itertools
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from vitals.models.vitals import VitalsSnapshot
from vitals.utils.logging import get_logger

logger = get_logger("vitals.broadcaster")


class Subscription:
    """
    Delivery slot for one subscriber.

    Holds at most one undelivered payload: a newer snapshot replaces an older
    one the client has not picked up yet, and snapshots older than the last
    one offered are dropped so timestamps never go backwards.
    """

    def __init__(self, subscription_id: int):
        self.id = subscription_id
        self._slot: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._last_collected_at: Optional[datetime] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, collected_at: datetime, payload: str) -> bool:
        """Queue a payload without blocking. Returns False if it was not accepted."""
        if self._closed:
            return False
        if self._last_collected_at is not None and collected_at < self._last_collected_at:
            return False

        if self._slot.full():
            self._slot.get_nowait()
        self._slot.put_nowait(payload)
        self._last_collected_at = collected_at
        return True

    async def next(self) -> Optional[str]:
        """Wait for the next payload; None once the subscription is closed."""
        if self._closed and self._slot.empty():
            return None
        payload = await self._slot.get()
        return payload

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Wake up a pending next() with the end-of-stream marker
        if self._slot.full():
            self._slot.get_nowait()
        self._slot.put_nowait(None)


def _encode(snapshot: VitalsSnapshot) -> Tuple[datetime, str]:
    return snapshot.collected_at, snapshot.to_json()


class VitalsBroadcaster:
    """Owns the subscriber registry and the tick loop."""

    def __init__(self, collect: Callable[[], VitalsSnapshot], interval: float = 5.0):
        self._collect = collect
        self._interval = interval
        self._subscribers: Dict[int, Subscription] = {}
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def start(self) -> None:
        if self.running:
            return
        self._stopped = False
        self._task = asyncio.create_task(self._run(), name="vitals-broadcaster")
        logger.info("broadcaster_started", interval=self._interval)

    async def stop(self) -> None:
        self._stopped = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

        async with self._lock:
            subscriptions = list(self._subscribers.values())
            self._subscribers.clear()
        for subscription in subscriptions:
            subscription.close()
        logger.info("broadcaster_stopped", closed=len(subscriptions))

    async def _snapshot(self) -> Optional[Tuple[datetime, str]]:
        loop = asyncio.get_running_loop()
        try:
            snapshot = await loop.run_in_executor(None, self._collect)
        except Exception as exc:
            logger.error("snapshot_collection_failed", error=str(exc))
            return None

        try:
            return _encode(snapshot)
        except Exception as exc:
            logger.error("snapshot_serialization_failed", error=str(exc))
            return None

    async def subscribe(self) -> Subscription:
        """
        Register a new subscriber and hand it a first snapshot right away.

        The first snapshot is collected before registration; the monotonic
        check in Subscription.offer drops a concurrent tick that is older.
        After stop() the returned subscription is already closed.
        """
        subscription = Subscription(next(self._ids))
        first = await self._snapshot()

        async with self._lock:
            if self._stopped:
                subscription.close()
                logger.info("sse_client_refused", subscriber=subscription.id, reason="stopped")
                return subscription
            self._subscribers[subscription.id] = subscription
            total = len(self._subscribers)
        if first is not None:
            subscription.offer(*first)

        logger.info("sse_client_connected", subscriber=subscription.id, total=total)
        return subscription

    async def unsubscribe(self, subscription: Subscription) -> None:
        async with self._lock:
            removed = self._subscribers.pop(subscription.id, None)
            total = len(self._subscribers)
        subscription.close()
        if removed is not None:
            logger.info("sse_client_disconnected", subscriber=subscription.id, total=total)

    async def tick(self) -> int:
        """Collect one snapshot and offer it to all subscribers. Returns the number reached."""
        async with self._lock:
            if not self._subscribers:
                return 0

        encoded = await self._snapshot()
        if encoded is None:
            return 0

        # Subscribers registered after this copy get their own first snapshot
        async with self._lock:
            subscriptions = list(self._subscribers.values())

        delivered = 0
        for subscription in subscriptions:
            if subscription.offer(*encoded):
                delivered += 1
        logger.debug("tick_delivered", subscribers=delivered)
        return delivered

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self._interval
        while True:
            await asyncio.sleep(max(next_tick - loop.time(), 0))
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("tick_failed", error=str(exc))

            # Fixed schedule; ticks missed while collecting are skipped
            next_tick += self._interval
            now = loop.time()
            if next_tick <= now:
                missed = int((now - next_tick) // self._interval) + 1
                next_tick += missed * self._interval
