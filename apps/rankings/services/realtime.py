#!/usr/bin/env python3
"""In-process realtime channel feeding the server-sent events stream"""

import asyncio
import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Optional, Set

from apps.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Subscription:
    """One open stream of one user"""
    user_id: int
    loop: asyncio.AbstractEventLoop
    queue: asyncio.Queue = field(repr=False)
    dropped: int = 0


class RealtimeHub:
    """Fan-out of named events to every open stream of a user.

    ``send`` may be called from any thread (background tasks run in the
    threadpool); delivery is handed to the subscriber's event loop. Sending to
    a user without open streams is a no-op, a full queue drops the event.
    """

    def __init__(self, queue_size: Optional[int] = None):
        self.queue_size = queue_size or settings.realtime_queue_size
        self._subscribers: Dict[int, Set[Subscription]] = {}
        self._lock = threading.Lock()

    def subscribe(self, user_id: int) -> Subscription:
        """Register a stream; must be called from inside the serving event loop"""
        subscription = Subscription(
            user_id=user_id,
            loop=asyncio.get_running_loop(),
            queue=asyncio.Queue(maxsize=self.queue_size),
        )
        with self._lock:
            self._subscribers.setdefault(user_id, set()).add(subscription)
        logger.debug(f"Realtime stream opened for user {user_id}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subscribers.get(subscription.user_id)
            if subs is None:
                return
            subs.discard(subscription)
            if not subs:
                del self._subscribers[subscription.user_id]
        logger.debug(f"Realtime stream closed for user {subscription.user_id}")

    def connected(self, user_id: int) -> int:
        with self._lock:
            return len(self._subscribers.get(user_id, ()))

    @staticmethod
    def _offer(subscription: Subscription, message: Dict[str, str]) -> None:
        try:
            subscription.queue.put_nowait(message)
        except asyncio.QueueFull:
            subscription.dropped += 1

    def send(self, user_id: int, event: str, payload: Any) -> int:
        """Queue ``event`` for every stream of ``user_id``; returns streams reached"""
        with self._lock:
            subs = list(self._subscribers.get(user_id, ()))
        if not subs:
            return 0

        message = {"event": event, "data": json.dumps(payload, default=str)}
        delivered = 0
        for subscription in subs:
            try:
                subscription.loop.call_soon_threadsafe(self._offer, subscription, message)
                delivered += 1
            except RuntimeError:
                # loop already closed, stream is gone
                self.unsubscribe(subscription)
        return delivered

    async def stream(self, subscription: Subscription) -> AsyncIterator[Dict[str, str]]:
        """Yield queued events until the client disconnects"""
        try:
            while True:
                yield await subscription.queue.get()
        finally:
            self.unsubscribe(subscription)


# Global instance
_hub = None


def get_realtime_hub() -> RealtimeHub:
    """Get global realtime hub"""
    global _hub
    if _hub is None:
        _hub = RealtimeHub()
    return _hub
