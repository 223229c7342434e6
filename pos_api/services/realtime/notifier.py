import logging
import threading
from typing import Callable, List, Optional

from pos_api.services.realtime.feed import (
    CHANNEL_ERROR,
    CLOSED,
    SUBSCRIBED,
    TIMED_OUT,
    Channel,
    ChangeEvent,
    OrderChangeFeed,
)

logger = logging.getLogger(__name__)

OrderListener = Callable[[ChangeEvent], None]


class RealtimeNotifier:
    """
    Fans order change events out to in-process listeners.

    One channel on the change feed is opened by ``start()`` and shared by every
    listener. Listeners run in registration order; one raising does not stop
    the others. Created once per app and kept on ``app.state``.
    """

    CHANNEL_NAME = "global-orders-realtime"

    def __init__(self, feed: OrderChangeFeed):
        self.feed = feed
        self._channel: Optional[Channel] = None
        self._listeners: List[OrderListener] = []
        self._lock = threading.Lock()
        self.status: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self._channel is not None and self.status == SUBSCRIBED

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def start(self) -> None:
        if self._channel is not None:
            return
        self._channel = self.feed.channel(self.CHANNEL_NAME, self._dispatch, on_status=self._on_status)

    def stop(self) -> None:
        if self._channel is None:
            return
        channel, self._channel = self._channel, None
        self.feed.remove_channel(channel)
        with self._lock:
            self._listeners.clear()

    def subscribe_to_orders(self, callback: OrderListener) -> Callable[[], None]:
        with self._lock:
            if callback not in self._listeners:
                self._listeners.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def _on_status(self, status: str) -> None:
        self.status = status
        if status == SUBSCRIBED:
            logger.info("Realtime order channel subscribed")
        elif status in (CHANNEL_ERROR, TIMED_OUT):
            logger.error(f"Realtime order channel status {status}")
        elif status == CLOSED:
            logger.info("Realtime order channel closed")

    def _dispatch(self, event: ChangeEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        logger.debug(f"Order {event.event_type} -> {len(listeners)} listener(s)")
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(f"Order listener failed on {event.event_type}")
