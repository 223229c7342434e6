"""
Change feed for the orders table.

Row changes are captured from SQLAlchemy mapper events while a session flushes
and are published only once that session commits; a rollback drops them.
Subscribers open a named channel and get every committed INSERT, UPDATE and
DELETE on ``orders`` as a ``ChangeEvent``.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, object_session

from pos_api import models

logger = logging.getLogger(__name__)

SUBSCRIBED = "SUBSCRIBED"
CHANNEL_ERROR = "CHANNEL_ERROR"
TIMED_OUT = "TIMED_OUT"
CLOSED = "CLOSED"

_PENDING_KEY = "order_change_feed.pending"


@dataclass
class ChangeEvent:
    event_type: str  # INSERT|UPDATE|DELETE
    table: str
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None
    commit_timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eventType": self.event_type,
            "table": self.table,
            "new": self.new,
            "old": self.old,
            "commit_timestamp": self.commit_timestamp,
        }


class Channel:
    def __init__(
        self,
        feed: "OrderChangeFeed",
        name: str,
        callback: Callable[[ChangeEvent], None],
        on_status: Optional[Callable[[str], None]] = None,
    ):
        self.feed = feed
        self.name = name
        self.callback = callback
        self.on_status = on_status
        self.status: Optional[str] = None

    def set_status(self, status: str) -> None:
        self.status = status
        if self.on_status is not None:
            try:
                self.on_status(status)
            except Exception:
                logger.exception(f"Status callback for channel {self.name} failed")

    def close(self) -> None:
        self.feed.remove_channel(self)


def _row_snapshot(target: Any) -> Dict[str, Any]:
    mapper = inspect(target).mapper
    return {attr.key: getattr(target, attr.key) for attr in mapper.column_attrs}


def _old_snapshot(target: Any) -> Dict[str, Any]:
    state = inspect(target)
    old = {}
    for attr in state.mapper.column_attrs:
        history = state.attrs[attr.key].history
        if history.deleted:
            old[attr.key] = history.deleted[0]
        else:
            old[attr.key] = getattr(target, attr.key)
    return old


class OrderChangeFeed:
    table = "orders"

    def __init__(self, model=models.Order):
        self.model = model
        self._channels: List[Channel] = []
        self._lock = threading.Lock()
        self._installed = False

    # wiring into SQLAlchemy

    def install(self) -> None:
        if self._installed:
            return
        event.listen(self.model, "after_insert", self._after_insert)
        event.listen(self.model, "after_update", self._after_update)
        event.listen(self.model, "after_delete", self._after_delete)
        event.listen(Session, "after_commit", self._after_commit)
        event.listen(Session, "after_rollback", self._after_rollback)
        self._installed = True

    def uninstall(self) -> None:
        if not self._installed:
            return
        event.remove(self.model, "after_insert", self._after_insert)
        event.remove(self.model, "after_update", self._after_update)
        event.remove(self.model, "after_delete", self._after_delete)
        event.remove(Session, "after_commit", self._after_commit)
        event.remove(Session, "after_rollback", self._after_rollback)
        self._installed = False

    def _queue(self, target: Any, change: ChangeEvent) -> None:
        session = object_session(target)
        if session is None:
            return
        session.info.setdefault(_PENDING_KEY, []).append(change)

    def _after_insert(self, mapper, connection, target) -> None:
        self._queue(target, ChangeEvent("INSERT", self.table, new=_row_snapshot(target)))

    def _after_update(self, mapper, connection, target) -> None:
        session = object_session(target)
        if session is not None and not session.is_modified(target, include_collections=False):
            return
        self._queue(target, ChangeEvent("UPDATE", self.table, new=_row_snapshot(target), old=_old_snapshot(target)))

    def _after_delete(self, mapper, connection, target) -> None:
        self._queue(target, ChangeEvent("DELETE", self.table, old=_row_snapshot(target)))

    def _after_commit(self, session: Session) -> None:
        pending = session.info.pop(_PENDING_KEY, None)
        for change in pending or ():
            self.publish(change)

    def _after_rollback(self, session: Session) -> None:
        session.info.pop(_PENDING_KEY, None)

    # channels

    def channel(
        self,
        name: str,
        callback: Callable[[ChangeEvent], None],
        on_status: Optional[Callable[[str], None]] = None,
    ) -> Channel:
        self.install()
        ch = Channel(self, name, callback, on_status)
        with self._lock:
            self._channels.append(ch)
        ch.set_status(SUBSCRIBED)
        return ch

    def remove_channel(self, channel: Channel) -> None:
        with self._lock:
            if channel not in self._channels:
                return
            self._channels.remove(channel)
        channel.set_status(CLOSED)

    @property
    def channels(self) -> List[Channel]:
        with self._lock:
            return list(self._channels)

    def publish(self, change: ChangeEvent) -> None:
        for ch in self.channels:
            try:
                ch.callback(change)
            except Exception:
                # a broken subscriber must not break the committing request
                logger.exception(f"Channel {ch.name} failed to handle {change.event_type}")
                ch.set_status(CHANNEL_ERROR)
