"""
Alerts for newly paid orders.

An order qualifies when a change event shows it as paid and it was not paid
before: either inserted as paid, or updated from another payment status to
paid. The full order (with items) is re-read, since events carry only the
header row, and re-read again when listed while it still has no items.
Each alert is kept for a fixed time and declined automatically when nobody
accepts it.
"""
import logging
import threading
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from pos_api.core.config import settings
from pos_api.services.realtime.feed import ChangeEvent

logger = logging.getLogger(__name__)

ESTIMATED_DELIVERY_MINUTES = 30


@dataclass
class NotificationItem:
    name: str
    quantity: int
    price: Decimal


@dataclass
class NotificationOrder:
    id: int
    order_number: str
    customer_name: str
    customer_phone: str
    delivery_address: str
    items: List[NotificationItem] = field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    delivery_fee: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    estimated_delivery_time: int = ESTIMATED_DELIVERY_MINUTES
    created_at: Optional[str] = None


@dataclass
class _Pending:
    order: NotificationOrder
    deadline: float


def is_newly_paid(event: ChangeEvent) -> bool:
    new = event.new
    if not new:
        return False
    if new.get("payment_status") != "paid":
        return False
    if event.event_type == "INSERT":
        return True
    was_paid = (event.old or {}).get("payment_status") == "paid"
    return event.event_type == "UPDATE" and not was_paid


def notification_from_order(order: Any) -> NotificationOrder:
    created_at = getattr(order, "created_at", None)
    return NotificationOrder(
        id=order.id,
        order_number=order.order_number,
        customer_name=order.customer_name or "Customer",
        customer_phone=order.customer_phone or "",
        delivery_address=order.delivery_address or "Pickup",
        items=[
            NotificationItem(name=i.item_name, quantity=i.quantity, price=Decimal(str(i.unit_price)))
            for i in (order.items or [])
        ],
        subtotal=Decimal(str(order.subtotal or 0)),
        delivery_fee=Decimal(str(order.delivery_fee or 0)),
        total=Decimal(str(order.total_amount or 0)),
        created_at=created_at.isoformat() if created_at else None,
    )


class PaidOrderAlerts:
    def __init__(
        self,
        load_order: Callable[[int], Optional[Any]],
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.load_order = load_order
        self.ttl_seconds = settings.ORDER_ALERT_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.clock = clock
        self._pending: Dict[int, _Pending] = {}
        self._lock = threading.Lock()
        self._unsubscribe: Optional[Callable[[], None]] = None

    def attach(self, notifier) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = notifier.subscribe_to_orders(self.handle)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        with self._lock:
            self._pending.clear()

    def handle(self, event: ChangeEvent) -> Optional[NotificationOrder]:
        if event.event_type == "DELETE":
            # order rolled back or removed; its alert goes with it
            self._drop((event.old or {}).get("id"))
            return None
        if not is_newly_paid(event):
            return None
        order_id = event.new.get("id")
        with self._lock:
            if order_id in self._pending:
                return None

        order = self.load_order(order_id)
        if order is None:
            logger.warning(f"Paid order {order_id} could not be loaded for alert")
            return None

        notification = notification_from_order(order)
        with self._lock:
            if order_id in self._pending:
                return None
            self._pending[order_id] = _Pending(notification, self.clock() + self.ttl_seconds)
        logger.info(f"New paid order alert {notification.order_number}")
        return notification

    def expire(self) -> List[int]:
        """auto-decline every alert whose countdown has run out."""
        now = self.clock()
        with self._lock:
            expired = [oid for oid, p in self._pending.items() if p.deadline <= now]
            for oid in expired:
                del self._pending[oid]
        for oid in expired:
            logger.info(f"Order alert {oid} expired, declined")
        return expired

    def pending(self) -> List[tuple]:
        """(notification, seconds left) for every live alert, oldest first."""
        self.expire()
        with self._lock:
            live = list(self._pending.values())

        # an order inserted as paid is announced before its items are written
        for p in live:
            if not p.order.items:
                order = self.load_order(p.order.id)
                if order is None:
                    self._drop(p.order.id)
                else:
                    p.order = notification_from_order(order)

        now = self.clock()
        with self._lock:
            return [(p.order, max(0.0, p.deadline - now)) for p in self._pending.values()]

    def _drop(self, order_id: Optional[int]) -> None:
        with self._lock:
            found = self._pending.pop(order_id, None)
        if found:
            logger.info(f"Order alert {found.order.order_number} withdrawn, order no longer exists")

    def accept(self, order_id: int) -> bool:
        with self._lock:
            found = self._pending.pop(order_id, None)
        if found:
            logger.info(f"Order alert {found.order.order_number} accepted")
        return found is not None

    def decline(self, order_id: int) -> bool:
        with self._lock:
            found = self._pending.pop(order_id, None)
        if found:
            logger.info(f"Order alert {found.order.order_number} declined")
        return found is not None
