"""
Order status lifecycle as seen by the kitchen.

The kitchen speaks a UI vocabulary (pending, confirmed, preparing, ready,
completed, cancelled) while rows store pending, paid, preparing, ready,
delivered, cancelled. Transitions only move forward; cancelled can be reached
from any state that is not terminal.

A transition is applied to the in-memory order first and persisted second.
If persisting fails the change is undone from the state captured before it
was applied, and the error is raised to the caller. There are no retries and
no version checks: the last write wins.
"""
import logging
from typing import Any, Optional

from pos_api.core.errors import InvalidTransition, OrderValidationError, StoreError, UnknownStatus
from pos_api.services.orders.store import OrderStore

logger = logging.getLogger(__name__)

UI_TO_STORAGE_STATUS = {
    "pending": "pending",
    "confirmed": "paid",
    "preparing": "preparing",
    "ready": "ready",
    "completed": "delivered",
    "cancelled": "cancelled",
}
STORAGE_TO_UI_STATUS = {v: k for k, v in UI_TO_STORAGE_STATUS.items()}

SEQUENCE = ("pending", "confirmed", "preparing", "ready", "completed")
TERMINAL_STATUSES = frozenset({"completed", "cancelled"})

# action offered on the kitchen card for each status
NEXT_STATUS = {
    "pending": "preparing",
    "confirmed": "preparing",
    "preparing": "ready",
    "ready": "completed",
}


def to_storage_status(ui_status: str) -> str:
    try:
        return UI_TO_STORAGE_STATUS[ui_status]
    except KeyError:
        raise UnknownStatus(f"Unknown status: {ui_status}") from None


def to_ui_status(storage_status: str) -> str:
    try:
        return STORAGE_TO_UI_STATUS[storage_status]
    except KeyError:
        raise UnknownStatus(f"Unknown stored status: {storage_status}") from None


def next_status(ui_status: str) -> Optional[str]:
    return NEXT_STATUS.get(ui_status)


def validate_transition(current: str, target: str) -> None:
    if target not in UI_TO_STORAGE_STATUS:
        raise OrderValidationError(f"Unknown status: {target}")
    if current in TERMINAL_STATUSES:
        raise InvalidTransition(f"Order is already {current}", details={"from": current, "to": target})
    if target == "cancelled":
        return
    if current not in SEQUENCE or SEQUENCE.index(target) <= SEQUENCE.index(current):
        raise InvalidTransition(f"Cannot move order from {current} to {target}", details={"from": current, "to": target})


class StatusChange:
    """apply/revert command for a status change on an in-memory order."""

    def __init__(self, order: Any, target: str):
        self.order = order
        self.target = target
        self.previous: Optional[str] = None

    def apply(self) -> None:
        self.previous = self.order.status
        self.order.status = self.target

    def revert(self) -> None:
        if self.previous is not None:
            self.order.status = self.previous


class StatusLifecycleManager:
    def __init__(self, store: OrderStore):
        self.store = store

    def advance(self, order: Any, target: str) -> Any:
        """move ``order`` (anything with ``id`` and a UI ``status``) to ``target``."""
        validate_transition(order.status, target)
        storage_status = to_storage_status(target)

        change = StatusChange(order, target)
        change.apply()
        try:
            self.store.update_order_status(order.id, storage_status)
        except StoreError:
            change.revert()
            logger.error(f"Status update for order {order.id} to {target} failed, reverted to {change.previous}")
            raise

        try:
            self.store.insert_timeline(order.id, storage_status, f"Order marked as {target}")
        except StoreError as e:
            logger.error(f"Timeline entry for order {order.id} ({target}) not saved: {e.message}")

        logger.info(f"Order {order.id} moved {change.previous} -> {target}")
        return order
