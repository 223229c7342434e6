"""
Mapping from store rows to the kitchen's order type.

Rows arrive either as ORM objects or as plain dicts from the change feed. Both
go through ``kitchen_order_from_row``, which applies one policy:

- a status outside the stored vocabulary raises ``UnknownStatus``;
- missing money fields become 0, missing quantities 1;
- a missing item name becomes "Item", a missing customer name "Customer";
- unknown order types fall back to takeaway, like on submission.
"""
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from pos_api.core.errors import UnknownStatus
from pos_api.services.orders.lifecycle import next_status, to_ui_status
from pos_api.services.orders.submission import STORAGE_TO_ORDER_TYPE

logger = logging.getLogger(__name__)


def row_value(row: Any, name: str, default: Any = None) -> Any:
    if isinstance(row, dict):
        value = row.get(name, default)
    else:
        value = getattr(row, name, default)
    return default if value is None else value


def _decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value if value is not None else 0))
    except Exception:
        return Decimal("0")


@dataclass
class KitchenOrderItem:
    name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    variant_name: Optional[str] = None
    add_ons: List[str] = field(default_factory=list)
    notes: Optional[str] = None


@dataclass
class KitchenOrder:
    id: int
    order_number: str
    order_type: str
    status: str  # UI vocabulary
    payment_status: str
    customer_name: str
    customer_phone: Optional[str] = None
    table_number: Optional[str] = None
    delivery_address: Optional[str] = None
    items: List[KitchenOrderItem] = field(default_factory=list)
    total: Decimal = Decimal("0")
    created_at: Optional[datetime] = None

    @property
    def next_status(self) -> Optional[str]:
        return next_status(self.status)

    def matches(self, query: str) -> bool:
        q = query.strip().lower()
        if not q:
            return True
        haystack = [self.order_number, self.customer_name, self.customer_phone or ""]
        haystack.extend(item.name for item in self.items)
        return any(q in (value or "").lower() for value in haystack)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["next_status"] = self.next_status
        return data


def kitchen_item_from_row(row: Any) -> KitchenOrderItem:
    quantity = int(row_value(row, "quantity", 1))
    unit_price = _decimal(row_value(row, "unit_price", 0))
    subtotal = row_value(row, "total_price")
    return KitchenOrderItem(
        name=row_value(row, "item_name", "Item"),
        quantity=quantity,
        unit_price=unit_price,
        subtotal=_decimal(subtotal) if subtotal is not None else unit_price * quantity,
        variant_name=row_value(row, "variant_name"),
        add_ons=[row_value(a, "addon_name", "") for a in row_value(row, "addons", [])],
        notes=row_value(row, "notes"),
    )


def kitchen_order_from_row(row: Any) -> KitchenOrder:
    status = row_value(row, "status")
    if status is None:
        raise UnknownStatus("Order row has no status")
    return KitchenOrder(
        id=row_value(row, "id"),
        order_number=row_value(row, "order_number", ""),
        order_type=STORAGE_TO_ORDER_TYPE.get(row_value(row, "delivery_type", ""), "takeaway"),
        status=to_ui_status(status),
        payment_status=row_value(row, "payment_status", "pending"),
        customer_name=row_value(row, "customer_name", "Customer"),
        customer_phone=row_value(row, "customer_phone"),
        table_number=row_value(row, "table_number"),
        delivery_address=row_value(row, "delivery_address"),
        items=[kitchen_item_from_row(i) for i in row_value(row, "items", [])],
        total=_decimal(row_value(row, "total_amount", 0)),
        created_at=row_value(row, "created_at"),
    )


def kitchen_orders_from_rows(rows: Iterable[Any]) -> List[KitchenOrder]:
    """map rows for a listing, skipping (and logging) any the policy rejects."""
    orders = []
    for row in rows:
        try:
            orders.append(kitchen_order_from_row(row))
        except UnknownStatus as e:
            logger.warning(f"Skipping order {row_value(row, 'id')}: {e}")
    return orders
