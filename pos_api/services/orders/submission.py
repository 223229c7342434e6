"""
Turns a POS cart plus customer/order-type context into a persisted order.

The header, line items, add-ons and timeline entry are written one after the
other with no surrounding transaction:

- a failed header insert aborts the submission;
- failed line items are skipped, and only when none at all were saved is the
  header deleted again and the submission failed;
- add-on and timeline failures are logged and ignored.

Partial item loss is therefore possible and is logged at error level.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from pos_api.core.errors import OrderValidationError, StoreError
from pos_api.schemas.orders import OrderCreateRequest, OrderItemIn
from pos_api.services.orders.builder import CENTS, delivery_fee_for
from pos_api.services.orders.numbers import gen_order_number, unique_order_number
from pos_api.services.orders.store import OrderStore

logger = logging.getLogger(__name__)

CASH_PHONE_PLACEHOLDER = "N/A"

# UI order types -> stored delivery_type
ORDER_TYPE_TO_STORAGE = {
    "dine-in": "dine_in",
    "takeaway": "pickup",
    "delivery": "delivery",
}
STORAGE_TO_ORDER_TYPE = {v: k for k, v in ORDER_TYPE_TO_STORAGE.items()}


def storage_order_type(order_type: Optional[str]) -> str:
    return ORDER_TYPE_TO_STORAGE.get(order_type or "", "pickup")


def payment_status_for(payment_method: Optional[str]) -> str:
    return "paid" if payment_method == "cash" else "pending"


@dataclass
class SubmissionResult:
    id: int
    order_number: str
    payment_status: str
    items_saved: int
    items_failed: int


class OrderSubmissionService:
    def __init__(self, store: OrderStore, generate_number: Callable[[], str] = gen_order_number):
        self.store = store
        self.generate_number = generate_number

    def validate(self, payload: OrderCreateRequest) -> str:
        """check preconditions and return the customer phone to store."""
        if not payload.institution_id:
            raise OrderValidationError("Institution ID is required")
        if not (payload.customer_name or "").strip():
            raise OrderValidationError("Customer name is required")

        phone = (payload.customer_phone or "").strip()
        if not phone:
            if payload.payment_method != "cash":
                raise OrderValidationError("Customer phone is required for non-cash payments")
            phone = CASH_PHONE_PLACEHOLDER

        if not payload.items:
            raise OrderValidationError("Order must contain at least one item")
        for item in payload.items:
            if item.quantity < 1:
                raise OrderValidationError(f"Invalid quantity for {item.display_name}")
            expected = (Decimal(item.price) * item.quantity).quantize(CENTS)
            if Decimal(item.line_total).quantize(CENTS) != expected:
                raise OrderValidationError(
                    f"Subtotal for {item.display_name} does not match price x quantity",
                    details={"subtotal": str(item.line_total), "expected": str(expected)},
                )

        if payload.order_type == "delivery" and not (payload.delivery_address or "").strip():
            raise OrderValidationError("Delivery address is required for delivery orders")
        return phone

    def resolve_branch(self, payload: OrderCreateRequest) -> int:
        if payload.branch_id:
            return payload.branch_id
        branch_id = self.store.first_branch_id(payload.institution_id)
        if not branch_id:
            raise OrderValidationError("No branch found for institution. Please provide branch_id.")
        return branch_id

    def _link_customer(self, payload: OrderCreateRequest, phone: str) -> Optional[int]:
        if phone == CASH_PHONE_PLACEHOLDER:
            return None
        try:
            return self.store.find_or_create_customer(
                name=payload.customer_name.strip(),
                phone=phone,
                email=payload.customer_email,
                address=payload.customer_address or payload.delivery_address,
            )
        except StoreError as e:
            # order goes through without a customer link
            logger.warning(f"Could not link customer {phone}: {e.message}")
            return None

    def amounts(self, payload: OrderCreateRequest) -> Tuple[Decimal, Decimal, Decimal, Decimal]:
        """(subtotal, tax, delivery fee, total), filling in what the client left out.

        Supplied amounts must agree with the lines to the cent:
        subtotal == sum of line subtotals, total == subtotal + tax + delivery fee.
        """
        items_subtotal = sum((Decimal(it.line_total) for it in payload.items), Decimal("0")).quantize(CENTS)
        subtotal = items_subtotal
        if payload.subtotal is not None:
            subtotal = Decimal(payload.subtotal).quantize(CENTS)
            if subtotal != items_subtotal:
                raise OrderValidationError(
                    "Order subtotal does not match its items",
                    details={"subtotal": str(subtotal), "expected": str(items_subtotal)},
                )

        delivery_fee = payload.delivery_fee
        if delivery_fee is None:
            delivery_fee = delivery_fee_for(payload.order_type or "", subtotal)
        delivery_fee = Decimal(delivery_fee).quantize(CENTS)
        tax_amount = Decimal(payload.tax_amount or 0).quantize(CENTS)

        expected_total = subtotal + tax_amount + delivery_fee
        total = expected_total
        if payload.total is not None:
            total = Decimal(payload.total).quantize(CENTS)
            if total != expected_total:
                raise OrderValidationError(
                    "Order total does not match subtotal, tax and delivery fee",
                    details={"total": str(total), "expected": str(expected_total)},
                )
        return subtotal, tax_amount, delivery_fee, total

    def submit(self, payload: OrderCreateRequest) -> SubmissionResult:
        phone = self.validate(payload)
        subtotal, tax_amount, delivery_fee, total = self.amounts(payload)
        branch_id = self.resolve_branch(payload)

        order_number = unique_order_number(self.store.order_number_exists, self.generate_number)
        delivery_type = storage_order_type(payload.order_type)
        payment_status = payment_status_for(payload.payment_method)

        customer_id = self._link_customer(payload, phone)

        order = self.store.insert_order({
            "order_number": order_number,
            "institution_id": payload.institution_id,
            "branch_id": branch_id,
            "customer_id": customer_id,
            "customer_name": payload.customer_name.strip(),
            "customer_phone": phone,
            "customer_email": payload.customer_email or None,
            "delivery_type": delivery_type,
            "table_number": payload.table_number if delivery_type == "dine_in" else None,
            "delivery_address": payload.delivery_address or None,
            "channel": payload.channel or "pos",
            "subtotal": subtotal,
            "tax_amount": tax_amount,
            "delivery_fee": delivery_fee,
            "total_amount": total,
            "status": "pending",
            "payment_method": payload.payment_method or None,
            "payment_status": payment_status,
            "notes": payload.notes or None,
        })
        logger.info(f"Order {order_number} created (id={order.id}, {delivery_type}, payment {payment_status})")

        saved = self._save_items(order.id, payload.items)
        failed = len(payload.items) - saved
        if saved == 0:
            logger.error(f"No items saved for order {order_number}, rolling back")
            self.store.delete_order(order.id)
            raise StoreError("Failed to create order items", details={"order_number": order_number})
        if failed:
            logger.error(f"Order {order_number} saved with {failed} of {len(payload.items)} items missing")

        if payment_status == "paid":
            description = f"Order created from POS (Payment received via {payload.payment_method or 'cash'})"
        else:
            description = "Order created from POS"
        try:
            self.store.insert_timeline(order.id, "pending", description)
        except StoreError as e:
            logger.error(f"Timeline entry for order {order_number} not saved: {e.message}")

        return SubmissionResult(
            id=order.id,
            order_number=order_number,
            payment_status=payment_status,
            items_saved=saved,
            items_failed=failed,
        )

    def _save_items(self, order_id: int, items: List[OrderItemIn]) -> int:
        saved = 0
        for item in items:
            variant_name = None
            if item.selected_variations:
                variant_name = item.selected_variations[0].option_name or None
            try:
                row = self.store.insert_order_item(order_id, {
                    "menu_item_id": item.menu_item_id or (item.menu_item.id if item.menu_item else None),
                    "item_name": item.display_name,
                    "unit_price": Decimal(item.price).quantize(CENTS),
                    "quantity": item.quantity,
                    "total_price": Decimal(item.line_total).quantize(CENTS),
                    "variant_name": variant_name,
                    "notes": item.special_instructions or None,
                })
            except StoreError as e:
                logger.error(f"Skipping item {item.display_name} for order {order_id}: {e.message}")
                continue
            saved += 1

            if item.selected_add_ons:
                try:
                    self.store.insert_addons(row.id, [
                        {"addon_name": a.name, "addon_price": Decimal(a.price).quantize(CENTS), "quantity": a.quantity or 1}
                        for a in item.selected_add_ons
                    ])
                except StoreError as e:
                    logger.error(f"Add-ons for item {row.id} not saved: {e.message}")
        return saved
