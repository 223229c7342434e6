import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from pos_api.core.errors import NotFound
from pos_api.db.session import get_db
from pos_api.schemas.cart import (
    AddToCartRequest,
    CartCreateRequest,
    CartOut,
    CheckoutRequest,
    UpdateCartLineRequest,
)
from pos_api.schemas.orders import OrderCreateRequest, OrderCreatedResponse, OrderRef
from pos_api.services.menu.catalog import menu_item_ref
from pos_api.services.orders.builder import Cart, CartRegistry, build_selection
from pos_api.services.orders.store import OrderStore
from pos_api.services.orders.submission import OrderSubmissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/carts", tags=["cart"])


def _registry(request: Request) -> CartRegistry:
    return request.app.state.cart_registry


def _get_cart(request: Request, cart_id: str) -> Cart:
    cart = _registry(request).get(cart_id)
    if cart is None:
        raise NotFound("Cart not found")
    return cart


def cart_out(cart_id: str, cart: Cart) -> dict:
    """build the cart view with totals."""
    totals = cart.compute_totals()
    lines = []
    for line in cart.lines:
        lines.append({
            "id": line.id,
            "menu_item_id": line.menu_item_id,
            "name": line.menu_item_name,
            "quantity": line.quantity,
            "unit_price": line.unit_price,
            "subtotal": line.subtotal,
            "variations": [v.option_name for v in line.selected_variations],
            "add_ons": [a.name for a in line.selected_add_ons],
            "special_instructions": line.special_instructions,
        })
    return {
        "id": cart_id,
        "order_type": cart.order_type,
        "lines": lines,
        "subtotal": totals.subtotal,
        "tax": totals.tax,
        "delivery_fee": totals.delivery_fee,
        "total": totals.total,
        "total_items": sum(line.quantity for line in cart.lines),
    }


@router.post("", response_model=CartOut, status_code=201)
def create_cart(request: Request, payload: Optional[CartCreateRequest] = None):
    order_type = payload.order_type if payload else "dine-in"
    cart_id, cart = _registry(request).create(order_type)
    return cart_out(cart_id, cart)


@router.get("/{cart_id}", response_model=CartOut)
def get_cart(cart_id: str, request: Request):
    return cart_out(cart_id, _get_cart(request, cart_id))


@router.delete("/{cart_id}")
def delete_cart(cart_id: str, request: Request):
    _get_cart(request, cart_id)
    _registry(request).discard(cart_id)
    return {"message": "Cart discarded"}


@router.post("/{cart_id}/items", response_model=CartOut)
def add_to_cart(cart_id: str, payload: AddToCartRequest, request: Request, db: Session = Depends(get_db)):
    cart = _get_cart(request, cart_id)
    item = menu_item_ref(db, payload.menu_item_id)
    selection = build_selection(item, payload.variation_option_ids, payload.add_on_ids, payload.special_instructions)
    cart.add_item(item, selection)
    return cart_out(cart_id, cart)


@router.patch("/{cart_id}/items/{line_id}", response_model=CartOut)
def update_cart_line(cart_id: str, line_id: str, payload: UpdateCartLineRequest, request: Request):
    cart = _get_cart(request, cart_id)
    if cart.get_line(line_id) is None:
        raise NotFound("Cart line not found")
    if payload.special_instructions is not None:
        cart.set_instructions(line_id, payload.special_instructions)
    if payload.quantity is not None:
        cart.set_quantity(line_id, payload.quantity)
    return cart_out(cart_id, cart)


@router.delete("/{cart_id}/items/{line_id}", response_model=CartOut)
def remove_cart_line(cart_id: str, line_id: str, request: Request):
    cart = _get_cart(request, cart_id)
    cart.remove_item(line_id)
    return cart_out(cart_id, cart)


@router.post("/{cart_id}/checkout", response_model=OrderCreatedResponse, status_code=201)
def checkout(cart_id: str, payload: CheckoutRequest, request: Request, db: Session = Depends(get_db)):
    cart = _get_cart(request, cart_id)
    order_type = payload.order_type or cart.order_type
    cart.ready_for_submission(order_type, payload.delivery_address)

    if order_type != cart.order_type:
        cart.order_type = order_type
    totals = cart.compute_totals()
    order = OrderCreateRequest(
        institution_id=payload.institution_id,
        branch_id=payload.branch_id,
        order_type=order_type,
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        customer_email=payload.customer_email,
        customer_address=payload.customer_address,
        delivery_address=payload.delivery_address,
        table_number=payload.table_number,
        items=cart.to_order_items(),
        subtotal=totals.subtotal,
        tax_amount=totals.tax,
        delivery_fee=totals.delivery_fee,
        total=totals.total,
        payment_method=payload.payment_method,
        notes=payload.notes,
    )
    result = OrderSubmissionService(OrderStore(db)).submit(order)
    cart.clear()
    logger.info(f"Cart {cart_id} checked out as {result.order_number}")
    return OrderCreatedResponse(order=OrderRef(id=result.id, order_number=result.order_number))
