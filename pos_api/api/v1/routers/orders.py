import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pos_api.core.errors import NotFound, OrderValidationError, UnknownStatus
from pos_api.db.session import get_db
from pos_api.schemas.orders import (
    OrderCreateRequest,
    OrderCreatedResponse,
    OrderOut,
    OrderRef,
    OrderStatusUpdate,
    KitchenOrderOut,
    PaymentStatusUpdate,
)
from pos_api.services.orders.lifecycle import StatusLifecycleManager, to_storage_status
from pos_api.services.orders.mapping import kitchen_order_from_row
from pos_api.services.orders.store import OrderStore
from pos_api.services.orders.submission import OrderSubmissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderCreatedResponse, status_code=201)
def create_order(payload: OrderCreateRequest, db: Session = Depends(get_db)):
    service = OrderSubmissionService(OrderStore(db))
    result = service.submit(payload)
    return OrderCreatedResponse(order=OrderRef(id=result.id, order_number=result.order_number))


@router.get("", response_model=List[OrderOut])
def list_orders(
    institution_id: Optional[int] = None,
    status: Optional[str] = Query(None, description="comma separated UI statuses"),
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    statuses = None
    if status:
        try:
            statuses = [to_storage_status(s.strip()) for s in status.split(",") if s.strip()]
        except UnknownStatus as e:
            raise OrderValidationError(str(e)) from e
    return OrderStore(db).list_orders(
        institution_id=institution_id,
        statuses=statuses,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
    )


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: int, db: Session = Depends(get_db)):
    order = OrderStore(db).get_order(order_id)
    if not order:
        raise NotFound("Order not found")
    return order


@router.patch("/{order_id}/status", response_model=KitchenOrderOut)
def update_status(order_id: int, payload: OrderStatusUpdate, db: Session = Depends(get_db)):
    store = OrderStore(db)
    row = store.get_order(order_id)
    if not row:
        raise NotFound("Order not found")
    try:
        order = kitchen_order_from_row(row)
    except UnknownStatus as e:
        raise OrderValidationError(str(e)) from e

    StatusLifecycleManager(store).advance(order, payload.status)
    return order.to_dict()


@router.patch("/{order_id}/payment-status", response_model=OrderOut)
def update_payment_status(order_id: int, payload: PaymentStatusUpdate, db: Session = Depends(get_db)):
    store = OrderStore(db)
    if not store.get_order(order_id):
        raise NotFound("Order not found")
    store.update_payment_status(order_id, payload.payment_status)
    logger.info(f"Order {order_id} payment status set to {payload.payment_status}")
    return store.get_order(order_id)
