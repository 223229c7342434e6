from fastapi import APIRouter, Request

from pos_api.core.errors import NotFound
from pos_api.schemas.notifications import NotificationListResponse
from pos_api.services.realtime.alerts import PaidOrderAlerts

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _alerts(request: Request) -> PaidOrderAlerts:
    return request.app.state.order_alerts


@router.get("/orders", response_model=NotificationListResponse)
def pending_order_alerts(request: Request):
    """new paid orders waiting for the cashier, with seconds left before auto-decline."""
    items = []
    for order, remaining in _alerts(request).pending():
        items.append({
            "id": order.id,
            "order_number": order.order_number,
            "customer_name": order.customer_name,
            "customer_phone": order.customer_phone,
            "delivery_address": order.delivery_address,
            "items": [{"name": i.name, "quantity": i.quantity, "price": i.price} for i in order.items],
            "subtotal": order.subtotal,
            "delivery_fee": order.delivery_fee,
            "total": order.total,
            "estimated_delivery_time": order.estimated_delivery_time,
            "created_at": order.created_at,
            "expires_in": round(remaining, 1),
        })
    return {"items": items}


@router.post("/orders/{order_id}/accept")
def accept_order_alert(order_id: int, request: Request):
    if not _alerts(request).accept(order_id):
        raise NotFound("No pending alert for this order")
    return {"status": "accepted"}


@router.post("/orders/{order_id}/decline")
def decline_order_alert(order_id: int, request: Request):
    if not _alerts(request).decline(order_id):
        raise NotFound("No pending alert for this order")
    return {"status": "declined"}
