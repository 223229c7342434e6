import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from pos_api.core.errors import BadRequest
from pos_api.db.session import get_db
from pos_api.schemas.payments import PaymentInitRequest, PaymentInitResponse
from pos_api.services.orders.store import OrderStore
from pos_api.services.payments.base import PaymentsProvider
from pos_api.services.payments.moolre import SERVICE_PROVIDER_CHANNELS, MoolrePayments, parse_callback
from pos_api.services.payments.phone import validate_phone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment", tags=["payments"])


def parse_amount(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        raise BadRequest("Valid amount is required")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise BadRequest("Valid amount is required") from e
    if not amount.is_finite() or amount <= 0:
        raise BadRequest("Valid amount is required")
    return amount


def get_payments_provider() -> PaymentsProvider:
    return MoolrePayments()


@router.post("", response_model=PaymentInitResponse)
def init_payment(payload: PaymentInitRequest, provider: PaymentsProvider = Depends(get_payments_provider)):
    """send a mobile-money prompt; the order itself is never touched here."""
    phone = validate_phone(payload.phoneNumber)
    amount = parse_amount(payload.amount)
    if not payload.serviceProvider or payload.serviceProvider not in SERVICE_PROVIDER_CHANNELS:
        raise BadRequest("Valid service provider is required")
    if not payload.externalRef:
        raise BadRequest("External reference is required")

    data = provider.initiate(phone, amount, payload.serviceProvider, payload.externalRef)
    return PaymentInitResponse(data=data)


@router.post("/callback")
async def callback(request: Request, x_signature: Optional[str] = Header(None), db: Session = Depends(get_db)):
    body = await request.body()
    if not PaymentsProvider.verify_signature(body, x_signature):
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        payload = json.loads(body or b"{}")
    except ValueError as e:
        raise BadRequest("Invalid callback payload") from e
    if not isinstance(payload, dict):
        raise BadRequest("Invalid callback payload")

    external_ref, succeeded = parse_callback(payload)
    if not external_ref or not succeeded:
        logger.info(f"Payment callback for {external_ref} ignored (succeeded={succeeded})")
        return {"status": "ok"}

    store = OrderStore(db)
    order = store.get_order_by_number(external_ref)
    if order is None:
        logger.warning(f"Payment callback for unknown order {external_ref}")
        return {"status": "ok"}
    if order.payment_status != "paid":
        store.update_payment_status(order.id, "paid")
        logger.info(f"Order {external_ref} marked paid from gateway callback")
    return {"status": "ok"}
