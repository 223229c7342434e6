from typing import Any, Optional
from pydantic import BaseModel


class PaymentInitRequest(BaseModel):
    # field names follow the POS client payload; checked by the router for 400s
    phoneNumber: Optional[str] = None
    amount: Any = None  # number or numeric string, parsed by the router
    serviceProvider: Optional[str] = None  # MTN|Vodafone|Airtel
    externalRef: Optional[str] = None


class PaymentInitResponse(BaseModel):
    success: bool = True
    data: Any = None
