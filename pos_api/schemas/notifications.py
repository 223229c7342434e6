from typing import List, Optional
from pydantic import BaseModel


class NotificationItemOut(BaseModel):
    name: str
    quantity: int
    price: float


class NotificationOrderOut(BaseModel):
    id: int
    order_number: str
    customer_name: str
    customer_phone: str
    delivery_address: str
    items: List[NotificationItemOut]
    subtotal: float
    delivery_fee: float
    total: float
    estimated_delivery_time: int
    created_at: Optional[str] = None
    expires_in: float  # seconds until auto-decline

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    items: List[NotificationOrderOut]
