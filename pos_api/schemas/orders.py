from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, validator


class SelectedVariationIn(BaseModel):
    variation_id: str
    variation_name: str
    option_id: int
    option_name: str
    price_modifier: Decimal = Decimal("0")


class SelectedAddOnIn(BaseModel):
    add_on_id: int
    name: str
    price: Decimal
    quantity: int = 1


class MenuItemRef(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None


class OrderItemIn(BaseModel):
    menu_item_id: Optional[int] = None
    menu_item: Optional[MenuItemRef] = None
    name: Optional[str] = None
    price: Decimal  # resolved unit price
    quantity: int
    subtotal: Optional[Decimal] = None
    selected_variations: Optional[List[SelectedVariationIn]] = []
    selected_add_ons: Optional[List[SelectedAddOnIn]] = []
    special_instructions: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.menu_item and self.menu_item.name:
            return self.menu_item.name
        return self.name or "Item"

    @property
    def line_total(self) -> Decimal:
        if self.subtotal is not None:
            return self.subtotal
        return (self.price * self.quantity).quantize(Decimal("0.01"))


class OrderCreateRequest(BaseModel):
    # everything optional so the submission service can answer with its own 400s
    institution_id: Optional[int] = None
    branch_id: Optional[int] = None
    order_type: Optional[str] = None  # dine-in|takeaway|delivery
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    customer_address: Optional[str] = None
    delivery_address: Optional[str] = None
    table_number: Optional[str] = None
    items: Optional[List[OrderItemIn]] = None
    subtotal: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    delivery_fee: Optional[Decimal] = None
    total: Optional[Decimal] = None
    payment_method: Optional[str] = None  # cash|card|mobile_money
    notes: Optional[str] = None
    channel: str = "pos"


class OrderRef(BaseModel):
    id: int
    order_number: str


class OrderCreatedResponse(BaseModel):
    success: bool = True
    order: OrderRef


class OrderStatusUpdate(BaseModel):
    """kitchen-facing status change, in UI vocabulary"""
    status: str


class PaymentStatusUpdate(BaseModel):
    payment_status: str

    @validator('payment_status')
    def validate_payment_status(cls, v):
        valid_statuses = ["pending", "paid", "refunded"]
        if v not in valid_statuses:
            raise ValueError(f"Payment status must be one of: {', '.join(valid_statuses)}")
        return v


class OrderItemAddonOut(BaseModel):
    id: int
    addon_name: str
    addon_price: float
    quantity: int

    class Config:
        from_attributes = True


class OrderItemOut(BaseModel):
    id: int
    menu_item_id: Optional[int] = None
    item_name: str
    unit_price: float
    quantity: int
    total_price: float
    variant_name: Optional[str] = None
    notes: Optional[str] = None
    addons: List[OrderItemAddonOut] = []

    class Config:
        from_attributes = True


class TimelineEntryOut(BaseModel):
    id: int
    event_type: str
    event_description: str
    created_at: datetime

    class Config:
        from_attributes = True


class OrderOut(BaseModel):
    id: int
    order_number: str
    institution_id: int
    branch_id: int
    customer_id: Optional[int] = None
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    delivery_type: str
    table_number: Optional[str] = None
    delivery_address: Optional[str] = None
    channel: str
    subtotal: float
    tax_amount: float
    delivery_fee: float
    total_amount: float
    status: str
    payment_method: Optional[str] = None
    payment_status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOut] = []
    timeline: List[TimelineEntryOut] = []

    class Config:
        from_attributes = True


class KitchenOrderItemOut(BaseModel):
    name: str
    quantity: int
    unit_price: float
    subtotal: float
    variant_name: Optional[str] = None
    add_ons: List[str] = []
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class KitchenOrderOut(BaseModel):
    id: int
    order_number: str
    order_type: str  # dine-in|takeaway|delivery
    status: str  # UI vocabulary
    next_status: Optional[str] = None
    payment_status: str
    customer_name: str
    customer_phone: Optional[str] = None
    table_number: Optional[str] = None
    delivery_address: Optional[str] = None
    items: List[KitchenOrderItemOut] = []
    total: float
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class KitchenBoardResponse(BaseModel):
    orders: List[KitchenOrderOut]
    counts: dict
