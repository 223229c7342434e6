from typing import List, Optional
from decimal import Decimal
from pydantic import BaseModel, Field


class AddToCartRequest(BaseModel):
    menu_item_id: int
    variation_option_ids: List[int] = []
    add_on_ids: List[int] = []
    special_instructions: Optional[str] = None


class UpdateCartLineRequest(BaseModel):
    quantity: Optional[int] = None
    special_instructions: Optional[str] = None


class CartLineOut(BaseModel):
    id: str
    menu_item_id: int
    name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    variations: List[str] = []
    add_ons: List[str] = []
    special_instructions: Optional[str] = None


class CartOut(BaseModel):
    id: str
    order_type: str
    lines: List[CartLineOut] = []
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    total: Decimal
    total_items: int


class CartCreateRequest(BaseModel):
    order_type: str = Field(default="dine-in", pattern="^(dine-in|takeaway|delivery)$")


class CheckoutRequest(BaseModel):
    institution_id: Optional[int] = None
    branch_id: Optional[int] = None
    order_type: Optional[str] = None  # falls back to the cart's order type
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    customer_address: Optional[str] = None
    delivery_address: Optional[str] = None
    table_number: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
