from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel


class MenuCategoryOut(BaseModel):
    id: int
    name: str
    slug: str
    icon: Optional[str] = None
    display_order: int = 0
    created_at: Optional[datetime] = None


class VariationOptionOut(BaseModel):
    id: int
    name: str
    price_modifier: float  # can be negative


class VariationOut(BaseModel):
    id: str
    name: str
    required: bool
    options: List[VariationOptionOut]


class AddOnOut(BaseModel):
    id: int
    name: str
    price: float


class MenuItemOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    image_url: Optional[str] = None
    category_id: Optional[int] = None
    is_available: bool
    is_featured: bool
    preparation_time: Optional[int] = None
    variations: Optional[List[VariationOut]] = None
    add_ons: Optional[List[AddOnOut]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MenuResponse(BaseModel):
    categories: List[MenuCategoryOut]
    items: List[MenuItemOut]
