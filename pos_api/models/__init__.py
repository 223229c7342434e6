from .models import (
    Institution,
    Branch,
    InstitutionCode,
    MenuCategory,
    MenuItem,
    MenuItemVariant,
    MenuItemAddon,
    Customer,
    Order,
    OrderItem,
    OrderItemAddon,
    OrderTimelineEntry,
)

__all__ = [
    "Institution",
    "Branch",
    "InstitutionCode",
    "MenuCategory",
    "MenuItem",
    "MenuItemVariant",
    "MenuItemAddon",
    "Customer",
    "Order",
    "OrderItem",
    "OrderItemAddon",
    "OrderTimelineEntry",
]
