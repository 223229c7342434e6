"""
In-memory cart for the POS screen.

Prices are resolved once when a line is added (base price + variation deltas +
add-on prices) and snapshotted on the line, so later menu edits do not move
totals of a cart that is already being built.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from pos_api.core.config import settings
from pos_api.core.errors import ItemUnavailable, OrderValidationError

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
ORDER_TYPES = ("dine-in", "takeaway", "delivery")


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS)


@dataclass(frozen=True)
class VariationOption:
    id: int
    name: str
    price_modifier: Decimal


@dataclass(frozen=True)
class Variation:
    id: str
    name: str
    required: bool
    options: Tuple[VariationOption, ...] = ()


@dataclass(frozen=True)
class AddOn:
    id: int
    name: str
    price: Decimal


@dataclass(frozen=True)
class MenuItemRef:
    """read-only view of a menu item as the cart needs it."""
    id: int
    name: str
    price: Decimal
    is_available: bool = True
    variations: Tuple[Variation, ...] = ()
    add_ons: Tuple[AddOn, ...] = ()


@dataclass(frozen=True)
class SelectedVariation:
    variation_id: str
    variation_name: str
    option_id: int
    option_name: str
    price_modifier: Decimal


@dataclass(frozen=True)
class SelectedAddOn:
    add_on_id: int
    name: str
    price: Decimal


@dataclass
class Selection:
    variations: List[SelectedVariation] = field(default_factory=list)
    add_ons: List[SelectedAddOn] = field(default_factory=list)
    special_instructions: Optional[str] = None


@dataclass
class CartLine:
    id: str
    menu_item_id: int
    menu_item_name: str
    quantity: int
    unit_price: Decimal
    selected_variations: Tuple[SelectedVariation, ...] = ()
    selected_add_ons: Tuple[SelectedAddOn, ...] = ()
    special_instructions: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(CENTS)

    def matches(self, menu_item_id: int, selection: Selection) -> bool:
        # order-independent comparison of the chosen options
        return (
            self.menu_item_id == menu_item_id
            and frozenset(self.selected_variations) == frozenset(selection.variations)
            and frozenset(self.selected_add_ons) == frozenset(selection.add_ons)
        )


@dataclass
class CartTotals:
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    total: Decimal


def resolve_unit_price(menu_item: MenuItemRef, selection: Selection) -> Decimal:
    price = Decimal(str(menu_item.price))
    for variation in selection.variations:
        price += Decimal(str(variation.price_modifier))
    for add_on in selection.add_ons:
        price += Decimal(str(add_on.price))
    return price.quantize(CENTS)


def delivery_fee_for(order_type: str, subtotal: Decimal) -> Decimal:
    """delivery fee policy; dine-in and takeaway never pay one."""
    if order_type != "delivery":
        return Decimal("0.00")
    # TODO: distance based pricing once branch coordinates are stored
    return _money(settings.DELIVERY_FEE)


def build_selection(
    menu_item: MenuItemRef,
    variation_option_ids: Iterable[int] = (),
    add_on_ids: Iterable[int] = (),
    special_instructions: Optional[str] = None,
) -> Selection:
    """turn option/add-on ids picked on the POS into a Selection.

    Required variation groups without a pick default to their first option.
    """
    chosen = set(variation_option_ids or ())
    variations: List[SelectedVariation] = []
    for variation in menu_item.variations:
        picked = [opt for opt in variation.options if opt.id in chosen]
        if len(picked) > 1:
            raise OrderValidationError(f"Only one option can be selected for {variation.name}")
        if not picked and variation.required and variation.options:
            picked = [variation.options[0]]
        for opt in picked:
            chosen.discard(opt.id)
            variations.append(SelectedVariation(
                variation_id=variation.id,
                variation_name=variation.name,
                option_id=opt.id,
                option_name=opt.name,
                price_modifier=Decimal(str(opt.price_modifier)),
            ))
    if chosen:
        raise OrderValidationError(f"Unknown variation option(s): {sorted(chosen)}")

    add_ons_by_id = {a.id: a for a in menu_item.add_ons}
    add_ons: List[SelectedAddOn] = []
    for add_on_id in dict.fromkeys(add_on_ids or ()):
        add_on = add_ons_by_id.get(add_on_id)
        if add_on is None:
            raise OrderValidationError(f"Unknown add-on: {add_on_id}")
        add_ons.append(SelectedAddOn(add_on_id=add_on.id, name=add_on.name, price=Decimal(str(add_on.price))))

    return Selection(variations=variations, add_ons=add_ons, special_instructions=special_instructions)


class Cart:
    def __init__(self, order_type: str = "dine-in", tax_rate: Optional[Decimal] = None):
        self.order_type = order_type
        self.tax_rate = Decimal(str(settings.TAX_RATE if tax_rate is None else tax_rate))
        self._lines: List[CartLine] = []

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines)

    def is_empty(self) -> bool:
        return not self._lines

    def get_line(self, line_id: str) -> Optional[CartLine]:
        for line in self._lines:
            if line.id == line_id:
                return line
        return None

    def add_item(self, menu_item: MenuItemRef, selection: Optional[Selection] = None) -> CartLine:
        if not menu_item.is_available:
            raise ItemUnavailable(f"{menu_item.name} is currently out of stock")
        selection = selection or Selection()

        for line in self._lines:
            if line.matches(menu_item.id, selection):
                line.quantity += 1
                return line

        line = CartLine(
            id=f"line-{uuid4().hex[:12]}",
            menu_item_id=menu_item.id,
            menu_item_name=menu_item.name,
            quantity=1,
            unit_price=resolve_unit_price(menu_item, selection),
            selected_variations=tuple(selection.variations),
            selected_add_ons=tuple(selection.add_ons),
            special_instructions=selection.special_instructions,
        )
        self._lines.append(line)
        return line

    def set_quantity(self, line_id: str, quantity: int) -> None:
        if quantity < 1:
            self.remove_item(line_id)
            return
        line = self.get_line(line_id)
        if line is not None:
            line.quantity = quantity

    def remove_item(self, line_id: str) -> None:
        self._lines = [line for line in self._lines if line.id != line_id]

    def set_instructions(self, line_id: str, text: Optional[str]) -> None:
        line = self.get_line(line_id)
        if line is not None:
            line.special_instructions = text

    def clear(self) -> None:
        self._lines = []

    def compute_totals(self) -> CartTotals:
        subtotal = sum((line.subtotal for line in self._lines), Decimal("0.00"))
        tax = (subtotal * self.tax_rate).quantize(CENTS)
        delivery_fee = delivery_fee_for(self.order_type, subtotal)
        return CartTotals(
            subtotal=subtotal.quantize(CENTS),
            tax=tax,
            delivery_fee=delivery_fee,
            total=(subtotal + tax + delivery_fee).quantize(CENTS),
        )

    def ready_for_submission(self, order_type: Optional[str] = None, delivery_address: Optional[str] = None) -> None:
        if self.is_empty():
            raise OrderValidationError("Order must contain at least one item")
        if (order_type or self.order_type) == "delivery" and not (delivery_address or "").strip():
            raise OrderValidationError("Delivery address is required for delivery orders")

    def to_order_items(self) -> List[Dict]:
        """snapshot lines in the shape the order endpoint accepts."""
        return [
            {
                "menu_item_id": line.menu_item_id,
                "name": line.menu_item_name,
                "price": line.unit_price,
                "quantity": line.quantity,
                "subtotal": line.subtotal,
                "selected_variations": [
                    {
                        "variation_id": v.variation_id,
                        "variation_name": v.variation_name,
                        "option_id": v.option_id,
                        "option_name": v.option_name,
                        "price_modifier": v.price_modifier,
                    }
                    for v in line.selected_variations
                ],
                "selected_add_ons": [
                    {"add_on_id": a.add_on_id, "name": a.name, "price": a.price}
                    for a in line.selected_add_ons
                ],
                "special_instructions": line.special_instructions,
            }
            for line in self._lines
        ]


class CartRegistry:
    """per-session carts, kept in process memory only."""

    def __init__(self):
        self._carts: Dict[str, Cart] = {}

    def create(self, order_type: str = "dine-in") -> Tuple[str, Cart]:
        cart_id = uuid4().hex
        cart = Cart(order_type=order_type)
        self._carts[cart_id] = cart
        logger.debug(f"Cart {cart_id} created ({order_type})")
        return cart_id, cart

    def get(self, cart_id: str) -> Optional[Cart]:
        return self._carts.get(cart_id)

    def discard(self, cart_id: str) -> None:
        self._carts.pop(cart_id, None)
