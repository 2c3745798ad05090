"""Session-scoped cart accumulation.

A cart never touches the database; it lives inside the visitor's browsing
session until checkout copies its lines into an order. Lines are keyed by
menu item id only, so adding an item twice merges into one line.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List

from pydantic import BaseModel, Field

from ..errors import NotFound, ValidationFailure
from .totals import line_subtotal, money


class CartLine(BaseModel):
    """One menu item in the cart with its captured name and price."""

    menu_item_id: int
    name: str
    price: Decimal
    quantity: int = Field(ge=1)
    notes: str = ""
    subtotal: Decimal


class Cart(BaseModel):
    """Lines selected so far and their running total."""

    items: List[CartLine] = Field(default_factory=list)
    total: Decimal = Decimal("0.00")

    @property
    def empty(self) -> bool:
        return not self.items

    def find(self, menu_item_id: int) -> CartLine | None:
        for line in self.items:
            if line.menu_item_id == menu_item_id:
                return line
        return None

    def recompute(self) -> None:
        self.total = money(sum((line.subtotal for line in self.items), Decimal("0")))


def add_item(
    cart: Cart, item: Any, restaurant_id: int, quantity: int = 1, notes: str = ""
) -> Cart:
    """Add ``quantity`` of menu ``item`` to ``cart``.

    ``item`` is the menu lookup result (``None`` when the id is unknown). It
    must be available and belong to ``restaurant_id``. An existing line for
    the same item has its quantity incremented, its price refreshed
    and its notes overwritten by ``notes``.
    """

    if quantity is None or quantity < 1:
        raise ValidationFailure("quantity must be at least 1")
    if item is None or item.restaurant_id != restaurant_id or not item.is_available:
        raise NotFound("Menu item not found")

    line = cart.find(item.id)
    if line is not None:
        line.quantity += quantity
        line.price = money(item.price)
        line.subtotal = line_subtotal(line.price, line.quantity)
        line.notes = notes or ""
    else:
        price = money(item.price)
        cart.items.append(
            CartLine(
                menu_item_id=item.id,
                name=item.name,
                price=price,
                quantity=quantity,
                notes=notes or "",
                subtotal=line_subtotal(price, quantity),
            )
        )
    cart.recompute()
    return cart


def update_item(cart: Cart, menu_item_id: int, quantity: int) -> Cart:
    """Set the quantity of a line; ``quantity <= 0`` removes it."""

    line = cart.find(menu_item_id)
    if line is None:
        raise NotFound("Item not found in cart")
    if quantity <= 0:
        cart.items.remove(line)
    else:
        line.quantity = quantity
        line.subtotal = line_subtotal(line.price, quantity)
    cart.recompute()
    return cart
