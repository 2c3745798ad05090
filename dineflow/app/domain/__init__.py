"""Domain models and helpers."""

from .cart import Cart, CartLine, add_item, update_item
from .order_status import (
    TERMINAL,
    TRANSITIONS,
    OrderStatus,
    can_transition,
    check_transition,
    parse_status,
)
from .roles import Permission, Principal, Role, has_permission
from .table_status import TableStatus, qr_url
from .totals import TAX_RATE, compute_totals

__all__ = [
    "Cart",
    "CartLine",
    "add_item",
    "update_item",
    "OrderStatus",
    "TRANSITIONS",
    "TERMINAL",
    "can_transition",
    "check_transition",
    "parse_status",
    "Role",
    "Permission",
    "Principal",
    "has_permission",
    "TableStatus",
    "qr_url",
    "TAX_RATE",
    "compute_totals",
]
