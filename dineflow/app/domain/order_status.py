"""Order status enumeration and allowed transitions."""

from __future__ import annotations

from enum import Enum

from ..errors import InvalidTransition, ValidationFailure


class OrderStatus(str, Enum):
    """Enumerate the lifecycle states for an order."""

    PENDING = "pending"
    PREPARING = "preparing"
    SERVED = "served"
    DONE = "done"
    CANCELLED = "cancelled"


TRANSITIONS: dict[OrderStatus, list[OrderStatus]] = {
    OrderStatus.PENDING: [OrderStatus.PREPARING, OrderStatus.CANCELLED],
    OrderStatus.PREPARING: [OrderStatus.SERVED, OrderStatus.CANCELLED],
    OrderStatus.SERVED: [OrderStatus.DONE],
    OrderStatus.DONE: [],
    OrderStatus.CANCELLED: [],
}

# Reaching one of these releases the order's table.
TERMINAL = frozenset({OrderStatus.DONE, OrderStatus.CANCELLED})


def can_transition(src: OrderStatus, dst: OrderStatus) -> bool:
    """Return ``True`` if an order can move from ``src`` to ``dst``."""

    return dst in TRANSITIONS.get(src, [])


def parse_status(value: str) -> OrderStatus:
    """Return the :class:`OrderStatus` for ``value`` or raise ``ValidationFailure``."""

    try:
        return OrderStatus(value)
    except ValueError as exc:
        raise ValidationFailure(f"unknown order status {value!r}") from exc


def check_transition(src: str, dst: str) -> OrderStatus:
    """Validate ``src -> dst`` and return the parsed destination status."""

    current = parse_status(src)
    target = parse_status(dst)
    if not can_transition(current, target):
        raise InvalidTransition(
            f"Cannot change status from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )
    return target
