"""Roles and the permission matrix.

``has_permission`` is a pure function so that authorization decisions can be
tested without a request or a database.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    STAFF = "staff"
    CUSTOMER = "customer"


class Permission(str, Enum):
    MANAGE_RESTAURANTS = "manage_restaurants"
    MANAGE_MENU = "manage_menu"
    MANAGE_TABLES = "manage_tables"
    MANAGE_STAFF = "manage_staff"
    VIEW_ORDERS = "view_orders"
    MANAGE_ORDERS = "manage_orders"
    UPDATE_ORDER_STATUS = "update_order_status"
    PLACE_ORDER = "place_order"
    VIEW_OWN_ORDERS = "view_own_orders"


_GRANTS: dict[Role, frozenset[Permission]] = {
    Role.SUPERADMIN: frozenset(Permission),
    Role.ADMIN: frozenset(
        {
            Permission.MANAGE_MENU,
            Permission.MANAGE_TABLES,
            Permission.MANAGE_STAFF,
            Permission.VIEW_ORDERS,
            Permission.MANAGE_ORDERS,
            Permission.UPDATE_ORDER_STATUS,
        }
    ),
    Role.STAFF: frozenset({Permission.VIEW_ORDERS, Permission.UPDATE_ORDER_STATUS}),
    Role.CUSTOMER: frozenset({Permission.PLACE_ORDER, Permission.VIEW_OWN_ORDERS}),
}


def has_permission(role: Role | str, permission: Permission | str) -> bool:
    """Return ``True`` if ``role`` is granted ``permission``.

    Unknown role or permission strings are denied rather than raising.
    """

    try:
        role = Role(role)
        permission = Permission(permission)
    except ValueError:
        return False
    return permission in _GRANTS[role]


@dataclass(frozen=True)
class Principal:
    """Authenticated caller: who they are and which restaurant they act for."""

    user_id: int | None
    role: Role
    restaurant_id: int | None = None

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN

    def can(self, permission: Permission | str) -> bool:
        return has_permission(self.role, permission)
