import pathlib
import sys

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

import pytest

from dineflow.app.domain.roles import Permission, Principal, Role, has_permission
from dineflow.app.errors import NotFound, ValidationFailure
from dineflow.app.repos_sqlalchemy import TenantScope


def test_superadmin_has_everything():
    assert all(has_permission(Role.SUPERADMIN, p) for p in Permission)


@pytest.mark.parametrize(
    "role,granted",
    [
        (
            Role.ADMIN,
            {
                "manage_menu",
                "manage_tables",
                "manage_staff",
                "view_orders",
                "manage_orders",
                "update_order_status",
            },
        ),
        (Role.STAFF, {"view_orders", "update_order_status"}),
        (Role.CUSTOMER, {"place_order", "view_own_orders"}),
    ],
)
def test_permission_matrix(role, granted):
    actual = {p.value for p in Permission if has_permission(role, p)}
    assert actual == granted


def test_unknown_values_are_denied():
    assert has_permission("waiter", "view_orders") is False
    assert has_permission("admin", "launch_rockets") is False
    assert has_permission("staff", "view_orders") is True


def test_tenant_scope_pins_restaurant():
    admin = Principal(user_id=1, role=Role.ADMIN, restaurant_id=3)
    assert TenantScope.restaurant_for(admin) == 3
    assert TenantScope.restaurant_for(admin, 3) == 3
    with pytest.raises(NotFound):
        TenantScope.restaurant_for(admin, 4)


def test_tenant_scope_superadmin_names_restaurant():
    root = Principal(user_id=1, role=Role.SUPERADMIN)
    assert TenantScope.restaurant_for(root, 9) == 9
    with pytest.raises(ValidationFailure):
        TenantScope.restaurant_for(root)


def test_owned_hides_foreign_rows():
    class Row:
        restaurant_id = 2

    with pytest.raises(NotFound):
        TenantScope.owned(Row(), 1, "Table")
    with pytest.raises(NotFound):
        TenantScope.owned(None, 1)
    row = Row()
    assert TenantScope.owned(row, 2) is row
