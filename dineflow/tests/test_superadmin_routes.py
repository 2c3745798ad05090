import pathlib
import sys

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

import pytest

from dineflow.app.auth import create_access_token
from dineflow.app.domain.cart import Cart, add_item
from dineflow.app.repos_sqlalchemy import orders_repo_sql

NEW_RESTAURANT = {
    "name": "Green Leaf Bistro",
    "phone": "5552223333",
    "email": "hi@greenleaf.test",
    "order_prefix": "GL",
    "admin_username": "gl_admin",
    "admin_password": "secret123",
}


def _auth(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.mark.anyio
async def test_create_restaurant_with_admin(client, seed):
    headers = _auth(seed["superadmin"])
    resp = await client.post("/api/super/restaurants", json=NEW_RESTAURANT, headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["restaurant"]["slug"] == "green-leaf-bistro"
    assert data["restaurant"]["subdomain"] == "green-leaf-bistro"
    assert data["admin"]["role"] == "admin"
    assert data["admin"]["restaurant_id"] == data["restaurant"]["id"]
    assert data["admin"]["name"] == "Green Leaf Bistro Admin"

    login = await client.post(
        "/auth/login", json={"username": "gl_admin", "password": "secret123"}
    )
    assert login.json()["data"]["restaurant_id"] == data["restaurant"]["id"]

    resp = await client.post("/api/super/restaurants", json=NEW_RESTAURANT, headers=headers)
    assert resp.status_code == 409

    listed = (await client.get("/api/super/restaurants", headers=headers)).json()["data"]
    assert len(listed) == 3


@pytest.mark.anyio
async def test_failed_admin_rolls_back_restaurant(client, seed):
    headers = _auth(seed["superadmin"])
    payload = dict(NEW_RESTAURANT, admin_username="admin_a")
    resp = await client.post("/api/super/restaurants", json=payload, headers=headers)
    assert resp.status_code == 409
    listed = (await client.get("/api/super/restaurants", headers=headers)).json()["data"]
    assert "green-leaf-bistro" not in [r["slug"] for r in listed]


@pytest.mark.anyio
async def test_view_update_toggle(client, seed):
    headers = _auth(seed["superadmin"])
    rid = seed["a"]["restaurant"].id

    view = (await client.get(f"/api/super/restaurants/{rid}", headers=headers)).json()["data"]
    assert view["stats"]["total_users"] == 2
    assert {u["username"] for u in view["users"]} == {"admin_a", "staff_a"}

    resp = await client.patch(
        f"/api/super/restaurants/{rid}", json={"name": "Casa Roja"}, headers=headers
    )
    assert resp.json()["data"]["slug"] == "casa-roja"
    resp = await client.patch(
        f"/api/super/restaurants/{rid}", json={"name": "Blue Fin"}, headers=headers
    )
    assert resp.status_code == 409

    resp = await client.post(f"/api/super/restaurants/{rid}/toggle", headers=headers)
    assert resp.json()["data"]["is_active"] is False
    assert (await client.get("/r/casa-roja/menu")).status_code == 404


@pytest.mark.anyio
async def test_delete_refused_with_orders(client, session, seed):
    headers = _auth(seed["superadmin"])
    a, b = seed["a"], seed["b"]
    cart = Cart()
    add_item(cart, a["dish"], a["restaurant"].id, 1)
    await orders_repo_sql.place_order(session, a["restaurant"], a["table"], cart, "5551234567")

    resp = await client.delete(f"/api/super/restaurants/{a['restaurant'].id}", headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "CONFLICT"

    resp = await client.delete(f"/api/super/restaurants/{b['restaurant'].id}", headers=headers)
    assert resp.status_code == 200
    resp = await client.get(f"/api/super/restaurants/{b['restaurant'].id}", headers=headers)
    assert resp.status_code == 404
    login = await client.post("/auth/login", json={"username": "admin_b", "password": "secret123"})
    assert login.status_code == 401


@pytest.mark.anyio
async def test_platform_dashboard(client, seed):
    stats = (
        await client.get("/api/super/dashboard", headers=_auth(seed["superadmin"]))
    ).json()["data"]["stats"]
    assert stats == {
        "total_restaurants": 2,
        "active_restaurants": 2,
        "total_users": 5,
        "total_orders": 0,
    }


@pytest.mark.anyio
async def test_admin_cannot_manage_restaurants(client, seed):
    resp = await client.get("/api/super/restaurants", headers=_auth(seed["a"]["admin"]))
    assert resp.status_code == 403
