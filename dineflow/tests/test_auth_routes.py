import pathlib
import sys
from datetime import timedelta

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

import jwt
import pytest

from config import get_settings
from dineflow.app.auth import ALGORITHM, create_access_token, hash_password, verify_password
from dineflow.app.errors import ValidationFailure


async def _login(client, username, password="secret123"):
    return await client.post("/auth/login", json={"username": username, "password": password})


def test_password_hashing():
    hashed = hash_password("secret123")
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("secret123", None)
    with pytest.raises(ValidationFailure):
        hash_password("123")


@pytest.mark.anyio
async def test_login_success(client, session, seed):
    resp = await _login(client, "STAFF_A ")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["role"] == "staff"
    assert data["restaurant_id"] == seed["a"]["restaurant"].id

    claims = jwt.decode(data["access_token"], get_settings().secret_key, algorithms=[ALGORITHM])
    assert claims["sub"] == str(seed["a"]["staff"].id)
    assert claims["rid"] == seed["a"]["restaurant"].id

    await session.refresh(seed["a"]["staff"])
    assert seed["a"]["staff"].last_login is not None

    me = await client.get(
        "/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}
    )
    assert me.json()["data"]["username"] == "staff_a"


@pytest.mark.anyio
async def test_login_failures(client, session, seed):
    resp = await _login(client, "staff_a", "nope")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"
    assert (await _login(client, "ghost")).status_code == 401

    seed["a"]["staff"].is_active = False
    seed["b"]["restaurant"].is_active = False
    await session.commit()
    assert (await _login(client, "staff_a")).status_code == 401
    assert (await _login(client, "admin_b")).status_code == 401


@pytest.mark.anyio
async def test_bad_tokens_are_rejected(client, seed):
    assert (await client.get("/auth/me")).status_code == 401
    resp = await client.get("/auth/me", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"] == "Bearer"

    expired = create_access_token(seed["a"]["staff"], expires_delta=timedelta(seconds=-1))
    resp = await client.get("/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert resp.status_code == 401


@pytest.mark.anyio
async def test_change_password(client, seed):
    headers = {"Authorization": f"Bearer {create_access_token(seed['a']['admin'])}"}
    resp = await client.post(
        "/auth/change-password",
        json={"current_password": "wrong", "new_password": "brandnew1"},
        headers=headers,
    )
    assert resp.status_code == 422

    resp = await client.post(
        "/auth/change-password",
        json={"current_password": "secret123", "new_password": "brandnew1"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert (await _login(client, "admin_a", "brandnew1")).status_code == 200
    assert (await _login(client, "admin_a")).status_code == 401
