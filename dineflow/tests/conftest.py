import os
import pathlib
import sys
from decimal import Decimal

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost/0")
os.environ.setdefault("SECRET_KEY", "x" * 32)
os.environ.setdefault("BASE_URL", "http://qr.test")

import fakeredis.aioredis
import pytest
from httpx import ASGITransport, AsyncClient

import dineflow.app.db as app_db
from dineflow.app.auth import hash_password
from dineflow.app.domain.roles import Role
from dineflow.app.main import app
from dineflow.app.models import MenuItem, Restaurant, Table, User

PASSWORD = "secret123"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def session_factory():
    SessionLocal, engine = await app_db.create_test_session()
    previous = app_db.SessionLocal, app_db.engine
    app_db.SessionLocal, app_db.engine = SessionLocal, engine
    try:
        yield SessionLocal
    finally:
        app_db.SessionLocal, app_db.engine = previous
        await engine.dispose()


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


async def _add_restaurant(session, name: str, slug: str, prefix: str = "ORD") -> Restaurant:
    restaurant = Restaurant(
        name=name,
        slug=slug,
        subdomain=slug,
        phone="5550000000",
        email=f"hello@{slug}.test",
        order_prefix=prefix,
    )
    session.add(restaurant)
    await session.flush()
    return restaurant


@pytest.fixture
async def seed(session):
    """Two restaurants, each with a table, a dish and an admin/staff pair."""

    data = {}
    for key, name, slug in (("a", "Casa Verde", "casa-verde"), ("b", "Blue Fin", "blue-fin")):
        restaurant = await _add_restaurant(session, name, slug)
        table = Table(
            restaurant_id=restaurant.id,
            table_number="5",
            capacity=4,
            qr_url=f"http://qr.test/r/{slug}/table/5",
        )
        dish = MenuItem(
            restaurant_id=restaurant.id,
            name="Paella" if key == "a" else "Sashimi",
            price=Decimal("12.50"),
            category="main_course",
        )
        drink = MenuItem(
            restaurant_id=restaurant.id,
            name="Lemonade",
            price=Decimal("3.00"),
            category="beverage",
        )
        admin = User(
            username=f"admin_{key}",
            password_hash=hash_password(PASSWORD),
            name=f"Admin {key.upper()}",
            role=Role.ADMIN,
            restaurant_id=restaurant.id,
        )
        staff = User(
            username=f"staff_{key}",
            password_hash=hash_password(PASSWORD),
            name=f"Staff {key.upper()}",
            role=Role.STAFF,
            restaurant_id=restaurant.id,
        )
        session.add_all([table, dish, drink, admin, staff])
        await session.flush()
        data[key] = {
            "restaurant": restaurant,
            "table": table,
            "dish": dish,
            "drink": drink,
            "admin": admin,
            "staff": staff,
        }
    superadmin = User(
        username="root",
        password_hash=hash_password(PASSWORD),
        name="Platform",
        role=Role.SUPERADMIN,
    )
    session.add(superadmin)
    await session.commit()
    data["superadmin"] = superadmin
    return data


@pytest.fixture
async def client(session_factory):
    app.state.redis = fakeredis.aioredis.FakeRedis(decode_responses=True)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
