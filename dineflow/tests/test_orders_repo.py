import pathlib
import sys
from datetime import datetime, timezone
from decimal import Decimal

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import func, select

from dineflow.app.domain.cart import Cart, add_item
from dineflow.app.domain.order_status import OrderStatus
from dineflow.app.domain.roles import Role
from dineflow.app.domain.table_status import TableStatus
from dineflow.app.errors import ConflictFailure, InvalidTransition, NotFound, ValidationFailure
from dineflow.app.models import MenuItem, Order, User
from dineflow.app.repos_sqlalchemy import orders_repo_sql, tables_repo_sql
from dineflow.app.repos_sqlalchemy.menu_repo_sql import menu_repo

PHONE = "5551234567"


def _cart(*entries):
    cart = Cart()
    for item, qty in entries:
        add_item(cart, item, item.restaurant_id, qty)
    return cart


async def _items(session, restaurant, *prices):
    items = []
    for n, price in enumerate(prices):
        item = MenuItem(
            restaurant_id=restaurant.id, name=f"Item {n}", price=Decimal(price)
        )
        session.add(item)
        items.append(item)
    await session.commit()
    return items


@pytest.mark.anyio
async def test_place_order_occupies_table(session, seed):
    a = seed["a"]
    item_a, item_b = await _items(session, a["restaurant"], "10.00", "5.00")
    cart = _cart((item_a, 2), (item_b, 1))

    order = await orders_repo_sql.place_order(session, a["restaurant"], a["table"], cart, PHONE)

    assert order.subtotal == Decimal("25.00")
    assert order.tax == Decimal("2.50")
    assert order.total == Decimal("27.50")
    assert order.status == OrderStatus.PENDING
    assert [line.subtotal for line in order.items] == [Decimal("20.00"), Decimal("5.00")]
    assert a["table"].status == TableStatus.OCCUPIED
    assert a["table"].current_order_id == order.id
    assert order.history == []


@pytest.mark.anyio
async def test_place_order_creates_customer_once(session, seed):
    a = seed["a"]
    cart = _cart((a["dish"], 1))
    first = await orders_repo_sql.place_order(session, a["restaurant"], a["table"], cart, PHONE)
    second = await orders_repo_sql.place_order(session, a["restaurant"], a["table"], cart, PHONE)
    assert first.customer_id == second.customer_id

    customer = await session.get(User, first.customer_id)
    assert customer.username == f"customer_{PHONE}"
    assert customer.name == "Customer 4567"
    assert customer.password_hash is None


@pytest.mark.anyio
async def test_place_order_validation(session, seed):
    a, b = seed["a"], seed["b"]
    with pytest.raises(ValidationFailure):
        await orders_repo_sql.place_order(session, a["restaurant"], a["table"], Cart(), PHONE)
    with pytest.raises(ValidationFailure):
        await orders_repo_sql.place_order(
            session, a["restaurant"], a["table"], _cart((a["dish"], 1)), "  "
        )
    with pytest.raises(NotFound):
        await orders_repo_sql.place_order(
            session, a["restaurant"], b["table"], _cart((a["dish"], 1)), PHONE
        )
    count = (await session.execute(select(func.count(Order.id)))).scalar_one()
    assert count == 0


@pytest.mark.anyio
async def test_order_numbers_are_sequential_per_day(session, seed):
    a = seed["a"]
    cart = _cart((a["dish"], 1))
    late = datetime(2024, 3, 15, 23, 30, tzinfo=timezone.utc)
    later = datetime(2024, 3, 15, 23, 45, tzinfo=timezone.utc)
    next_day = datetime(2024, 3, 16, 0, 10, tzinfo=timezone.utc)

    numbers = []
    for at in (late, later, next_day):
        order = await orders_repo_sql.place_order(
            session, a["restaurant"], a["table"], cart, PHONE, at=at
        )
        numbers.append(order.order_number)

    assert numbers == ["ORD-20240315-0001", "ORD-20240315-0002", "ORD-20240316-0001"]


@pytest.mark.anyio
async def test_order_numbers_are_per_restaurant(session, seed):
    a, b = seed["a"], seed["b"]
    at = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
    first = await orders_repo_sql.place_order(
        session, a["restaurant"], a["table"], _cart((a["dish"], 1)), PHONE, at=at
    )
    other = await orders_repo_sql.place_order(
        session, b["restaurant"], b["table"], _cart((b["dish"], 1)), PHONE, at=at
    )
    assert first.order_number == other.order_number == "ORD-20240315-0001"


@pytest.mark.anyio
async def test_prefix_read_at_generation(session, seed):
    a = seed["a"]
    at = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
    cart = _cart((a["dish"], 1))
    await orders_repo_sql.place_order(session, a["restaurant"], a["table"], cart, PHONE, at=at)
    a["restaurant"].order_prefix = "CV"
    await session.commit()
    order = await orders_repo_sql.place_order(
        session, a["restaurant"], a["table"], cart, PHONE, at=at
    )
    assert order.order_number == "CV-20240315-0002"


@pytest.mark.anyio
async def test_order_number_uses_restaurant_day(session, seed):
    a = seed["a"]
    a["restaurant"].timezone = "America/New_York"
    await session.commit()
    # 02:00 UTC on the 16th is still the evening of the 15th in New York
    at = datetime(2024, 3, 16, 2, 0, tzinfo=timezone.utc)
    order = await orders_repo_sql.place_order(
        session, a["restaurant"], a["table"], _cart((a["dish"], 1)), PHONE, at=at
    )
    assert order.order_number == "ORD-20240315-0001"


@pytest.mark.anyio
async def test_order_number_collision_is_recounted(session, seed, monkeypatch):
    a = seed["a"]
    at = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
    cart = _cart((a["dish"], 1))
    first = await orders_repo_sql.place_order(
        session, a["restaurant"], a["table"], cart, PHONE, at=at
    )

    taken = first.order_number
    real = orders_repo_sql.generate_order_number
    calls = []

    async def stale_then_real(session, restaurant, at=None):
        calls.append(at)
        if len(calls) == 1:
            # what a concurrent checkout that counted before ours committed would see
            return taken
        return await real(session, restaurant, at)

    monkeypatch.setattr(orders_repo_sql, "generate_order_number", stale_then_real)
    before = REGISTRY.get_sample_value("order_number_conflicts_total") or 0.0

    second = await orders_repo_sql.place_order(
        session, a["restaurant"], a["table"], cart, PHONE, at=at
    )

    assert len(calls) == 2
    assert second.order_number == "ORD-20240315-0002"
    assert REGISTRY.get_sample_value("order_number_conflicts_total") == before + 1
    numbers = (await session.execute(select(Order.order_number))).scalars().all()
    assert sorted(numbers) == ["ORD-20240315-0001", "ORD-20240315-0002"]
    assert a["table"].current_order_id == second.id


@pytest.mark.anyio
async def test_order_number_retries_exhausted(session, seed, monkeypatch):
    a = seed["a"]
    cart = _cart((a["dish"], 1))
    first = await orders_repo_sql.place_order(session, a["restaurant"], a["table"], cart, PHONE)
    taken = first.order_number

    async def always_taken(session, restaurant, at=None):
        return taken

    monkeypatch.setattr(orders_repo_sql, "generate_order_number", always_taken)
    with pytest.raises(ConflictFailure):
        await orders_repo_sql.place_order(
            session, a["restaurant"], a["table"], cart, "5559876543"
        )
    count = (await session.execute(select(func.count(Order.id)))).scalar_one()
    assert count == 1
    customers = await session.execute(select(User).where(User.phone == "5559876543"))
    assert customers.first() is None


@pytest.mark.anyio
async def test_customer_username_clash_is_a_conflict(session, seed):
    a = seed["a"]
    rid = a["restaurant"].id
    session.add(
        User(
            username=f"customer_{PHONE}",
            password_hash="x",
            name="Legacy account",
            role=Role.STAFF,
            restaurant_id=rid,
        )
    )
    await session.commit()

    with pytest.raises(ConflictFailure):
        await orders_repo_sql.place_order(
            session, a["restaurant"], a["table"], _cart((a["dish"], 1)), PHONE
        )
    count = (await session.execute(select(func.count(Order.id)))).scalar_one()
    assert count == 0
    await session.refresh(a["table"])
    assert a["table"].status == TableStatus.AVAILABLE


@pytest.mark.anyio
async def test_customer_created_concurrently_is_reused(session, seed, monkeypatch):
    a = seed["a"]
    rid = a["restaurant"].id
    existing = User(
        username=f"customer_{PHONE}",
        phone=PHONE,
        name="Customer 4567",
        role=Role.CUSTOMER,
        restaurant_id=rid,
    )
    session.add(existing)
    await session.commit()
    existing_id = existing.id

    real = orders_repo_sql._customer_by_phone
    lookups = []

    async def missed_once(session, restaurant_id, phone):
        lookups.append(phone)
        if len(lookups) == 1:
            # the other checkout inserted after our first lookup
            return None
        return await real(session, restaurant_id, phone)

    monkeypatch.setattr(orders_repo_sql, "_customer_by_phone", missed_once)
    order = await orders_repo_sql.place_order(
        session, a["restaurant"], a["table"], _cart((a["dish"], 1)), PHONE
    )

    assert len(lookups) == 2
    assert order.customer_id == existing_id
    customers = await session.execute(select(func.count(User.id)).where(User.phone == PHONE))
    assert customers.scalar_one() == 1


@pytest.mark.anyio
async def test_other_integrity_errors_are_not_recounted(session, seed, monkeypatch):
    a = seed["a"]
    real_order = orders_repo_sql._order_from_cart
    real_number = orders_repo_sql.generate_order_number
    numbers = []

    def without_phone(*args):
        order = real_order(*args)
        order.customer_phone = None
        return order

    async def counted(session, restaurant, at=None):
        number = await real_number(session, restaurant, at)
        numbers.append(number)
        return number

    monkeypatch.setattr(orders_repo_sql, "_order_from_cart", without_phone)
    monkeypatch.setattr(orders_repo_sql, "generate_order_number", counted)
    before = REGISTRY.get_sample_value("order_number_conflicts_total") or 0.0

    with pytest.raises(ConflictFailure, match="could not be saved"):
        await orders_repo_sql.place_order(
            session, a["restaurant"], a["table"], _cart((a["dish"], 1)), PHONE
        )

    assert len(numbers) == 1
    assert (REGISTRY.get_sample_value("order_number_conflicts_total") or 0.0) == before
    count = (await session.execute(select(func.count(Order.id)))).scalar_one()
    assert count == 0


@pytest.mark.anyio
async def test_full_lifecycle_releases_table(session, seed):
    a = seed["a"]
    staff = a["staff"]
    order = await orders_repo_sql.place_order(
        session, a["restaurant"], a["table"], _cart((a["dish"], 2)), PHONE
    )

    for step, status in enumerate(("preparing", "served", "done"), start=1):
        order = await orders_repo_sql.transition(
            session, a["restaurant"].id, order.id, status, staff.id
        )
        assert order.status == OrderStatus(status)
        assert len(order.history) == step
        assert order.history[-1].status == OrderStatus(status)
        assert order.history[-1].updated_by == staff.id

    assert order.completed_at is not None
    assert order.served_by == staff.id
    assert order.total == Decimal("27.50")
    await session.refresh(a["table"])
    assert a["table"].status == TableStatus.AVAILABLE
    assert a["table"].current_order_id is None


@pytest.mark.anyio
async def test_skipping_to_done_is_rejected(session, seed):
    a = seed["a"]
    order = await orders_repo_sql.place_order(
        session, a["restaurant"], a["table"], _cart((a["dish"], 1)), PHONE
    )
    with pytest.raises(InvalidTransition):
        await orders_repo_sql.transition(session, a["restaurant"].id, order.id, "done", None)

    await session.refresh(order)
    await session.refresh(a["table"])
    assert order.status == OrderStatus.PENDING
    assert order.history == []
    assert order.completed_at is None
    assert a["table"].status == TableStatus.OCCUPIED
    assert a["table"].current_order_id == order.id


@pytest.mark.anyio
async def test_cancel_releases_table(session, seed):
    a = seed["a"]
    order = await orders_repo_sql.place_order(
        session, a["restaurant"], a["table"], _cart((a["dish"], 1)), PHONE
    )
    await orders_repo_sql.transition(session, a["restaurant"].id, order.id, "preparing", None)
    order = await orders_repo_sql.transition(
        session, a["restaurant"].id, order.id, "cancelled", None
    )
    assert order.completed_at is None
    assert a["table"].status == TableStatus.AVAILABLE
    assert a["table"].current_order_id is None
    with pytest.raises(InvalidTransition):
        await orders_repo_sql.transition(session, a["restaurant"].id, order.id, "pending", None)


@pytest.mark.anyio
async def test_orders_are_tenant_scoped(session, seed):
    a, b = seed["a"], seed["b"]
    order = await orders_repo_sql.place_order(
        session, a["restaurant"], a["table"], _cart((a["dish"], 1)), PHONE
    )
    with pytest.raises(NotFound):
        await orders_repo_sql.get_order(session, b["restaurant"].id, order.id)
    with pytest.raises(NotFound):
        await orders_repo_sql.transition(session, b["restaurant"].id, order.id, "preparing", None)
    assert await orders_repo_sql.list_orders(session, b["restaurant"].id) == []
    assert (await orders_repo_sql.get_order(session, a["restaurant"].id, order.id)) is order


@pytest.mark.anyio
async def test_customer_sees_only_own_orders(session, seed):
    a = seed["a"]
    mine = await orders_repo_sql.place_order(
        session, a["restaurant"], a["table"], _cart((a["dish"], 1)), PHONE
    )
    theirs = await orders_repo_sql.place_order(
        session, a["restaurant"], a["table"], _cart((a["dish"], 1)), "5550001111"
    )
    rid = a["restaurant"].id
    assert await orders_repo_sql.get_customer_order(session, rid, mine.customer_id, mine.id) is mine
    with pytest.raises(NotFound):
        await orders_repo_sql.get_customer_order(session, rid, mine.customer_id, theirs.id)
    with pytest.raises(NotFound):
        await orders_repo_sql.get_customer_order(session, rid, None, mine.id)
    listed = await orders_repo_sql.list_customer_orders(session, rid, mine.customer_id)
    assert [o.id for o in listed] == [mine.id]


@pytest.mark.anyio
async def test_list_filters_and_counts(session, seed):
    a = seed["a"]
    rid = a["restaurant"].id
    cart = _cart((a["dish"], 1))
    first = await orders_repo_sql.place_order(session, a["restaurant"], a["table"], cart, PHONE)
    await orders_repo_sql.place_order(session, a["restaurant"], a["table"], cart, PHONE)
    await orders_repo_sql.transition(session, rid, first.id, "preparing", None)

    preparing = await orders_repo_sql.list_orders(session, rid, status="preparing")
    assert [o.id for o in preparing] == [first.id]
    with pytest.raises(ValidationFailure):
        await orders_repo_sql.list_orders(session, rid, status="eaten")

    counts = await orders_repo_sql.status_counts(session, rid)
    assert counts == {"pending": 1, "preparing": 1, "served": 0, "done": 0, "cancelled": 0}

    active = await orders_repo_sql.active_order_for_table(session, rid, "5")
    assert active.status in orders_repo_sql.ACTIVE_STATUSES


@pytest.mark.anyio
async def test_manual_available_clears_current_order(session, seed):
    a = seed["a"]
    rid = a["restaurant"].id
    order = await orders_repo_sql.place_order(
        session, a["restaurant"], a["table"], _cart((a["dish"], 1)), PHONE
    )
    table = await tables_repo_sql.set_status(session, rid, a["table"].id, "cleaning")
    assert table.current_order_id == order.id
    table = await tables_repo_sql.set_status(session, rid, a["table"].id, "available")
    assert table.status == TableStatus.AVAILABLE
    assert table.current_order_id is None
    await session.refresh(order)
    assert order.status == OrderStatus.PENDING
    with pytest.raises(ValidationFailure):
        await tables_repo_sql.set_status(session, rid, a["table"].id, "broken")


@pytest.mark.anyio
async def test_deleting_table_keeps_orders(session, seed):
    a = seed["a"]
    rid = a["restaurant"].id
    order = await orders_repo_sql.place_order(
        session, a["restaurant"], a["table"], _cart((a["dish"], 1)), PHONE
    )
    await tables_repo_sql.delete_table(session, rid, a["table"].id)
    await session.refresh(order)
    assert order.table_id is None

    order = await orders_repo_sql.transition(session, rid, order.id, "cancelled", None)
    assert order.status == OrderStatus.CANCELLED


@pytest.mark.anyio
async def test_deleting_menu_item_keeps_order_lines(session, seed):
    a = seed["a"]
    rid = a["restaurant"].id
    order = await orders_repo_sql.place_order(
        session, a["restaurant"], a["table"], _cart((a["dish"], 2)), PHONE
    )
    order_id = order.id
    await menu_repo.delete(session, rid, a["dish"].id)
    session.expire_all()
    order = await orders_repo_sql.get_order(session, rid, order_id)
    line = order.items[0]
    assert line.menu_item_id is None
    assert line.name == "Paella"
    assert line.price == Decimal("12.50")
