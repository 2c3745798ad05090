"""SQLAlchemy-backed repository helpers for orders.

Checkout and status changes are the only writers of orders. Each one
commits the order together with the table it affects, so a table is never
left occupied by an order that failed to persist, nor released by a status
change that was rolled back.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy import func, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings

from ..domain.cart import Cart
from ..domain.order_status import TERMINAL, OrderStatus, check_transition, parse_status
from ..domain.roles import Role
from ..domain.table_status import TableStatus
from ..errors import ConflictFailure, NotFound, ValidationFailure
from ..models import Order, OrderItem, OrderStatusEvent, Restaurant, Table, User, utcnow
from ..routes_metrics import (
    order_number_conflicts_total,
    order_transitions_total,
    orders_created_total,
)
from ..utils.order_number import generate_order_number
from ..utils.retry import read_retry
from .users_repo_sql import customer_username

logger = logging.getLogger("dineflow")

ACTIVE_STATUSES = (OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.SERVED)


async def _customer_by_phone(
    session: AsyncSession, restaurant_id: int, phone: str
) -> User | None:
    result = await session.execute(
        select(User).where(
            User.restaurant_id == restaurant_id,
            User.phone == phone,
            User.role == Role.CUSTOMER,
        )
    )
    return result.scalar_one_or_none()


async def find_or_create_customer(
    session: AsyncSession, restaurant_id: int, phone: str
) -> User:
    """Return the customer with ``phone`` in ``restaurant_id``, creating it.

    The new row is flushed, not committed. If the insert is rejected because
    a concurrent checkout created the customer first, the transaction is
    rolled back and that customer returned; any other clash on the
    ``customer_{phone}`` username is a :class:`ConflictFailure`.
    """

    customer = await _customer_by_phone(session, restaurant_id, phone)
    if customer is not None:
        return customer

    customer = User(
        username=customer_username(phone),
        phone=phone,
        name=f"Customer {phone[-4:]}",
        role=Role.CUSTOMER,
        restaurant_id=restaurant_id,
    )
    session.add(customer)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        customer = await _customer_by_phone(session, restaurant_id, phone)
        if customer is None:
            logger.warning(
                "customer username taken by another account",
                extra={"tenant": restaurant_id},
            )
            raise ConflictFailure("Customer account could not be created") from exc
    return customer


async def _reload(session: AsyncSession, *instances) -> None:
    # a rollback expires everything loaded before it
    for instance in instances:
        if sa_inspect(instance).expired_attributes:
            await session.refresh(instance)


async def _number_taken(session: AsyncSession, restaurant_id: int, number: str) -> bool:
    result = await session.execute(
        select(Order.id).where(
            Order.restaurant_id == restaurant_id, Order.order_number == number
        )
    )
    return result.first() is not None


def _order_from_cart(
    restaurant_id: int,
    table_id: int,
    customer: User,
    phone: str,
    number: str,
    cart: Cart,
    notes: str,
    at: datetime,
) -> Order:
    return Order(
        restaurant_id=restaurant_id,
        table_id=table_id,
        customer_id=customer.id,
        customer_phone=phone,
        order_number=number,
        status=OrderStatus.PENDING,
        notes=notes or "",
        placed_at=at,
        created_at=at,
        items=[
            OrderItem(
                position=pos,
                menu_item_id=line.menu_item_id,
                name=line.name,
                price=line.price,
                quantity=line.quantity,
                notes=line.notes,
            )
            for pos, line in enumerate(cart.items)
        ],
        history=[],
    )


async def place_order(
    session: AsyncSession,
    restaurant: Restaurant,
    table: Table,
    cart: Cart,
    customer_phone: str,
    notes: str = "",
    at: datetime | None = None,
) -> Order:
    """Create a pending order from ``cart`` and occupy ``table``.

    The order number is counted from today's orders; when a concurrent
    checkout claims the same number the transaction is rolled back and the
    number recounted, up to ``order_number_retries`` attempts.
    """

    if cart is None or cart.empty:
        raise ValidationFailure("Cart is empty")
    phone = (customer_phone or "").strip()
    if not phone:
        raise ValidationFailure("Phone number is required")
    if not restaurant.is_active:
        raise NotFound("Restaurant not found")
    if table.restaurant_id != restaurant.id or not table.is_active:
        raise NotFound("Table not found")

    at = (at or utcnow()).astimezone(timezone.utc)
    restaurant_id, table_id = restaurant.id, table.id
    attempts = max(get_settings().order_number_retries, 1)

    for attempt in range(attempts):
        customer = await find_or_create_customer(session, restaurant_id, phone)
        await _reload(session, restaurant, table)
        number = await generate_order_number(session, restaurant, at)
        order = _order_from_cart(
            restaurant_id, table_id, customer, phone, number, cart, notes, at
        )
        session.add(order)
        try:
            await session.flush()
        except IntegrityError as exc:
            await session.rollback()
            if not await _number_taken(session, restaurant_id, number):
                logger.warning(
                    "order rejected by the database",
                    extra={"tenant": restaurant_id, "table_id": table_id},
                )
                raise ConflictFailure("Order could not be saved") from exc
            order_number_conflicts_total.inc()
            logger.warning(
                "order number %s taken; recounting (attempt %d/%d)",
                number,
                attempt + 1,
                attempts,
                extra={"tenant": restaurant_id},
            )
            continue

        table.status = TableStatus.OCCUPIED
        table.current_order_id = order.id
        await session.commit()

        orders_created_total.inc()
        logger.info(
            "order.placed",
            extra={
                "event": "order.placed",
                "tenant": restaurant_id,
                "order_id": order.id,
                "order_number": order.order_number,
                "table_id": table_id,
            },
        )
        return order

    raise ConflictFailure(
        "Could not allocate an order number", details={"attempts": attempts}
    )


async def _load(session: AsyncSession, restaurant_id: int, order_id: int) -> Order:
    result = await session.execute(
        select(Order).where(Order.id == order_id, Order.restaurant_id == restaurant_id)
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFound("Order not found")
    return order


@read_retry
async def get_order(session: AsyncSession, restaurant_id: int, order_id: int) -> Order:
    return await _load(session, restaurant_id, order_id)


@read_retry
async def get_customer_order(
    session: AsyncSession, restaurant_id: int, customer_id: int | None, order_id: int
) -> Order:
    """Return an order only if ``customer_id`` placed it."""

    order = await _load(session, restaurant_id, order_id)
    if customer_id is None or order.customer_id != customer_id:
        raise NotFound("Order not found")
    return order


@read_retry
async def list_orders(
    session: AsyncSession,
    restaurant_id: int,
    status: str | None = None,
    table_id: int | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    limit: int | None = None,
) -> List[Order]:
    """Return orders newest first, optionally filtered."""

    stmt = select(Order).where(Order.restaurant_id == restaurant_id)
    if status and status != "all":
        stmt = stmt.where(Order.status == parse_status(status))
    if table_id is not None:
        stmt = stmt.where(Order.table_id == table_id)
    if since is not None:
        stmt = stmt.where(Order.created_at >= since.astimezone(timezone.utc))
    if until is not None:
        stmt = stmt.where(Order.created_at < until.astimezone(timezone.utc))
    stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc())
    if limit:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars())


@read_retry
async def list_customer_orders(
    session: AsyncSession, restaurant_id: int, customer_id: int, limit: int = 20
) -> List[Order]:
    result = await session.execute(
        select(Order)
        .where(Order.restaurant_id == restaurant_id, Order.customer_id == customer_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
    )
    return list(result.scalars())


@read_retry
async def active_order_for_table(
    session: AsyncSession, restaurant_id: int, table_number: str
) -> Order:
    """Return the newest non-terminal order seated at ``table_number``."""

    table = (
        await session.execute(
            select(Table).where(
                Table.restaurant_id == restaurant_id, Table.table_number == table_number
            )
        )
    ).scalar_one_or_none()
    if table is None:
        raise NotFound("Table not found")
    result = await session.execute(
        select(Order)
        .where(
            Order.restaurant_id == restaurant_id,
            Order.table_id == table.id,
            Order.status.in_(ACTIVE_STATUSES),
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(1)
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFound("No active order for this table")
    return order


async def transition(
    session: AsyncSession,
    restaurant_id: int,
    order_id: int,
    new_status: str,
    actor_id: int | None,
) -> Order:
    """Move an order to ``new_status`` and record who did it.

    A terminal status frees the order's table in the same commit. Illegal
    moves raise before anything is written.
    """

    order = await _load(session, restaurant_id, order_id)
    target = check_transition(order.status, new_status)
    now = utcnow()

    order.status = target
    order.history.append(OrderStatusEvent(status=target, at=now, updated_by=actor_id))
    if target == OrderStatus.SERVED and order.served_by is None:
        order.served_by = actor_id
    if target == OrderStatus.DONE and order.completed_at is None:
        order.completed_at = now

    if target in TERMINAL and order.table_id is not None:
        table = await session.get(Table, order.table_id)
        if table is not None and table.restaurant_id == restaurant_id:
            table.status = TableStatus.AVAILABLE
            table.current_order_id = None

    await session.commit()
    order_transitions_total.labels(status=target.value).inc()
    logger.info(
        "order.status %s",
        target.value,
        extra={
            "event": "order.status",
            "tenant": restaurant_id,
            "user": actor_id,
            "order_id": order.id,
            "status": target.value,
        },
    )
    return order


@read_retry
async def status_counts(
    session: AsyncSession, restaurant_id: int, since: datetime | None = None
) -> dict[str, int]:
    """Return ``{status: count}`` for every status, zero-filled."""

    stmt = select(Order.status, func.count(Order.id)).where(
        Order.restaurant_id == restaurant_id
    )
    if since is not None:
        stmt = stmt.where(Order.created_at >= since.astimezone(timezone.utc))
    stmt = stmt.group_by(Order.status)
    counts = {status.value: 0 for status in OrderStatus}
    for status, count in (await session.execute(stmt)).all():
        counts[OrderStatus(status).value] = count
    return counts


@read_retry
async def revenue(
    session: AsyncSession, restaurant_id: int | None = None, since: datetime | None = None
):
    """Sum of totals for completed orders."""

    stmt = select(func.coalesce(func.sum(Order.total), 0)).where(
        Order.status == OrderStatus.DONE
    )
    if restaurant_id is not None:
        stmt = stmt.where(Order.restaurant_id == restaurant_id)
    if since is not None:
        stmt = stmt.where(Order.created_at >= since.astimezone(timezone.utc))
    return (await session.execute(stmt)).scalar_one()
