from __future__ import annotations

"""Staff routes: today's orders and status changes."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import permission_required
from .db import get_session
from .domain.order_status import OrderStatus
from .domain.roles import Permission, Principal
from .models import Restaurant, utcnow
from .repos_sqlalchemy import TenantScope, orders_repo_sql, restaurants_repo_sql
from .schemas import OrderOut, StatusIn, dump, dump_all
from .utils.order_number import day_bounds, restaurant_zone
from .utils.responses import ok

router = APIRouter(prefix="/api/staff")

view_orders = permission_required(Permission.VIEW_ORDERS)
update_status = permission_required(Permission.UPDATE_ORDER_STATUS)


async def today_start(session: AsyncSession, restaurant_id: int) -> datetime:
    """Start of the restaurant's current day, in UTC."""

    restaurant: Restaurant = await restaurants_repo_sql.get_restaurant(session, restaurant_id)
    _, start, _ = day_bounds(utcnow(), restaurant_zone(restaurant))
    return start


@router.get("/dashboard")
async def dashboard(
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(view_orders),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    start = await today_start(session, rid)
    counts = await orders_repo_sql.status_counts(session, rid, since=start)
    active = await orders_repo_sql.list_orders(session, rid, since=start)
    active = [o for o in active if o.status not in (OrderStatus.DONE, OrderStatus.CANCELLED)]
    active.sort(key=lambda o: o.id)
    return ok(
        {
            "stats": {
                "pending_orders": counts[OrderStatus.PENDING.value],
                "preparing_orders": counts[OrderStatus.PREPARING.value],
                "served_orders": counts[OrderStatus.SERVED.value],
                "completed_orders": counts[OrderStatus.DONE.value],
            },
            "active_orders": dump_all(OrderOut, active[:20]),
        }
    )


@router.get("/orders")
async def list_orders(
    status: Optional[str] = None,
    table_id: Optional[int] = None,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(view_orders),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Today's orders, newest first."""

    rid = TenantScope.restaurant_for(principal, restaurant_id)
    start = await today_start(session, rid)
    orders = await orders_repo_sql.list_orders(
        session, rid, status=status, table_id=table_id, since=start
    )
    return ok(dump_all(OrderOut, orders))


@router.get("/orders/{order_id}")
async def order_detail(
    order_id: int,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(view_orders),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    order = await orders_repo_sql.get_order(session, rid, order_id)
    return ok(dump(OrderOut, order))


@router.post("/orders/{order_id}/status")
async def change_status(
    order_id: int,
    payload: StatusIn,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(update_status),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Advance an order; done or cancelled frees its table."""

    rid = TenantScope.restaurant_for(principal, restaurant_id)
    order = await orders_repo_sql.transition(
        session, rid, order_id, payload.status, principal.user_id
    )
    return ok({"id": order.id, "status": order.status.value, "order": dump(OrderOut, order)})


@router.get("/table/{table_number}/order")
async def table_order(
    table_number: str,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(view_orders),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Newest active order at a table."""

    rid = TenantScope.restaurant_for(principal, restaurant_id)
    order = await orders_repo_sql.active_order_for_table(session, rid, table_number)
    return ok(dump(OrderOut, order))
