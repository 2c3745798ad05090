from __future__ import annotations

"""Restaurant admin routes: menu, tables, staff and orders."""

from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings

from .auth import permission_required
from .db import get_session
from .domain.roles import Permission, Principal, Role
from .domain.table_status import qr_url
from .repos_sqlalchemy import (
    TenantScope,
    orders_repo_sql,
    restaurants_repo_sql,
    tables_repo_sql,
    users_repo_sql,
)
from .repos_sqlalchemy.menu_repo_sql import menu_repo
from .routes_staff import today_start
from .schemas import (
    MenuItemIn,
    MenuItemOut,
    MenuItemPatch,
    OrderOut,
    StaffIn,
    TableIn,
    TableOut,
    TableStatusIn,
    UserOut,
    dump,
    dump_all,
)
from .utils.order_number import restaurant_zone
from .utils.responses import ok

router = APIRouter(prefix="/api/admin")

manage_menu = permission_required(Permission.MANAGE_MENU)
manage_tables = permission_required(Permission.MANAGE_TABLES)
manage_staff = permission_required(Permission.MANAGE_STAFF)
manage_orders = permission_required(Permission.MANAGE_ORDERS)


@router.get("/dashboard")
async def dashboard(
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_orders),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    stats = await restaurants_repo_sql.admin_stats(
        session, rid, await today_start(session, rid)
    )
    recent = await orders_repo_sql.list_orders(session, rid, limit=10)
    return ok({"stats": stats, "recent_orders": dump_all(OrderOut, recent)})


# --- menu ------------------------------------------------------------------


@router.get("/menu-items")
async def list_menu_items(
    category: Optional[str] = None,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_menu),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    items = await menu_repo.list_items(
        session, rid, include_unavailable=True, category=category
    )
    return ok(dump_all(MenuItemOut, items))


@router.post("/menu-items")
async def create_menu_item(
    payload: MenuItemIn,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_menu),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    item = await menu_repo.create(session, rid, payload.model_dump())
    return ok(dump(MenuItemOut, item))


@router.get("/menu-items/{item_id}")
async def get_menu_item(
    item_id: int,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_menu),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    return ok(dump(MenuItemOut, await menu_repo.get(session, rid, item_id)))


@router.patch("/menu-items/{item_id}")
async def update_menu_item(
    item_id: int,
    payload: MenuItemPatch,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_menu),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    item = await menu_repo.update(
        session, rid, item_id, payload.model_dump(exclude_unset=True)
    )
    return ok(dump(MenuItemOut, item))


@router.post("/menu-items/{item_id}/toggle")
async def toggle_menu_item(
    item_id: int,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_menu),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    item = await menu_repo.toggle_availability(session, rid, item_id)
    return ok({"id": item.id, "is_available": item.is_available})


@router.delete("/menu-items/{item_id}")
async def delete_menu_item(
    item_id: int,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_menu),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    await menu_repo.delete(session, rid, item_id)
    return ok({"deleted": item_id})


# --- tables ----------------------------------------------------------------


@router.get("/tables")
async def list_tables(
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_tables),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    return ok(dump_all(TableOut, await tables_repo_sql.list_tables(session, rid)))


@router.post("/tables")
async def create_table(
    payload: TableIn,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_tables),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    restaurant = await restaurants_repo_sql.get_restaurant(session, rid)
    table = await tables_repo_sql.create_table(
        session,
        restaurant,
        get_settings().base_url,
        payload.table_number,
        capacity=payload.capacity,
        location=payload.location,
        notes=payload.notes,
    )
    return ok(dump(TableOut, table))


@router.post("/tables/{table_id}/status")
async def set_table_status(
    table_id: int,
    payload: TableStatusIn,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_tables),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    table = await tables_repo_sql.set_status(session, rid, table_id, payload.status)
    return ok(dump(TableOut, table))


@router.delete("/tables/{table_id}")
async def delete_table(
    table_id: int,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_tables),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    await tables_repo_sql.delete_table(session, rid, table_id)
    return ok({"deleted": table_id})


@router.get("/tables/{table_id}/qr")
async def table_qr(
    table_id: int,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_tables),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """The URL the table's QR code encodes."""

    rid = TenantScope.restaurant_for(principal, restaurant_id)
    table = await tables_repo_sql.get_table(session, rid, table_id)
    restaurant = await restaurants_repo_sql.get_restaurant(session, rid)
    url = qr_url(get_settings().base_url, restaurant.slug, table.table_number)
    return ok({"table_number": table.table_number, "url": url})


# --- staff -----------------------------------------------------------------


@router.get("/staff")
async def list_staff(
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_staff),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    return ok(dump_all(UserOut, await users_repo_sql.list_staff(session, rid)))


@router.post("/staff")
async def create_staff(
    payload: StaffIn,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_staff),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    user = await users_repo_sql.create_user(
        session,
        username=payload.username,
        password=payload.password,
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        role=Role.STAFF,
        restaurant_id=rid,
    )
    return ok(dump(UserOut, user))


@router.post("/staff/{user_id}/toggle")
async def toggle_staff(
    user_id: int,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_staff),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    user = await users_repo_sql.toggle_staff(session, rid, user_id)
    return ok({"id": user.id, "is_active": user.is_active})


# --- orders ----------------------------------------------------------------


@router.get("/orders")
async def list_orders(
    status: Optional[str] = None,
    day: Optional[date] = None,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_orders),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """All orders, optionally for one status and one local calendar day."""

    rid = TenantScope.restaurant_for(principal, restaurant_id)
    since = until = None
    if day is not None:
        restaurant = await restaurants_repo_sql.get_restaurant(session, rid)
        since = datetime.combine(day, time.min, tzinfo=restaurant_zone(restaurant))
        until = since + timedelta(days=1)
    orders = await orders_repo_sql.list_orders(
        session, rid, status=status, since=since, until=until
    )
    return ok(dump_all(OrderOut, orders))


@router.get("/orders/{order_id}")
async def order_detail(
    order_id: int,
    restaurant_id: Optional[int] = None,
    principal: Principal = Depends(manage_orders),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rid = TenantScope.restaurant_for(principal, restaurant_id)
    return ok(dump(OrderOut, await orders_repo_sql.get_order(session, rid, order_id)))
