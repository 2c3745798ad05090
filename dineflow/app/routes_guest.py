from __future__ import annotations

"""Guest routes reached by scanning a table QR code."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .domain.cart import Cart, add_item, update_item
from .errors import ValidationFailure
from .models import MENU_CATEGORIES, Restaurant, User
from .repos_sqlalchemy import orders_repo_sql, restaurants_repo_sql, tables_repo_sql
from .repos_sqlalchemy.menu_repo_sql import menu_repo
from .schemas import (
    CartAddIn,
    CartOut,
    CartUpdateIn,
    CustomerLoginIn,
    MenuItemOut,
    OrderOut,
    OrderStatusOut,
    PlaceOrderIn,
    TableOut,
    dump,
    dump_all,
)
from .sessions import (
    BrowsingSession,
    SessionCustomer,
    SessionStore,
    get_browsing_session,
    get_store,
)
from .utils.responses import ok

router = APIRouter(prefix="/r/{slug}")


def _restaurant_info(restaurant: Restaurant) -> dict:
    return {
        "id": restaurant.id,
        "name": restaurant.name,
        "slug": restaurant.slug,
        "currency": restaurant.currency,
        "logo": restaurant.logo,
    }


def _cart(bs: BrowsingSession, restaurant: Restaurant) -> dict:
    cart = bs.cart if bs.restaurant_id == restaurant.id else Cart()
    return dump(CartOut, cart)


def _remember(bs: BrowsingSession, customer: User) -> None:
    bs.customer = SessionCustomer(id=customer.id, phone=customer.phone, name=customer.name)


@router.get("/table/{table_number}")
async def enter_table(
    slug: str,
    table_number: str,
    session: AsyncSession = Depends(get_session),
    bs: BrowsingSession = Depends(get_browsing_session),
    store: SessionStore = Depends(get_store),
) -> dict:
    """Seat the visitor at ``table_number``; switching tables empties the cart."""

    restaurant = await restaurants_repo_sql.get_by_slug(session, slug)
    table = await tables_repo_sql.find_by_number(
        session, restaurant.id, table_number, active_only=True
    )
    bs.enter(restaurant.id, restaurant.slug, table.id, table.table_number)
    await store.save(bs)
    return ok(
        {
            "restaurant": _restaurant_info(restaurant),
            "table": dump(TableOut, table),
            "cart": _cart(bs, restaurant),
        }
    )


@router.get("/menu")
async def menu(
    slug: str,
    session: AsyncSession = Depends(get_session),
    bs: BrowsingSession = Depends(get_browsing_session),
) -> dict:
    """Available items grouped by category."""

    restaurant = await restaurants_repo_sql.get_by_slug(session, slug)
    groups = await menu_repo.grouped(session, restaurant.id)
    categories = [
        {
            "category": key,
            "name": MENU_CATEGORIES.get(key, "Other"),
            "items": dump_all(MenuItemOut, items),
        }
        for key, items in groups.items()
    ]
    table_number = bs.table_number if bs.restaurant_id == restaurant.id else None
    return ok(
        {
            "restaurant": _restaurant_info(restaurant),
            "table_number": table_number,
            "categories": categories,
        }
    )


@router.get("/cart")
async def view_cart(
    slug: str,
    session: AsyncSession = Depends(get_session),
    bs: BrowsingSession = Depends(get_browsing_session),
) -> dict:
    restaurant = await restaurants_repo_sql.get_by_slug(session, slug)
    return ok(_cart(bs, restaurant))


@router.post("/cart/add")
async def cart_add(
    slug: str,
    payload: CartAddIn,
    session: AsyncSession = Depends(get_session),
    bs: BrowsingSession = Depends(get_browsing_session),
    store: SessionStore = Depends(get_store),
) -> dict:
    restaurant = await restaurants_repo_sql.get_by_slug(session, slug)
    bs.require_context(restaurant.id)
    item = await menu_repo.lookup(session, payload.menu_item_id)
    add_item(bs.cart, item, restaurant.id, payload.quantity, payload.notes)
    await store.save(bs)
    return ok(_cart(bs, restaurant))


@router.post("/cart/update/{item_id}")
async def cart_update(
    slug: str,
    item_id: int,
    payload: CartUpdateIn,
    session: AsyncSession = Depends(get_session),
    bs: BrowsingSession = Depends(get_browsing_session),
    store: SessionStore = Depends(get_store),
) -> dict:
    """Change a line's quantity; zero or less removes it."""

    restaurant = await restaurants_repo_sql.get_by_slug(session, slug)
    bs.require_context(restaurant.id)
    update_item(bs.cart, item_id, payload.quantity)
    await store.save(bs)
    return ok(_cart(bs, restaurant))


@router.post("/order/place")
async def place_order(
    slug: str,
    payload: PlaceOrderIn,
    session: AsyncSession = Depends(get_session),
    bs: BrowsingSession = Depends(get_browsing_session),
    store: SessionStore = Depends(get_store),
) -> dict:
    """Turn the session cart into a pending order and clear the cart."""

    restaurant = await restaurants_repo_sql.get_by_slug(session, slug)
    bs.require_context(restaurant.id)
    table = await tables_repo_sql.get_table(session, restaurant.id, bs.table_id)
    order = await orders_repo_sql.place_order(
        session, restaurant, table, bs.cart, payload.phone, payload.notes
    )
    customer = await session.get(User, order.customer_id)
    _remember(bs, customer)
    bs.cart = Cart()
    await store.save(bs)
    return ok(
        {
            "order_id": order.id,
            "order_number": order.order_number,
            "total": float(order.total),
        }
    )


@router.get("/order/{order_id}")
async def order_detail(
    slug: str,
    order_id: int,
    session: AsyncSession = Depends(get_session),
    bs: BrowsingSession = Depends(get_browsing_session),
) -> dict:
    restaurant = await restaurants_repo_sql.get_by_slug(session, slug)
    customer_id = bs.customer.id if bs.customer and bs.restaurant_id == restaurant.id else None
    order = await orders_repo_sql.get_customer_order(
        session, restaurant.id, customer_id, order_id
    )
    return ok(dump(OrderOut, order))


@router.get("/order/{order_id}/status")
async def order_status(
    slug: str,
    order_id: int,
    session: AsyncSession = Depends(get_session),
    bs: BrowsingSession = Depends(get_browsing_session),
) -> dict:
    """Pollable status read."""

    restaurant = await restaurants_repo_sql.get_by_slug(session, slug)
    customer_id = bs.customer.id if bs.customer and bs.restaurant_id == restaurant.id else None
    order = await orders_repo_sql.get_customer_order(
        session, restaurant.id, customer_id, order_id
    )
    return ok(dump(OrderStatusOut, order))


@router.get("/my-orders")
async def my_orders(
    slug: str,
    session: AsyncSession = Depends(get_session),
    bs: BrowsingSession = Depends(get_browsing_session),
) -> dict:
    restaurant = await restaurants_repo_sql.get_by_slug(session, slug)
    if bs.customer is None or bs.restaurant_id != restaurant.id:
        return ok([])
    orders = await orders_repo_sql.list_customer_orders(
        session, restaurant.id, bs.customer.id
    )
    return ok(dump_all(OrderOut, orders))


@router.post("/customer-login")
async def customer_login(
    slug: str,
    payload: CustomerLoginIn,
    session: AsyncSession = Depends(get_session),
    bs: BrowsingSession = Depends(get_browsing_session),
    store: SessionStore = Depends(get_store),
) -> dict:
    """Identify the visitor by phone, creating the customer on first use."""

    phone = payload.phone.strip()
    if not phone:
        raise ValidationFailure("Phone number is required")
    restaurant = await restaurants_repo_sql.get_by_slug(session, slug)
    restaurant_id, restaurant_slug = restaurant.id, restaurant.slug
    customer = await orders_repo_sql.find_or_create_customer(session, restaurant_id, phone)
    await session.commit()
    if bs.restaurant_id != restaurant_id:
        bs.restaurant_id = restaurant_id
        bs.restaurant_slug = restaurant_slug
        bs.table_id = None
        bs.table_number = None
        bs.cart = Cart()
    _remember(bs, customer)
    await store.save(bs)
    return ok({"id": customer.id, "name": customer.name})
