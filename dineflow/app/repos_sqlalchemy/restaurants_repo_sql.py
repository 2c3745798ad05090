"""Restaurant provisioning and the counters shown on dashboards."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.order_status import OrderStatus
from ..domain.roles import Role
from ..errors import ConflictFailure, NotFound, ValidationFailure
from ..models import MenuItem, Order, Restaurant, Table, User, slugify
from ..utils.retry import read_retry
from . import users_repo_sql

logger = logging.getLogger("dineflow")

EDITABLE = {
    "name",
    "subdomain",
    "description",
    "address",
    "phone",
    "email",
    "logo",
    "is_active",
    "currency",
    "timezone",
    "order_prefix",
}


async def _count(session: AsyncSession, model: Any, *where: Any) -> int:
    stmt = select(func.count()).select_from(model)
    if where:
        stmt = stmt.where(*where)
    return (await session.execute(stmt)).scalar_one()


async def _ensure_unique(
    session: AsyncSession, slug: str, subdomain: str, exclude_id: int | None = None
) -> None:
    if not slug:
        raise ValidationFailure("name must contain letters or digits")
    for column, value, label in (
        (Restaurant.slug, slug, "Slug"),
        (Restaurant.subdomain, subdomain, "Subdomain"),
    ):
        stmt = select(Restaurant.id).where(column == value)
        if exclude_id is not None:
            stmt = stmt.where(Restaurant.id != exclude_id)
        if (await session.execute(stmt)).first() is not None:
            raise ConflictFailure(f"{label} already exists")


@read_retry
async def get_by_slug(session: AsyncSession, slug: str, active_only: bool = True) -> Restaurant:
    stmt = select(Restaurant).where(Restaurant.slug == slug)
    if active_only:
        stmt = stmt.where(Restaurant.is_active.is_(True))
    restaurant = (await session.execute(stmt)).scalar_one_or_none()
    if restaurant is None:
        raise NotFound("Restaurant not found")
    return restaurant


@read_retry
async def get_restaurant(session: AsyncSession, restaurant_id: int) -> Restaurant:
    restaurant = await session.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise NotFound("Restaurant not found")
    return restaurant


@read_retry
async def list_restaurants(session: AsyncSession) -> List[Restaurant]:
    result = await session.execute(
        select(Restaurant).order_by(Restaurant.created_at.desc(), Restaurant.id.desc())
    )
    return list(result.scalars())


async def create_restaurant(
    session: AsyncSession,
    values: dict[str, Any],
    admin: dict[str, Any],
    created_by: int | None,
) -> tuple[Restaurant, User]:
    """Create a restaurant together with its first admin account."""

    data = {k: v for k, v in values.items() if k in EDITABLE}
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationFailure("name is required")
    slug = slugify(name)
    subdomain = (data.get("subdomain") or slug).strip().lower()
    data.update(name=name, subdomain=subdomain)
    await _ensure_unique(session, slug, subdomain)

    restaurant = Restaurant(slug=slug, created_by=created_by, **data)
    session.add(restaurant)
    await session.flush()
    user = await users_repo_sql.create_user(
        session,
        username=admin.get("username", ""),
        password=admin.get("password", ""),
        name=admin.get("name") or f"{name} Admin",
        email=admin.get("email"),
        role=Role.ADMIN,
        restaurant_id=restaurant.id,
        commit=False,
    )
    await session.commit()
    logger.info(
        "restaurant created %s", slug, extra={"event": "restaurant.created", "tenant": restaurant.id}
    )
    return restaurant, user


async def update_restaurant(
    session: AsyncSession, restaurant_id: int, values: dict[str, Any]
) -> Restaurant:
    """Update fields; a new name also regenerates the slug."""

    restaurant = await get_restaurant(session, restaurant_id)
    data = {k: v for k, v in values.items() if k in EDITABLE and v is not None}
    slug = slugify(data["name"]) if "name" in data else restaurant.slug
    subdomain = data.get("subdomain", restaurant.subdomain)
    await _ensure_unique(session, slug, subdomain, exclude_id=restaurant.id)
    for key, value in data.items():
        setattr(restaurant, key, value)
    restaurant.slug = slug
    await session.commit()
    return restaurant


async def toggle_restaurant(session: AsyncSession, restaurant_id: int) -> Restaurant:
    restaurant = await get_restaurant(session, restaurant_id)
    restaurant.is_active = not restaurant.is_active
    await session.commit()
    return restaurant


async def delete_restaurant(session: AsyncSession, restaurant_id: int) -> None:
    """Delete a restaurant that never took an order, with its accounts and setup."""

    restaurant = await get_restaurant(session, restaurant_id)
    if await _count(session, Order, Order.restaurant_id == restaurant.id):
        raise ConflictFailure(
            "Cannot delete restaurant with existing orders. Deactivate instead."
        )
    for model in (User, Table, MenuItem):
        await session.execute(delete(model).where(model.restaurant_id == restaurant.id))
    await session.delete(restaurant)
    await session.commit()


@read_retry
async def platform_stats(session: AsyncSession) -> dict[str, int]:
    return {
        "total_restaurants": await _count(session, Restaurant),
        "active_restaurants": await _count(session, Restaurant, Restaurant.is_active.is_(True)),
        "total_users": await _count(session, User),
        "total_orders": await _count(session, Order),
    }


@read_retry
async def restaurant_stats(session: AsyncSession, restaurant_id: int) -> dict[str, int]:
    return {
        "total_users": await _count(session, User, User.restaurant_id == restaurant_id),
        "total_orders": await _count(session, Order, Order.restaurant_id == restaurant_id),
        "pending_orders": await _count(
            session,
            Order,
            Order.restaurant_id == restaurant_id,
            Order.status == OrderStatus.PENDING,
        ),
        "completed_orders": await _count(
            session,
            Order,
            Order.restaurant_id == restaurant_id,
            Order.status == OrderStatus.DONE,
        ),
    }


@read_retry
async def admin_stats(
    session: AsyncSession, restaurant_id: int, day_start: datetime
) -> dict[str, int]:
    return {
        "total_menu_items": await _count(session, MenuItem, MenuItem.restaurant_id == restaurant_id),
        "total_tables": await _count(session, Table, Table.restaurant_id == restaurant_id),
        "total_staff": await _count(
            session, User, User.restaurant_id == restaurant_id, User.role == Role.STAFF
        ),
        "total_orders": await _count(session, Order, Order.restaurant_id == restaurant_id),
        "pending_orders": await _count(
            session,
            Order,
            Order.restaurant_id == restaurant_id,
            Order.status == OrderStatus.PENDING,
        ),
        "todays_orders": await _count(
            session,
            Order,
            Order.restaurant_id == restaurant_id,
            Order.created_at >= day_start,
        ),
    }


@read_retry
async def restaurant_users(session: AsyncSession, restaurant_id: int) -> List[User]:
    result = await session.execute(
        select(User).where(User.restaurant_id == restaurant_id).order_by(User.role, User.id)
    )
    return list(result.scalars())
