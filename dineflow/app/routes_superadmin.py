from __future__ import annotations

"""Superadmin routes for provisioning restaurants."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import permission_required
from .db import get_session
from .domain.roles import Permission, Principal
from .repos_sqlalchemy import restaurants_repo_sql
from .schemas import RestaurantIn, RestaurantOut, RestaurantPatch, UserOut, dump, dump_all
from .utils.responses import ok

router = APIRouter(prefix="/api/super")

manage_restaurants = permission_required(Permission.MANAGE_RESTAURANTS)


@router.get("/dashboard")
async def dashboard(
    principal: Principal = Depends(manage_restaurants),
    session: AsyncSession = Depends(get_session),
) -> dict:
    stats = await restaurants_repo_sql.platform_stats(session)
    recent = (await restaurants_repo_sql.list_restaurants(session))[:5]
    return ok({"stats": stats, "recent_restaurants": dump_all(RestaurantOut, recent)})


@router.get("/restaurants")
async def list_restaurants(
    principal: Principal = Depends(manage_restaurants),
    session: AsyncSession = Depends(get_session),
) -> dict:
    restaurants = await restaurants_repo_sql.list_restaurants(session)
    return ok(dump_all(RestaurantOut, restaurants))


@router.post("/restaurants")
async def create_restaurant(
    payload: RestaurantIn,
    principal: Principal = Depends(manage_restaurants),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Provision a restaurant and its admin account."""

    values = payload.model_dump(exclude={"admin_username", "admin_password", "admin_name", "admin_email"})
    admin = {
        "username": payload.admin_username,
        "password": payload.admin_password,
        "name": payload.admin_name,
        "email": payload.admin_email,
    }
    restaurant, user = await restaurants_repo_sql.create_restaurant(
        session, values, admin, created_by=principal.user_id
    )
    return ok({"restaurant": dump(RestaurantOut, restaurant), "admin": dump(UserOut, user)})


@router.get("/restaurants/{restaurant_id}")
async def view_restaurant(
    restaurant_id: int,
    principal: Principal = Depends(manage_restaurants),
    session: AsyncSession = Depends(get_session),
) -> dict:
    restaurant = await restaurants_repo_sql.get_restaurant(session, restaurant_id)
    stats = await restaurants_repo_sql.restaurant_stats(session, restaurant_id)
    users = await restaurants_repo_sql.restaurant_users(session, restaurant_id)
    return ok(
        {
            "restaurant": dump(RestaurantOut, restaurant),
            "stats": stats,
            "users": dump_all(UserOut, users),
        }
    )


@router.patch("/restaurants/{restaurant_id}")
async def update_restaurant(
    restaurant_id: int,
    payload: RestaurantPatch,
    principal: Principal = Depends(manage_restaurants),
    session: AsyncSession = Depends(get_session),
) -> dict:
    restaurant = await restaurants_repo_sql.update_restaurant(
        session, restaurant_id, payload.model_dump(exclude_unset=True)
    )
    return ok(dump(RestaurantOut, restaurant))


@router.post("/restaurants/{restaurant_id}/toggle")
async def toggle_restaurant(
    restaurant_id: int,
    principal: Principal = Depends(manage_restaurants),
    session: AsyncSession = Depends(get_session),
) -> dict:
    restaurant = await restaurants_repo_sql.toggle_restaurant(session, restaurant_id)
    return ok({"id": restaurant.id, "is_active": restaurant.is_active})


@router.delete("/restaurants/{restaurant_id}")
async def delete_restaurant(
    restaurant_id: int,
    principal: Principal = Depends(manage_restaurants),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Refused while the restaurant has orders; deactivate it instead."""

    await restaurants_repo_sql.delete_restaurant(session, restaurant_id)
    return ok({"deleted": restaurant_id})
