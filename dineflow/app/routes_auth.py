from __future__ import annotations

"""Password login for staff, admins and superadmins."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import Token, create_access_token, get_current_user, verify_password
from .db import get_session
from .models import Restaurant, User
from .repos_sqlalchemy import users_repo_sql
from .schemas import ChangePasswordIn, LoginIn, UserOut, dump
from .utils.responses import ok

router = APIRouter(prefix="/auth")
logger = logging.getLogger("dineflow")


@router.post("/login")
async def login(payload: LoginIn, session: AsyncSession = Depends(get_session)) -> dict:
    """Exchange username and password for a bearer token."""

    user = await users_repo_sql.find_login(session, payload.username)
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password"
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated"
        )
    if user.restaurant_id is not None:
        restaurant = await session.get(Restaurant, user.restaurant_id)
        if restaurant is None or not restaurant.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Restaurant is deactivated"
            )
    await users_repo_sql.record_login(session, user)
    logger.info("login", extra={"user": user.id, "tenant": user.restaurant_id})
    token = Token(
        access_token=create_access_token(user),
        role=user.role.value,
        restaurant_id=user.restaurant_id,
    )
    return ok(token.model_dump())


@router.get("/me")
async def me(user: User = Depends(get_current_user)) -> dict:
    return ok(dump(UserOut, user))


@router.post("/change-password")
async def change_password(
    payload: ChangePasswordIn,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    await users_repo_sql.change_password(
        session, user, payload.current_password, payload.new_password
    )
    return ok({"changed": True})
