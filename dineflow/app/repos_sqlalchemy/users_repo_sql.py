"""Repository helpers for staff, admin and superadmin accounts."""

from __future__ import annotations

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import hash_password, verify_password
from ..domain.roles import Role
from ..errors import ConflictFailure, NotFound, ValidationFailure
from ..models import User, utcnow
from ..utils.retry import read_retry

# checkout-created customers are named customer_{phone}
CUSTOMER_USERNAME_PREFIX = "customer_"


def customer_username(phone: str) -> str:
    return f"{CUSTOMER_USERNAME_PREFIX}{phone}"


@read_retry
async def find_login(session: AsyncSession, username: str) -> User | None:
    """Return the password-holding account named ``username``."""
    result = await session.execute(
        select(User).where(
            User.username == username.strip().lower(), User.role != Role.CUSTOMER
        )
    )
    return result.scalar_one_or_none()


async def username_taken(session: AsyncSession, username: str) -> bool:
    result = await session.execute(
        select(User.id).where(User.username == username, User.role != Role.CUSTOMER)
    )
    return result.first() is not None


async def create_user(
    session: AsyncSession,
    username: str,
    password: str,
    name: str,
    role: Role,
    restaurant_id: int | None,
    email: str | None = None,
    phone: str | None = None,
    commit: bool = True,
) -> User:
    """Create a password-authenticated account."""

    if role == Role.CUSTOMER:
        raise ValidationFailure("customers are created at checkout")
    if role != Role.SUPERADMIN and restaurant_id is None:
        raise ValidationFailure("restaurant_id is required")
    username = (username or "").strip().lower()
    if not username:
        raise ValidationFailure("username is required")
    if username.startswith(CUSTOMER_USERNAME_PREFIX):
        raise ValidationFailure(
            f"usernames starting with '{CUSTOMER_USERNAME_PREFIX}' are reserved"
        )
    if await username_taken(session, username):
        raise ConflictFailure("Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        name=name,
        email=email,
        phone=phone,
        role=role,
        restaurant_id=None if role == Role.SUPERADMIN else restaurant_id,
    )
    session.add(user)
    if commit:
        await session.commit()
    else:
        await session.flush()
    return user


async def record_login(session: AsyncSession, user: User) -> None:
    user.last_login = utcnow()
    await session.commit()


async def change_password(
    session: AsyncSession, user: User, current_password: str, new_password: str
) -> None:
    if not verify_password(current_password, user.password_hash):
        raise ValidationFailure("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    await session.commit()


@read_retry
async def list_staff(session: AsyncSession, restaurant_id: int) -> List[User]:
    result = await session.execute(
        select(User)
        .where(User.restaurant_id == restaurant_id, User.role == Role.STAFF)
        .order_by(User.name)
    )
    return list(result.scalars())


async def toggle_staff(session: AsyncSession, restaurant_id: int, user_id: int) -> User:
    user = await session.get(User, user_id)
    if user is None or user.restaurant_id != restaurant_id or user.role != Role.STAFF:
        raise NotFound("Staff member not found")
    user.is_active = not user.is_active
    await session.commit()
    return user
