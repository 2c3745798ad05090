# auth.py

"""Password hashing, bearer tokens and permission checks for staff routes."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings

from .db import get_session
from .domain.roles import Permission, Principal, Role
from .errors import ValidationFailure
from .models import User

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 6

ph = PasswordHasher()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


class Token(BaseModel):
    """JWT access token returned after authentication."""

    access_token: str
    token_type: str = "bearer"
    role: str
    restaurant_id: int | None = None


def hash_password(password: str) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailure(
            f"password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    return ph.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Check a plaintext password against a stored hash."""

    if not hashed_password:
        return False
    try:
        return ph.verify(hashed_password, plain_password)
    except (VerifyMismatchError, InvalidHashError):
        return False
    except VerificationError as exc:  # pragma: no cover - unexpected
        logger.error("argon2 verification error: %s", exc)
        raise


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT identifying ``user`` and its restaurant."""

    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims = {
        "sub": str(user.id),
        "role": Role(user.role).value,
        "rid": user.restaurant_id,
        "exp": expire,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def _credentials_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the active account from a bearer token or raise 401."""

    if not token:
        raise _credentials_error()
    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
        user_id = int(payload["sub"])
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        raise _credentials_error()
    user = await session.get(User, user_id)
    if user is None or not user.is_active or user.role == Role.CUSTOMER:
        raise _credentials_error()
    return user


async def get_principal(user: User = Depends(get_current_user)) -> Principal:
    return Principal(user_id=user.id, role=Role(user.role), restaurant_id=user.restaurant_id)


def permission_required(permission: Permission):
    """Dependency factory enforcing that the caller holds ``permission``."""

    async def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if not principal.can(permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"You don't have permission to {permission.value.replace('_', ' ')}",
            )
        return principal

    return dependency
