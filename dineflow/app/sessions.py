"""Per-visitor browsing sessions kept in redis.

A guest who scans a table QR code gets an ``sid`` cookie. The session it
names carries the restaurant and table context, the cart and, after the
first checkout or phone login, the customer identity. Nothing in here is
written to the database.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import Depends, Request, Response
from pydantic import BaseModel, Field, ValidationError
from redis.exceptions import RedisError

from config import get_settings

from .domain.cart import Cart
from .errors import DependencyFailure, NotFound

logger = logging.getLogger("dineflow")

COOKIE_NAME = "sid"
KEY_PREFIX = "sess:"


class SessionCustomer(BaseModel):
    id: int
    phone: str
    name: str


class BrowsingSession(BaseModel):
    sid: str
    restaurant_id: Optional[int] = None
    restaurant_slug: Optional[str] = None
    table_id: Optional[int] = None
    table_number: Optional[str] = None
    cart: Cart = Field(default_factory=Cart)
    customer: Optional[SessionCustomer] = None

    def enter(self, restaurant_id: int, slug: str, table_id: int, table_number: str) -> None:
        """Switch to a restaurant/table context, emptying the cart on change."""

        if (self.restaurant_id, self.table_id) != (restaurant_id, table_id):
            self.cart = Cart()
        if self.restaurant_id != restaurant_id:
            self.customer = None
        self.restaurant_id = restaurant_id
        self.restaurant_slug = slug
        self.table_id = table_id
        self.table_number = table_number

    def require_context(self, restaurant_id: int) -> None:
        """Raise unless the session is seated at a table of ``restaurant_id``."""

        if self.restaurant_id != restaurant_id or self.table_id is None:
            raise NotFound("Table not found", details={"hint": "scan the table QR code"})


class SessionStore:
    """JSON documents under ``sess:{sid}`` with a sliding TTL."""

    def __init__(self, redis, ttl: int) -> None:
        self.redis = redis
        self.ttl = ttl

    async def load(self, sid: str) -> BrowsingSession:
        try:
            raw = await self.redis.get(KEY_PREFIX + sid)
        except RedisError as exc:
            logger.error("session store read failed: %s", exc)
            raise DependencyFailure("Session store unavailable") from exc
        if raw:
            try:
                return BrowsingSession.model_validate_json(raw)
            except ValidationError:
                logger.warning("discarding unreadable session %s", sid)
        return BrowsingSession(sid=sid)

    async def save(self, session: BrowsingSession) -> None:
        try:
            await self.redis.set(
                KEY_PREFIX + session.sid, session.model_dump_json(), ex=self.ttl
            )
        except RedisError as exc:
            logger.error("session store write failed: %s", exc)
            raise DependencyFailure("Session store unavailable") from exc

    async def clear(self, sid: str) -> None:
        try:
            await self.redis.delete(KEY_PREFIX + sid)
        except RedisError as exc:
            raise DependencyFailure("Session store unavailable") from exc


def get_store(request: Request) -> SessionStore:
    return SessionStore(request.app.state.redis, get_settings().session_ttl_secs)


async def get_browsing_session(
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_store),
) -> BrowsingSession:
    """Load the caller's session, issuing a new ``sid`` cookie when absent."""

    sid = request.cookies.get(COOKIE_NAME)
    if not sid:
        sid = uuid.uuid4().hex
        response.set_cookie(
            COOKIE_NAME,
            sid,
            max_age=get_settings().session_ttl_secs,
            httponly=True,
            samesite="lax",
            path="/",
        )
    return await store.load(sid)
