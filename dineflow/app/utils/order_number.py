"""Per-restaurant, per-day order numbers.

Numbers look like ``ORD-20240315-0007``: the restaurant's prefix, the local
calendar day and a four digit sequence that restarts every day. The
sequence is derived from a count of the day's orders, so two concurrent
checkouts can compute the same value; the unique constraint on
``orders(restaurant_id, order_number)`` rejects the loser, which recounts.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Order, Restaurant, utcnow

DEFAULT_PREFIX = "ORD"

logger = logging.getLogger("dineflow")


def format_order_number(prefix: str | None, day: date, seq: int) -> str:
    return f"{prefix or DEFAULT_PREFIX}-{day:%Y%m%d}-{seq:04d}"


def restaurant_zone(restaurant: Restaurant) -> ZoneInfo:
    name = getattr(restaurant, "timezone", None) or "UTC"
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("unknown timezone %s; using UTC", name, extra={"tenant": restaurant.id})
        return ZoneInfo("UTC")


def day_bounds(at: datetime, zone: ZoneInfo) -> tuple[date, datetime, datetime]:
    """Return the local day of ``at`` and its UTC ``[start, end)`` window."""

    if at.tzinfo is None:
        at = at.replace(tzinfo=timezone.utc)
    local_day = at.astimezone(zone).date()
    start = datetime.combine(local_day, time.min, tzinfo=zone)
    end = start + timedelta(days=1)
    return local_day, start.astimezone(timezone.utc), end.astimezone(timezone.utc)


async def generate_order_number(
    session: AsyncSession, restaurant: Restaurant, at: datetime | None = None
) -> str:
    """Return the next order number for ``restaurant`` on the day of ``at``.

    The prefix is read from the restaurant at call time, so changing it only
    affects numbers generated afterwards.
    """
    at = at or utcnow()
    local_day, start, end = day_bounds(at, restaurant_zone(restaurant))
    stmt = select(func.count(Order.id)).where(
        Order.restaurant_id == restaurant.id,
        Order.created_at >= start,
        Order.created_at < end,
    )
    count = (await session.execute(stmt)).scalar_one()
    return format_order_number(restaurant.order_prefix, local_day, count + 1)
