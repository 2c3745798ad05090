"""Repository helpers for dining tables."""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.table_status import TableLocation, TableStatus, qr_url
from ..errors import ConflictFailure, NotFound, ValidationFailure
from ..models import Order, Restaurant, Table
from ..routes_metrics import table_status_changes_total
from ..utils.retry import read_retry

logger = logging.getLogger("dineflow")


def _parse_status(value: str) -> TableStatus:
    try:
        return TableStatus(value)
    except ValueError as exc:
        raise ValidationFailure(f"unknown table status {value!r}") from exc


@read_retry
async def list_tables(session: AsyncSession, restaurant_id: int) -> List[Table]:
    result = await session.execute(
        select(Table).where(Table.restaurant_id == restaurant_id).order_by(Table.table_number)
    )
    return list(result.scalars())


@read_retry
async def get_table(session: AsyncSession, restaurant_id: int, table_id: int) -> Table:
    table = await session.get(Table, table_id)
    if table is None or table.restaurant_id != restaurant_id:
        raise NotFound("Table not found")
    return table


@read_retry
async def find_by_number(
    session: AsyncSession, restaurant_id: int, table_number: str, active_only: bool = False
) -> Table:
    stmt = select(Table).where(
        Table.restaurant_id == restaurant_id, Table.table_number == table_number
    )
    if active_only:
        stmt = stmt.where(Table.is_active.is_(True))
    table = (await session.execute(stmt)).scalar_one_or_none()
    if table is None:
        raise NotFound("Table not found")
    return table


async def create_table(
    session: AsyncSession,
    restaurant: Restaurant,
    base_url: str,
    table_number: str,
    capacity: int = 4,
    location: str = TableLocation.INDOOR.value,
    notes: str | None = None,
) -> Table:
    """Create a table and store the URL its QR code encodes."""

    table_number = (table_number or "").strip()
    if not table_number:
        raise ValidationFailure("table_number is required")
    if capacity is None or capacity < 1:
        raise ValidationFailure("capacity must be at least 1")
    try:
        location = TableLocation(location)
    except ValueError as exc:
        raise ValidationFailure(f"unknown location {location!r}") from exc

    existing = await session.execute(
        select(Table.id).where(
            Table.restaurant_id == restaurant.id, Table.table_number == table_number
        )
    )
    if existing.first() is not None:
        raise ConflictFailure("Table number already exists")

    table = Table(
        restaurant_id=restaurant.id,
        table_number=table_number,
        capacity=capacity,
        location=location,
        notes=notes,
        status=TableStatus.AVAILABLE,
        qr_url=qr_url(base_url, restaurant.slug, table_number),
    )
    session.add(table)
    await session.commit()
    return table


async def set_status(
    session: AsyncSession, restaurant_id: int, table_id: int, status: str
) -> Table:
    """Set a table's status directly.

    Setting ``available`` also drops the current order reference; the order
    itself is left untouched.
    """

    target = _parse_status(status)
    table = await get_table(session, restaurant_id, table_id)
    table.status = target
    if target == TableStatus.AVAILABLE:
        table.current_order_id = None
    await session.commit()
    table_status_changes_total.labels(status=target.value).inc()
    logger.info(
        "table.status %s",
        target.value,
        extra={"event": "table.status", "tenant": restaurant_id, "table_id": table.id},
    )
    return table


async def delete_table(session: AsyncSession, restaurant_id: int, table_id: int) -> None:
    """Delete a table regardless of its state; its orders keep no table."""

    table = await get_table(session, restaurant_id, table_id)
    await session.execute(
        update(Order).where(Order.table_id == table.id).values(table_id=None)
    )
    await session.delete(table)
    await session.commit()
