"""SQLAlchemy implementation of the menu repository."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFound, ValidationFailure
from ..models import MENU_CATEGORIES, MenuItem, OrderItem
from ..utils.retry import read_retry

EDITABLE = {
    "name",
    "description",
    "price",
    "category",
    "images",
    "ar_android",
    "ar_ios",
    "is_vegetarian",
    "is_vegan",
    "is_gluten_free",
    "spicy_level",
    "preparation_time",
    "is_available",
    "tags",
    "allergens",
    "sort_order",
}


def _check(values: dict[str, Any]) -> None:
    if "price" in values and values["price"] is not None and values["price"] < 0:
        raise ValidationFailure("price must not be negative")
    if "category" in values and values["category"] not in MENU_CATEGORIES:
        raise ValidationFailure(f"unknown category {values['category']!r}")
    if "spicy_level" in values and not 0 <= (values["spicy_level"] or 0) <= 5:
        raise ValidationFailure("spicy_level must be between 0 and 5")


class MenuRepoSQL:
    """Menu items of one restaurant."""

    @read_retry
    async def list_items(
        self,
        session: AsyncSession,
        restaurant_id: int,
        include_unavailable: bool = False,
        category: str | None = None,
    ) -> list[MenuItem]:
        """Return menu items ordered by category, sort order and name."""
        stmt = select(MenuItem).where(MenuItem.restaurant_id == restaurant_id)
        if not include_unavailable:
            stmt = stmt.where(MenuItem.is_available.is_(True))
        if category:
            stmt = stmt.where(MenuItem.category == category)
        stmt = stmt.order_by(MenuItem.category, MenuItem.sort_order, MenuItem.name)
        result = await session.execute(stmt)
        return list(result.scalars())

    async def grouped(self, session: AsyncSession, restaurant_id: int) -> dict[str, list[MenuItem]]:
        """Return available items keyed by category."""
        groups: dict[str, list[MenuItem]] = {}
        for item in await self.list_items(session, restaurant_id):
            groups.setdefault(item.category, []).append(item)
        return groups

    async def lookup(self, session: AsyncSession, item_id: int) -> MenuItem | None:
        """Return the item with ``item_id`` from any restaurant, or ``None``."""
        return await session.get(MenuItem, item_id)

    @read_retry
    async def get(self, session: AsyncSession, restaurant_id: int, item_id: int) -> MenuItem:
        item = await session.get(MenuItem, item_id)
        if item is None or item.restaurant_id != restaurant_id:
            raise NotFound("Menu item not found")
        return item

    async def create(self, session: AsyncSession, restaurant_id: int, values: dict[str, Any]) -> MenuItem:
        data = {k: v for k, v in values.items() if k in EDITABLE}
        _check(data)
        item = MenuItem(restaurant_id=restaurant_id, **data)
        session.add(item)
        await session.commit()
        return item

    async def update(
        self, session: AsyncSession, restaurant_id: int, item_id: int, values: dict[str, Any]
    ) -> MenuItem:
        item = await self.get(session, restaurant_id, item_id)
        data = {k: v for k, v in values.items() if k in EDITABLE}
        _check(data)
        for key, value in data.items():
            setattr(item, key, value)
        await session.commit()
        return item

    async def toggle_availability(
        self, session: AsyncSession, restaurant_id: int, item_id: int
    ) -> MenuItem:
        item = await self.get(session, restaurant_id, item_id)
        item.is_available = not item.is_available
        await session.commit()
        return item

    async def delete(self, session: AsyncSession, restaurant_id: int, item_id: int) -> None:
        """Delete an item; past order lines keep their captured name and price."""
        item = await self.get(session, restaurant_id, item_id)
        await session.execute(
            update(OrderItem).where(OrderItem.menu_item_id == item.id).values(menu_item_id=None)
        )
        await session.delete(item)
        await session.commit()


menu_repo = MenuRepoSQL()
