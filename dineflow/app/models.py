"""Database models for the shared multi-tenant schema.

Every tenant-owned row carries ``restaurant_id``; isolation is enforced by the
repositories in :mod:`dineflow.app.repos_sqlalchemy`, not by separate
databases. Order totals are recomputed by a ``before_flush`` hook so that any
write path, including ad hoc scripts, keeps them consistent with the lines.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    event,
    func,
)
from sqlalchemy.orm import Session, declarative_base, relationship

from .domain.order_status import OrderStatus
from .domain.roles import Role
from .domain.table_status import TableLocation, TableStatus
from .domain.totals import compute_totals, line_subtotal

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps read back from SQLite."""

    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _values(enum_cls):
    return [member.value for member in enum_cls]


def _enum(enum_cls):
    return Enum(
        enum_cls,
        values_callable=_values,
        native_enum=False,
        validate_strings=True,
        length=20,
    )


_SLUG_STRIP = re.compile(r"[^\w\s-]", re.ASCII)
_SLUG_SPACE = re.compile(r"\s+")
_SLUG_DASHES = re.compile(r"--+")


def slugify(name: str) -> str:
    """Derive a URL slug from a restaurant name."""

    slug = _SLUG_STRIP.sub("", name.strip().lower())
    slug = _SLUG_SPACE.sub("-", slug)
    slug = _SLUG_DASHES.sub("-", slug)
    return slug.strip("-")


MENU_CATEGORIES = {
    "appetizer": "Appetizers",
    "main_course": "Main Course",
    "dessert": "Desserts",
    "beverage": "Beverages",
    "special": "Specials",
    "other": "Other",
}
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
PAYMENT_METHODS = ("cash", "card", "online", "other")


class Restaurant(Base):
    """A tenant."""

    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(120), unique=True, nullable=False)
    subdomain = Column(String(120), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    address = Column(JSON, nullable=False, default=dict)
    phone = Column(String(32), nullable=False)
    email = Column(String(255), nullable=False)
    logo = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Integer, nullable=True)
    currency = Column(String(8), nullable=False, default="$")
    timezone = Column(String(64), nullable=False, default="UTC")
    order_prefix = Column(String(16), nullable=False, default="ORD")

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )


class User(Base):
    """Platform, restaurant and customer accounts in one table."""

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "username"),
        UniqueConstraint("restaurant_id", "phone", "role"),
    )

    id = Column(Integer, primary_key=True)
    # Unique per restaurant; staff usernames are also checked globally.
    username = Column(String(64), nullable=False, index=True)
    password_hash = Column(String, nullable=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)
    role = Column(_enum(Role), nullable=False, default=Role.CUSTOMER)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())


class Table(Base):
    """Dining table addressed by a QR code."""

    __tablename__ = "tables"
    __table_args__ = (UniqueConstraint("restaurant_id", "table_number"),)

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    table_number = Column(String(32), nullable=False)
    capacity = Column(Integer, nullable=False, default=4)
    location = Column(_enum(TableLocation), nullable=False, default=TableLocation.INDOOR)
    status = Column(_enum(TableStatus), nullable=False, default=TableStatus.AVAILABLE)
    is_active = Column(Boolean, nullable=False, default=True)
    qr_url = Column(String, nullable=True)
    # Not a foreign key: orders already reference tables.
    current_order_id = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    @property
    def is_available(self) -> bool:
        return self.status == TableStatus.AVAILABLE and bool(self.is_active)


class MenuItem(Base):
    """Orderable dish or drink."""

    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String(20), nullable=False, default="other")
    images = Column(JSON, nullable=False, default=list)
    ar_android = Column(String, nullable=True)
    ar_ios = Column(String, nullable=True)
    is_vegetarian = Column(Boolean, nullable=False, default=False)
    is_vegan = Column(Boolean, nullable=False, default=False)
    is_gluten_free = Column(Boolean, nullable=False, default=False)
    spicy_level = Column(Integer, nullable=False, default=0)
    preparation_time = Column(Integer, nullable=False, default=15)
    is_available = Column(Boolean, nullable=False, default=True)
    tags = Column(JSON, nullable=False, default=list)
    allergens = Column(JSON, nullable=False, default=list)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    @property
    def category_name(self) -> str:
        return MENU_CATEGORIES.get(self.category, "Other")


class Order(Base):
    """A placed order with its copied lines and status history."""

    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "order_number"),
        Index("ix_orders_restaurant_status", "restaurant_id", "status"),
        Index("ix_orders_restaurant_created", "restaurant_id", "created_at"),
    )

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    table_id = Column(Integer, ForeignKey("tables.id", ondelete="SET NULL"), nullable=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    customer_phone = Column(String(32), nullable=False)
    order_number = Column(String(40), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(_enum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    payment_status = Column(String(16), nullable=False, default="pending")
    payment_method = Column(String(16), nullable=False, default="cash")
    notes = Column(Text, nullable=False, default="")
    served_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    placed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items = relationship(
        "OrderItem",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    history = relationship(
        "OrderStatusEvent",
        order_by="OrderStatusEvent.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def recompute_totals(self) -> None:
        for line in self.items:
            line.subtotal = line_subtotal(line.price, line.quantity)
        totals = compute_totals((line.price, line.quantity) for line in self.items)
        self.subtotal, self.tax, self.total = totals

    @property
    def preparation_minutes(self) -> int | None:
        """Whole minutes between placement and completion."""

        if self.completed_at is None or self.placed_at is None:
            return None
        delta = as_utc(self.completed_at) - as_utc(self.placed_at)
        return round(delta.total_seconds() / 60)


class OrderItem(Base):
    """Snapshot of a cart line at checkout."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    notes = Column(Text, nullable=False, default="")
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)


class OrderStatusEvent(Base):
    """Append-only status history entry."""

    __tablename__ = "order_status_events"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    status = Column(_enum(OrderStatus), nullable=False)
    at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)


@event.listens_for(Session, "before_flush")
def _recompute_order_totals(session, flush_context, instances):  # type: ignore[no-untyped-def]
    orders = {obj for obj in session.new if isinstance(obj, Order)}
    orders.update(obj for obj in session.dirty if isinstance(obj, Order))
    for order in orders:
        order.recompute_totals()


__all__ = [
    "Base",
    "Restaurant",
    "User",
    "Table",
    "MenuItem",
    "Order",
    "OrderItem",
    "OrderStatusEvent",
    "slugify",
    "utcnow",
    "as_utc",
    "MENU_CATEGORIES",
    "PAYMENT_STATUSES",
    "PAYMENT_METHODS",
]
