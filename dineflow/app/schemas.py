# schemas.py

"""Pydantic models for API payloads and responses."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .domain.order_status import OrderStatus
from .domain.roles import Role
from .domain.table_status import TableLocation, TableStatus


class _Out(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --- guest -----------------------------------------------------------------


class CartAddIn(BaseModel):
    """Add ``quantity`` of a menu item to the session cart."""

    menu_item_id: int
    quantity: int = 1
    notes: str = ""


class CartUpdateIn(BaseModel):
    quantity: int


class PlaceOrderIn(BaseModel):
    phone: str = ""
    notes: str = ""


class CustomerLoginIn(BaseModel):
    phone: str


class CartLineOut(_Out):
    menu_item_id: int
    name: str
    price: float
    quantity: int
    notes: str
    subtotal: float


class CartOut(_Out):
    items: List[CartLineOut]
    total: float


# --- auth ------------------------------------------------------------------


class LoginIn(BaseModel):
    username: str
    password: str


class ChangePasswordIn(BaseModel):
    current_password: str
    new_password: str


# --- orders ----------------------------------------------------------------


class StatusIn(BaseModel):
    status: str


class OrderItemOut(_Out):
    menu_item_id: Optional[int] = None
    name: str
    price: float
    quantity: int
    notes: str = ""
    subtotal: float


class StatusEventOut(_Out):
    status: OrderStatus
    at: datetime
    updated_by: Optional[int] = None


class OrderStatusOut(_Out):
    id: int
    order_number: str
    status: OrderStatus


class OrderOut(_Out):
    """Full order as shown to staff and to the customer who placed it."""

    id: int
    restaurant_id: int
    order_number: str
    table_id: Optional[int] = None
    customer_id: Optional[int] = None
    customer_phone: str
    status: OrderStatus
    payment_status: str
    payment_method: str
    notes: str = ""
    subtotal: float
    tax: float
    total: float
    served_by: Optional[int] = None
    placed_at: datetime
    completed_at: Optional[datetime] = None
    preparation_minutes: Optional[int] = None
    items: List[OrderItemOut]
    history: List[StatusEventOut]


# --- menu ------------------------------------------------------------------


class MenuItemIn(BaseModel):
    name: str
    price: Decimal
    description: str = ""
    category: str = "other"
    images: List[str] = Field(default_factory=list)
    ar_android: Optional[str] = None
    ar_ios: Optional[str] = None
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    spicy_level: int = 0
    preparation_time: int = 15
    is_available: bool = True
    tags: List[str] = Field(default_factory=list)
    allergens: List[str] = Field(default_factory=list)
    sort_order: int = 0


class MenuItemPatch(BaseModel):
    name: Optional[str] = None
    price: Optional[Decimal] = None
    description: Optional[str] = None
    category: Optional[str] = None
    images: Optional[List[str]] = None
    ar_android: Optional[str] = None
    ar_ios: Optional[str] = None
    is_vegetarian: Optional[bool] = None
    is_vegan: Optional[bool] = None
    is_gluten_free: Optional[bool] = None
    spicy_level: Optional[int] = None
    preparation_time: Optional[int] = None
    is_available: Optional[bool] = None
    tags: Optional[List[str]] = None
    allergens: Optional[List[str]] = None
    sort_order: Optional[int] = None


class MenuItemOut(_Out):
    id: int
    name: str
    description: str = ""
    price: float
    category: str
    category_name: str
    images: List[str] = []
    ar_android: Optional[str] = None
    ar_ios: Optional[str] = None
    is_vegetarian: bool
    is_vegan: bool
    is_gluten_free: bool
    spicy_level: int
    preparation_time: int
    is_available: bool
    tags: List[str] = []
    allergens: List[str] = []
    sort_order: int


# --- tables ----------------------------------------------------------------


class TableIn(BaseModel):
    table_number: str
    capacity: int = 4
    location: str = TableLocation.INDOOR.value
    notes: Optional[str] = None


class TableStatusIn(BaseModel):
    status: str


class TableOut(_Out):
    id: int
    table_number: str
    capacity: int
    location: TableLocation
    status: TableStatus
    is_active: bool
    is_available: bool
    qr_url: Optional[str] = None
    current_order_id: Optional[int] = None
    notes: Optional[str] = None


# --- users and restaurants -------------------------------------------------


class StaffIn(BaseModel):
    username: str
    password: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class UserOut(_Out):
    id: int
    username: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Role
    restaurant_id: Optional[int] = None
    is_active: bool
    last_login: Optional[datetime] = None


class RestaurantIn(BaseModel):
    """New restaurant plus the credentials of its first admin."""

    name: str
    phone: str
    email: str
    subdomain: Optional[str] = None
    description: Optional[str] = None
    address: dict[str, Any] = Field(default_factory=dict)
    currency: str = "$"
    timezone: str = "UTC"
    order_prefix: str = "ORD"
    admin_username: str
    admin_password: str
    admin_name: Optional[str] = None
    admin_email: Optional[str] = None


class RestaurantPatch(BaseModel):
    name: Optional[str] = None
    subdomain: Optional[str] = None
    description: Optional[str] = None
    address: Optional[dict[str, Any]] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    logo: Optional[str] = None
    is_active: Optional[bool] = None
    currency: Optional[str] = None
    timezone: Optional[str] = None
    order_prefix: Optional[str] = None


class RestaurantOut(_Out):
    id: int
    name: str
    slug: str
    subdomain: str
    description: Optional[str] = None
    address: dict[str, Any] = {}
    phone: str
    email: str
    logo: Optional[str] = None
    is_active: bool
    currency: str
    timezone: str
    order_prefix: str
    created_at: Optional[datetime] = None


def dump(schema: type[BaseModel], obj: Any) -> dict[str, Any]:
    """Validate ``obj`` against ``schema`` and return JSON-ready data."""

    return schema.model_validate(obj).model_dump(mode="json")


def dump_all(schema: type[BaseModel], objs: Any) -> list[dict[str, Any]]:
    return [dump(schema, obj) for obj in objs]
