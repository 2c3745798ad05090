"""Dining table states and the QR entry URL."""

from __future__ import annotations

from enum import Enum


class TableStatus(str, Enum):
    """Occupancy states for a dining table.

    Any state may be set directly by an admin. Order placement moves a table
    to ``OCCUPIED`` and a terminal order status moves it back to
    ``AVAILABLE``.
    """

    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    CLEANING = "cleaning"


class TableLocation(str, Enum):
    INDOOR = "indoor"
    OUTDOOR = "outdoor"
    PATIO = "patio"
    TERRACE = "terrace"
    VIP = "vip"


def qr_url(base_url: str, restaurant_slug: str, table_number: str) -> str:
    """Return the URL a table's QR code encodes."""

    return f"{base_url.rstrip('/')}/r/{restaurant_slug}/table/{table_number}"
