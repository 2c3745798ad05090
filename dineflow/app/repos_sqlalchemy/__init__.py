"""SQLAlchemy-backed repository implementations.

All tenants share one schema, so every repository helper receives the
restaurant id it acts for and filters on it. ``TenantScope`` derives that id
from the caller and turns out-of-tenant lookups into ``NotFound``.
"""

from __future__ import annotations

from typing import Any, TypeVar

from ..domain.roles import Principal
from ..errors import NotFound, ValidationFailure

T = TypeVar("T")


class TenantScope:
    """Helpers confining statements and lookups to one restaurant."""

    @staticmethod
    def restaurant_for(principal: Principal, restaurant_id: int | None = None) -> int:
        """Return the restaurant id ``principal`` may act on.

        Superadmins must name the restaurant explicitly. Everyone else is
        pinned to their own; naming another restaurant is reported as not
        found.
        """

        if principal.is_superadmin:
            if restaurant_id is None:
                raise ValidationFailure("restaurant_id is required")
            return restaurant_id
        if principal.restaurant_id is None:
            raise NotFound("Restaurant not found")
        if restaurant_id is not None and restaurant_id != principal.restaurant_id:
            raise NotFound("Restaurant not found")
        return principal.restaurant_id

    @staticmethod
    def where(stmt: Any, model: Any, restaurant_id: int) -> Any:
        return stmt.where(model.restaurant_id == restaurant_id)

    @staticmethod
    def owned(obj: T | None, restaurant_id: int, what: str = "Resource") -> T:
        if obj is None or obj.restaurant_id != restaurant_id:
            raise NotFound(f"{what} not found")
        return obj


__all__ = ["TenantScope"]
