"""Domain error taxonomy.

Every failure the ordering core reports is one of the classes below. The
HTTP layer maps them onto status codes and the failure envelope in
:func:`dineflow.app.utils.responses.err`; nothing below depends on FastAPI.
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base class for failures surfaced to API callers."""

    code = "ERROR"
    status_code = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFound(DomainError):
    """Entity absent or outside the caller's tenant.

    Both cases use the same message so that callers cannot probe for the
    existence of another tenant's records.
    """

    code = "NOT_FOUND"
    status_code = 404


class ValidationFailure(DomainError):
    """Missing field, unknown enumeration value or out-of-range number."""

    code = "VALIDATION_FAILED"
    status_code = 422


class InvalidTransition(DomainError):
    """Requested order status is not reachable from the current one."""

    code = "INVALID_TRANSITION"
    status_code = 409


class ConflictFailure(DomainError):
    """Uniqueness violation: order number, table number, username, slug."""

    code = "CONFLICT"
    status_code = 409


class DependencyFailure(DomainError):
    """Backing store unavailable."""

    code = "DEPENDENCY_FAILURE"
    status_code = 503


__all__ = [
    "DomainError",
    "NotFound",
    "ValidationFailure",
    "InvalidTransition",
    "ConflictFailure",
    "DependencyFailure",
]
