"""Retry helper for read-only repository calls."""

from __future__ import annotations

import asyncio
import functools
import logging

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings

from ..errors import DependencyFailure

logger = logging.getLogger("dineflow")

BASE_DELAY = 0.05


def read_retry(fn):
    """Retry ``fn`` on transient database errors.

    ``fn`` must be a coroutine function receiving an ``AsyncSession``
    positionally. The session is rolled back between attempts; after
    ``read_retries`` failures a :class:`DependencyFailure` is raised.
    """

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        session = next(a for a in args if isinstance(a, AsyncSession))
        attempts = max(get_settings().read_retries, 1)
        delay = BASE_DELAY
        for attempt in range(attempts):
            try:
                return await fn(*args, **kwargs)
            except OperationalError as exc:
                logger.warning(
                    "read %s failed (attempt %d/%d): %s",
                    fn.__name__,
                    attempt + 1,
                    attempts,
                    exc.orig,
                )
                await session.rollback()
                if attempt < attempts - 1:
                    await asyncio.sleep(delay)
                    delay *= 2
        raise DependencyFailure("Database unavailable")

    return wrapper
