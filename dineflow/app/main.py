# main.py

"""FastAPI application wiring routers, middleware and error envelopes."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.asyncio import from_url
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_settings

from . import db as app_db
from .errors import DependencyFailure, DomainError
from .middlewares import HttpErrorCounterMiddleware, LoggingMiddleware, RequestIdMiddleware
from .obs import capture_exception, configure_logging, init_sentry
from .routes_admin import router as admin_router
from .routes_auth import router as auth_router
from .routes_guest import router as guest_router
from .routes_metrics import router as metrics_router
from .routes_staff import router as staff_router
from .routes_superadmin import router as superadmin_router
from .utils.responses import err, error_response, ok

settings = get_settings()
configure_logging(settings.log_level.upper())
logger = logging.getLogger("api")
init_sentry(env=settings.env)

app = FastAPI(title="Dineflow API", version="1.0.0")
app.state.redis = from_url(settings.redis_url, decode_responses=True)

app.add_middleware(HttpErrorCounterMiddleware)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(LoggingMiddleware)

app.include_router(guest_router)
app.include_router(auth_router)
app.include_router(staff_router)
app.include_router(admin_router)
app.include_router(superadmin_router)
app.include_router(metrics_router)


def _extra(request: Request, status: int) -> dict:
    return {"status": status, "route": request.url.path}


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    logger.warning(exc.message, extra=_extra(request, exc.status_code))
    return error_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning("request validation failed", extra=_extra(request, 422))
    body = err(
        "VALIDATION_FAILED",
        "Invalid request",
        details={"errors": jsonable_encoder(exc.errors())},
    )
    return JSONResponse(body, status_code=422)


@app.exception_handler(OperationalError)
async def database_error_handler(request: Request, exc: OperationalError):
    logger.error("database unavailable: %s", exc.orig, extra=_extra(request, 503))
    return error_response(DependencyFailure("Database unavailable"))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(exc.detail, extra=_extra(request, exc.status_code))
    code = {401: "UNAUTHORIZED", 403: "FORBIDDEN", 404: "NOT_FOUND"}.get(
        exc.status_code, exc.status_code
    )
    return JSONResponse(
        err(code, exc.detail), status_code=exc.status_code, headers=exc.headers
    )


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", extra=_extra(request, 500))
    capture_exception(exc)
    return JSONResponse(err("INTERNAL_ERROR", "Internal Server Error"), status_code=500)


@app.get("/health")
async def health() -> dict:
    return ok({"status": "ok"})


@app.on_event("shutdown")
async def close_connections() -> None:
    if app_db.engine is not None:
        await app_db.engine.dispose()
    await app.state.redis.aclose()
