import logging
import pathlib
import sys

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from prometheus_client import REGISTRY
from starlette.responses import JSONResponse

from dineflow.app.middlewares.http_errors import HttpErrorCounterMiddleware


@pytest.mark.anyio
async def test_health(client):
    resp = await client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "data": {"status": "ok"}}
    assert resp.headers["X-Request-ID"] == "abc-123"


@pytest.mark.anyio
async def test_metrics_exposed(client):
    resp = await client.get("/metrics")
    assert resp.status_code == 200
    body = resp.text
    for name in (
        "orders_created_total",
        "order_number_conflicts_total",
        "http_errors_total",
    ):
        assert name in body


@pytest.mark.anyio
async def test_error_responses_are_counted(client, seed):
    before = REGISTRY.get_sample_value("http_errors_total", {"status": "404"}) or 0.0
    resp = await client.get("/r/nowhere/menu")
    assert resp.status_code == 404
    assert REGISTRY.get_sample_value("http_errors_total", {"status": "404"}) == before + 1


@pytest.mark.anyio
async def test_request_validation_envelope(client, seed):
    resp = await client.post("/auth/login", json={"username": "x"})
    assert resp.status_code == 422
    body = resp.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "VALIDATION_FAILED"
    assert body["error"]["details"]["errors"]


@pytest.mark.anyio
async def test_server_errors_are_logged(caplog):
    mini = FastAPI()
    mini.add_middleware(HttpErrorCounterMiddleware)

    @mini.get("/gone")
    async def gone():
        return JSONResponse({}, status_code=404)

    @mini.get("/down")
    async def down():
        return JSONResponse({}, status_code=503)

    before = REGISTRY.get_sample_value("http_errors_total", {"status": "503"}) or 0.0
    async with AsyncClient(transport=ASGITransport(app=mini), base_url="http://test") as c:
        with caplog.at_level(logging.WARNING, logger="dineflow"):
            assert (await c.get("/gone")).status_code == 404
            assert (await c.get("/down")).status_code == 503

    events = [r for r in caplog.records if getattr(r, "event", None) == "http.error"]
    assert [(r.path, r.status) for r in events] == [("/down", 503)]
    assert REGISTRY.get_sample_value("http_errors_total", {"status": "503"}) == before + 1
