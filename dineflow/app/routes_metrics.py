# routes_metrics.py

"""Prometheus metrics and /metrics endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

orders_created_total = Counter("orders_created_total", "Total orders created")
orders_created_total.inc(0)

order_transitions_total = Counter(
    "order_transitions_total", "Order status changes", ["status"]
)

order_number_conflicts_total = Counter(
    "order_number_conflicts_total",
    "Order number collisions resolved by recounting",
)
order_number_conflicts_total.inc(0)

table_status_changes_total = Counter(
    "table_status_changes_total", "Manual table status changes", ["status"]
)

http_errors_total = Counter("http_errors_total", "Total HTTP errors", ["status"])
http_errors_total.labels(status="0").inc(0)

router = APIRouter()


@router.get("/metrics")
async def metrics_endpoint() -> Response:
    """Expose Prometheus metrics."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
