import pathlib
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from dineflow.app.domain.table_status import qr_url
from dineflow.app.domain.totals import TAX_RATE, compute_totals
from dineflow.app.models import Order, OrderItem, slugify


def test_compute_totals():
    totals = compute_totals([(Decimal("12.50"), 2)])
    assert totals.subtotal == Decimal("25.00")
    assert totals.tax == Decimal("2.50")
    assert totals.total == Decimal("27.50")


def test_totals_round_to_cents():
    subtotal, tax, total = compute_totals([(Decimal("0.35"), 3), ("1.99", 1)])
    assert subtotal == Decimal("3.04")
    assert tax == Decimal("0.30")
    assert total == subtotal + tax
    assert TAX_RATE == Decimal("0.10")


def test_empty_totals():
    assert compute_totals([]) == (Decimal("0.00"), Decimal("0.00"), Decimal("0.00"))


def test_order_recompute_totals():
    order = Order(
        items=[
            OrderItem(name="Paella", price=Decimal("12.50"), quantity=2, position=0),
            OrderItem(name="Tea", price=Decimal("3.00"), quantity=1, position=1),
        ]
    )
    order.recompute_totals()
    assert [line.subtotal for line in order.items] == [Decimal("25.00"), Decimal("3.00")]
    assert order.subtotal == Decimal("28.00")
    assert order.tax == Decimal("2.80")
    assert order.total == Decimal("30.80")


def test_preparation_minutes():
    placed = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
    order = Order(placed_at=placed)
    assert order.preparation_minutes is None
    order.completed_at = placed + timedelta(minutes=27, seconds=20)
    assert order.preparation_minutes == 27
    # naive values read back from SQLite are treated as UTC
    order.completed_at = (placed + timedelta(minutes=5)).replace(tzinfo=None)
    assert order.preparation_minutes == 5


def test_slugify():
    assert slugify("Casa Verde") == "casa-verde"
    assert slugify("  Joe's  Diner & Bar ") == "joes-diner-bar"
    assert slugify("A -- B") == "a-b"


def test_qr_url():
    assert qr_url("http://qr.test/", "casa-verde", "5") == "http://qr.test/r/casa-verde/table/5"
