"""Tests for the analytics calculations over in-memory orders."""

from datetime import UTC, datetime, timedelta

import pytest
from sales.order.order import Order
from sales.reporting.analytics import ReportingWindow, rank_products, summarize


def _item(product_id, quantity, unit_price=10.0, sku=None, name=None):
    return {
        "product_id": product_id,
        "quantity": quantity,
        "unit_price": unit_price,
        "sku": sku or product_id.upper(),
        "name": {"en": name or product_id},
    }


@pytest.fixture()
def make_order(order_payload):
    def _make(items, status=None, **overrides):
        order = Order.place(**order_payload(items_data=items, tax=0, shipping=0, discount=0, **overrides))
        if status:
            order.update_status(status)
        return order

    return _make


class TestSummarize:
    def test_empty(self):
        summary = summarize([])
        assert summary.total_orders == 0
        assert summary.total_revenue == 0.0
        assert summary.average_order_value == 0.0

    def test_counts_and_revenue(self, make_order):
        orders = [
            make_order([_item("a", 1, 100.0)]),
            make_order([_item("a", 2, 100.0)], status="delivered"),
            make_order([_item("b", 1, 50.0)], status="cancelled"),
            make_order([_item("b", 1, 25.0)], status="confirmed"),
        ]
        summary = summarize(orders)
        assert summary.total_orders == 4
        assert summary.pending_count == 1
        assert summary.delivered_count == 1
        assert summary.cancelled_count == 1

    def test_revenue_includes_cancelled_orders(self, make_order):
        orders = [
            make_order([_item("a", 1, 100.0)], status="delivered"),
            make_order([_item("a", 1, 50.0)], status="cancelled"),
        ]
        summary = summarize(orders)
        assert summary.total_revenue == 150.0
        assert summary.average_order_value == 75.0

    def test_average_is_rounded_to_two_places(self, make_order):
        orders = [
            make_order([_item("a", 1, 10.0)]),
            make_order([_item("a", 1, 10.0)]),
            make_order([_item("a", 1, 10.01)]),
        ]
        assert summarize(orders).average_order_value == 10.0


class TestRankProducts:
    def test_cancelled_orders_are_excluded(self, make_order):
        orders = [
            make_order([_item("product-a", 3)], status="delivered"),
            make_order([_item("product-a", 5)], status="cancelled"),
        ]
        ranking = rank_products(orders)
        assert len(ranking) == 1
        assert ranking[0].product_id == "product-a"
        assert ranking[0].total_quantity == 3

    def test_sorted_by_quantity_descending(self, make_order):
        orders = [
            make_order([_item("a", 1), _item("b", 4)]),
            make_order([_item("c", 2), _item("a", 1)]),
        ]
        assert [p.product_id for p in rank_products(orders)] == ["b", "a", "c"]

    def test_ties_keep_first_seen_order(self, make_order):
        orders = [make_order([_item("x", 2), _item("y", 2), _item("z", 2)])]
        assert [p.product_id for p in rank_products(orders)] == ["x", "y", "z"]

    def test_aggregates_revenue_and_line_count(self, make_order):
        orders = [
            make_order([_item("a", 2, 15.0)]),
            make_order([_item("a", 1, 15.0), _item("a", 1, 12.0)]),
        ]
        (product,) = rank_products(orders)
        assert product.total_quantity == 4
        assert product.total_revenue == 57.0
        assert product.order_count == 3

    def test_snapshot_comes_from_first_line(self, make_order):
        orders = [
            make_order([_item("a", 1, sku="ARG-100", name="Argan oil")]),
            make_order([_item("a", 1, sku="ARG-100-V2", name="Argan oil (new)")]),
        ]
        (product,) = rank_products(orders)
        assert product.sku == "ARG-100"
        assert product.name_snapshot == {"en": "Argan oil"}

    def test_limit(self, make_order):
        orders = [make_order([_item(f"p{n}", n + 1) for n in range(12)])]
        ranking = rank_products(orders)
        assert len(ranking) == 10
        assert ranking[0].product_id == "p11"
        assert len(rank_products(orders, limit=3)) == 3


class TestReportingWindow:
    def test_trailing_defaults_to_thirty_days(self):
        now = datetime(2026, 5, 31, 12, 0, tzinfo=UTC)
        window = ReportingWindow.trailing(now=now)
        assert window.end == now
        assert window.start == now - timedelta(days=30)

    def test_naive_datetimes_are_utc(self):
        window = ReportingWindow(start=datetime(2026, 1, 1), end=datetime(2026, 1, 31))
        assert window.start.tzinfo is UTC
        assert window.contains(datetime(2026, 1, 15, tzinfo=UTC))

    def test_bounds_are_inclusive(self):
        start = datetime(2026, 1, 1, tzinfo=UTC)
        end = datetime(2026, 1, 31, tzinfo=UTC)
        window = ReportingWindow(start=start, end=end)
        assert window.contains(start)
        assert window.contains(end)
        assert not window.contains(end + timedelta(microseconds=1))

    def test_start_after_end_is_rejected(self):
        with pytest.raises(ValueError):
            ReportingWindow(start=datetime(2026, 2, 1, tzinfo=UTC), end=datetime(2026, 1, 1, tzinfo=UTC))
