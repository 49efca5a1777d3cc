"""Order analytics read directly from the order records.

Two reports back the admin dashboard:

* a summary of a time window: order count, revenue, average order value and
  pending / delivered / cancelled counts. Revenue counts every order in the
  window whatever its status, cancelled ones included;
* a product ranking by quantity sold. Cancelled orders are left out here.

Reports are read-only and never lock orders; an order updated while a report
runs may or may not be reflected in it.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from protean.utils.globals import current_domain

from sales.order.order import Order, OrderStatus
from sales.order.pricing import to_money
from sales.order.repository import as_utc

DEFAULT_WINDOW_DAYS = 30
DEFAULT_TOP_PRODUCTS = 10


@dataclass(frozen=True)
class ReportingWindow:
    """Closed interval ``[start, end]`` over order creation time."""

    start: datetime
    end: datetime

    def __post_init__(self):
        # Naive datetimes are taken as UTC
        object.__setattr__(self, "start", as_utc(self.start))
        object.__setattr__(self, "end", as_utc(self.end))
        if self.start > self.end:
            raise ValueError(f"Window start {self.start.isoformat()} is after its end {self.end.isoformat()}")

    @classmethod
    def trailing(cls, days: int = DEFAULT_WINDOW_DAYS, now: datetime | None = None) -> "ReportingWindow":
        end = as_utc(now) if now else datetime.now(UTC)
        return cls(start=end - timedelta(days=days), end=end)

    def contains(self, moment: datetime | None) -> bool:
        return moment is not None and self.start <= as_utc(moment) <= self.end


@dataclass(frozen=True)
class OrderSummary:
    total_orders: int = 0
    total_revenue: float = 0.0
    average_order_value: float = 0.0
    pending_count: int = 0
    delivered_count: int = 0
    cancelled_count: int = 0


@dataclass(frozen=True)
class ProductPerformance:
    product_id: str
    total_quantity: int
    total_revenue: float
    order_count: int
    name_snapshot: dict = field(default_factory=dict)
    sku: str | None = None


def summarize(orders: Iterable[Order]) -> OrderSummary:
    total_orders = 0
    revenue = Decimal("0.00")
    counts = {OrderStatus.PENDING.value: 0, OrderStatus.DELIVERED.value: 0, OrderStatus.CANCELLED.value: 0}

    for order in orders:
        total_orders += 1
        revenue += to_money(order.totals.total if order.totals else 0)
        if order.status in counts:
            counts[order.status] += 1

    average = to_money(revenue / total_orders) if total_orders else Decimal("0.00")
    return OrderSummary(
        total_orders=total_orders,
        total_revenue=float(revenue),
        average_order_value=float(average),
        pending_count=counts[OrderStatus.PENDING.value],
        delivered_count=counts[OrderStatus.DELIVERED.value],
        cancelled_count=counts[OrderStatus.CANCELLED.value],
    )


def rank_products(orders: Iterable[Order], limit: int = DEFAULT_TOP_PRODUCTS) -> list[ProductPerformance]:
    """Rank products by quantity sold, best first.

    ``order_count`` counts order lines, so a product appearing on two lines
    of the same order counts twice. Ties keep the order in which products
    were first seen.
    """
    stats: dict[str, dict] = {}
    for order in orders:
        if order.status == OrderStatus.CANCELLED.value:
            continue
        for item in order.ordered_items:
            product_id = str(item.product_id)
            entry = stats.get(product_id)
            if entry is None:
                snapshot = item.snapshot
                entry = stats[product_id] = {
                    "quantity": 0,
                    "revenue": Decimal("0.00"),
                    "lines": 0,
                    "name": {
                        language: getattr(snapshot, f"name_{language}", None)
                        for language in ("en", "fr", "ar")
                        if snapshot is not None and getattr(snapshot, f"name_{language}", None)
                    },
                    "sku": snapshot.sku if snapshot is not None else None,
                }
            entry["quantity"] += item.quantity
            entry["revenue"] += to_money(item.total_price)
            entry["lines"] += 1

    ranked = sorted(stats.items(), key=lambda pair: pair[1]["quantity"], reverse=True)
    return [
        ProductPerformance(
            product_id=product_id,
            total_quantity=entry["quantity"],
            total_revenue=float(entry["revenue"]),
            order_count=entry["lines"],
            name_snapshot=entry["name"],
            sku=entry["sku"],
        )
        for product_id, entry in ranked[:limit]
    ]


def _orders_in(window: ReportingWindow) -> list[Order]:
    return current_domain.repository_for(Order).find_created_between(window.start, window.end)


def summary_for(window: ReportingWindow | None = None) -> OrderSummary:
    """Summary of orders created in ``window`` (default: the trailing 30 days)."""
    return summarize(_orders_in(window or ReportingWindow.trailing()))


def top_products(window: ReportingWindow | None = None, limit: int = DEFAULT_TOP_PRODUCTS) -> list[ProductPerformance]:
    return rank_products(_orders_in(window or ReportingWindow.trailing()), limit=limit)
