"""FastAPI routes for the Sales domain — orders and analytics.

Each route translates between Pydantic schemas (external contract) and
Protean commands or repository reads. The acting user arrives in the
``X-Actor-Id`` header; authentication happens upstream.
"""

import json
from datetime import datetime

from fastapi import APIRouter, Header, Query, Request
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from sales.api.schemas import (
    AddressSchema,
    AddTrackingRequest,
    AdminNoteRequest,
    CustomerSchema,
    OrderItemResponse,
    OrderNumberResponse,
    OrderResponse,
    PlaceOrderRequest,
    ProductNameSchema,
    ProductPerformanceResponse,
    StatusChangeResponse,
    SummaryResponse,
    TopProductsResponse,
    TotalsResponse,
    UpdateStatusRequest,
)
from sales.order.order import Order
from sales.order.placement import PlaceOrder
from sales.order.status_updates import AddTracking, SetAdminNote, UpdateOrderStatus
from sales.reporting.analytics import (
    DEFAULT_TOP_PRODUCTS,
    DEFAULT_WINDOW_DAYS,
    ReportingWindow,
    summary_for,
    top_products,
)


def _order_response(order: Order) -> OrderResponse:
    customer = order.customer
    address = order.shipping_address
    totals = order.totals
    return OrderResponse(
        order_number=order.order_number,
        customer=CustomerSchema(
            first_name=customer.first_name,
            last_name=customer.last_name,
            email=order.customer_email,
            phone=customer.phone,
        ),
        full_name=customer.full_name,
        address=AddressSchema(
            street=address.street,
            city=address.city,
            state=address.state,
            postal_code=address.postal_code,
            country=address.country,
        ),
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                name=ProductNameSchema(
                    en=item.snapshot.name_en if item.snapshot else None,
                    fr=item.snapshot.name_fr if item.snapshot else None,
                    ar=item.snapshot.name_ar if item.snapshot else None,
                ),
                sku=item.snapshot.sku if item.snapshot else None,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
                currency=item.currency,
            )
            for item in order.ordered_items
        ],
        totals=TotalsResponse(
            subtotal=totals.subtotal,
            tax=totals.tax,
            shipping=totals.shipping,
            discount=totals.discount,
            total=totals.total,
            currency=totals.currency,
        ),
        status=order.status,
        payment_status=order.payment_status,
        payment_method=order.payment_method,
        shipping_method=order.shipping_method,
        tracking_number=order.tracking_number,
        estimated_delivery=order.estimated_delivery,
        actual_delivery=order.actual_delivery,
        status_history=[
            StatusChangeResponse(
                status=entry.status,
                timestamp=entry.timestamp,
                note=entry.note,
                updated_by=entry.updated_by,
            )
            for entry in order.timeline
        ],
        can_cancel=order.can_cancel,
        item_count=order.item_count,
        language=order.language,
        customer_note=order.customer_note,
        admin_note=order.admin_note,
        created_at=order.created_at,
    )


def _window(start: datetime | None, end: datetime | None, days: int) -> ReportingWindow:
    if start is None and end is None:
        return ReportingWindow.trailing(days=days)
    trailing = ReportingWindow.trailing(days=days, now=end)
    return ReportingWindow(start=start or trailing.start, end=end or trailing.end)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderNumberResponse)
async def place_order(
    body: PlaceOrderRequest,
    request: Request,
    user_agent: str | None = Header(default=None),
) -> OrderNumberResponse:
    """Place an order from a checkout payload."""
    command = PlaceOrder(
        customer=json.dumps(body.customer.model_dump(exclude={"email"})),
        email=body.customer.email,
        address=json.dumps(body.address.model_dump()),
        items=json.dumps([item.model_dump() for item in body.items]),
        tax=body.tax,
        shipping=body.shipping,
        discount=body.discount,
        currency=body.currency,
        payment_method=body.payment_method,
        shipping_method=body.shipping_method,
        consent_given=body.consent_given,
        ip_address=request.client.host if request.client else None,
        user_agent=user_agent,
        language=body.language,
        customer_note=body.customer_note,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderNumberResponse(order_number=result)


@order_router.get("", response_model=list[OrderResponse])
async def list_orders(email: str = Query(...)) -> list[OrderResponse]:
    """All orders placed with an email address, newest first."""
    orders = current_domain.repository_for(Order).find_by_customer_email(email)
    return [_order_response(order) for order in orders]


@order_router.get("/{order_number}", response_model=OrderResponse)
async def get_order(order_number: str) -> OrderResponse:
    order = current_domain.repository_for(Order).find_by_order_number(order_number)
    if order is None:
        raise ObjectNotFoundError(f"Order {order_number} does not exist")
    return _order_response(order)


@order_router.put("/{order_number}/status", response_model=OrderNumberResponse)
async def update_status(
    order_number: str,
    body: UpdateStatusRequest,
    x_actor_id: str | None = Header(default=None),
) -> OrderNumberResponse:
    """Move an order to a new status."""
    command = UpdateOrderStatus(
        order_number=order_number,
        status=body.status,
        note=body.note,
        updated_by=x_actor_id,
    )
    current_domain.process(command, asynchronous=False)
    return OrderNumberResponse(order_number=order_number)


@order_router.put("/{order_number}/tracking", response_model=OrderNumberResponse)
async def add_tracking(
    order_number: str,
    body: AddTrackingRequest,
    x_actor_id: str | None = Header(default=None),
) -> OrderNumberResponse:
    """Attach a tracking number; the order becomes shipped."""
    command = AddTracking(
        order_number=order_number,
        tracking_number=body.tracking_number,
        estimated_delivery=body.estimated_delivery,
        updated_by=x_actor_id,
    )
    current_domain.process(command, asynchronous=False)
    return OrderNumberResponse(order_number=order_number)


@order_router.put("/{order_number}/admin-note", response_model=OrderNumberResponse)
async def set_admin_note(
    order_number: str,
    body: AdminNoteRequest,
    x_actor_id: str | None = Header(default=None),
) -> OrderNumberResponse:
    command = SetAdminNote(order_number=order_number, note=body.note, updated_by=x_actor_id)
    current_domain.process(command, asynchronous=False)
    return OrderNumberResponse(order_number=order_number)


# ---------------------------------------------------------------------------
# Analytics Router
# ---------------------------------------------------------------------------
analytics_router = APIRouter(prefix="/analytics", tags=["analytics"])


@analytics_router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    start: datetime | None = None,
    end: datetime | None = None,
    days: int = Query(default=DEFAULT_WINDOW_DAYS, ge=1),
) -> SummaryResponse:
    window = _window(start, end, days)
    summary = summary_for(window)
    return SummaryResponse(
        start=window.start,
        end=window.end,
        total_orders=summary.total_orders,
        total_revenue=summary.total_revenue,
        average_order_value=summary.average_order_value,
        pending_count=summary.pending_count,
        delivered_count=summary.delivered_count,
        cancelled_count=summary.cancelled_count,
    )


@analytics_router.get("/top-products", response_model=TopProductsResponse)
async def get_top_products(
    start: datetime | None = None,
    end: datetime | None = None,
    days: int = Query(default=DEFAULT_WINDOW_DAYS, ge=1),
    limit: int = Query(default=DEFAULT_TOP_PRODUCTS, ge=1, le=100),
) -> TopProductsResponse:
    window = _window(start, end, days)
    products = top_products(window, limit=limit)
    return TopProductsResponse(
        start=window.start,
        end=window.end,
        products=[
            ProductPerformanceResponse(
                product_id=product.product_id,
                total_quantity=product.total_quantity,
                total_revenue=product.total_revenue,
                order_count=product.order_count,
                name=ProductNameSchema(**product.name_snapshot),
                sku=product.sku,
            )
            for product in products
        ],
    )
