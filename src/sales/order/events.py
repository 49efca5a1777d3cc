"""Domain events for the Order aggregate.

Raised alongside state changes so other contexts (notifications, fulfillment)
can react. They never carry encrypted PII; the customer email is the only
customer attribute included.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from sales.domain import sales


@sales.event(part_of="Order")
class OrderPlaced:
    """A checkout produced a new order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_email = String(required=True)
    item_count = Integer(required=True)
    total = Float(required=True)
    currency = String(required=True)
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@sales.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new status."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    note = String()
    updated_by = String()
    changed_at = DateTime(required=True)


@sales.event(part_of="Order")
class OrderShipped:
    """A tracking number was attached and the order marked shipped."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    tracking_number = String(required=True)
    estimated_delivery = DateTime()
    updated_by = String()
    shipped_at = DateTime(required=True)


@sales.event(part_of="Order")
class PaymentSettled:
    """Cash on delivery was collected when the order was delivered."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    payment_method = String(required=True)
    amount = Float(required=True)
    settled_at = DateTime(required=True)
