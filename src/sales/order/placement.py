"""Order placement — command and handler."""

import json

from protean import handle
from protean.fields import Boolean, Float, String, Text
from protean.utils.globals import current_domain

from sales.domain import sales
from sales.order.order import Order


@sales.command(part_of="Order")
class PlaceOrder:
    customer = Text(required=True)  # JSON: {first_name, last_name, phone}
    email = String(required=True, max_length=254)
    address = Text(required=True)  # JSON: {street, city, state, postal_code, country}
    items = Text(required=True)  # JSON: list of item dicts
    tax = Float(default=0.0)
    shipping = Float(default=0.0)
    discount = Float(default=0.0)
    currency = String(max_length=3, default="MAD")
    payment_method = String(max_length=50, default="cash_on_delivery")
    shipping_method = String(max_length=50, default="standard")
    consent_given = Boolean(default=False)
    ip_address = String(max_length=45)
    user_agent = String(max_length=500)
    language = String(max_length=2, default="en")
    customer_note = Text()


def _loads(value):
    return json.loads(value) if isinstance(value, str) else value


@sales.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        order = Order.place(
            customer=_loads(command.customer),
            email=command.email,
            address=_loads(command.address),
            items_data=_loads(command.items),
            tax=command.tax or 0.0,
            shipping=command.shipping or 0.0,
            discount=command.discount or 0.0,
            currency=command.currency or "MAD",
            payment_method=command.payment_method,
            shipping_method=command.shipping_method,
            consent_given=command.consent_given,
            ip_address=command.ip_address,
            user_agent=command.user_agent,
            language=command.language,
            customer_note=command.customer_note,
        )
        current_domain.repository_for(Order).create(order)
        return order.order_number
