"""Order money: line pricing and derived order totals.

All amounts are decimal currency units (MAD, EUR, USD) kept to two decimal
places. Arithmetic runs on ``Decimal`` and is rounded half-up before being
stored as floats on the aggregate.
"""

from decimal import ROUND_HALF_UP, Decimal

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Float, String

from sales.domain import sales

DEFAULT_CURRENCY = "MAD"

TWO_PLACES = Decimal("0.01")
LINE_TOLERANCE = Decimal("0.005")


def to_money(value) -> Decimal:
    """Quantize an amount to two decimal places."""
    return Decimal(str(value or 0)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


@sales.value_object(part_of="Order")
class OrderTotals:
    """Financial summary of an order.

    Never built from client input directly: ``compute_totals`` derives it
    from the line items and the tax, shipping and discount components.
    """

    subtotal = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    shipping = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)

    @invariant.post
    def total_must_match_components(self):
        expected = to_money(self.subtotal) + to_money(self.tax) + to_money(self.shipping) - to_money(self.discount)
        if abs(to_money(self.total) - expected) > LINE_TOLERANCE:
            raise ValidationError({"total": [f"Total {self.total} does not match its components ({expected})"]})


def price_line(quantity, unit_price, total_price=None) -> float:
    """Return the verified total for one order line.

    When ``total_price`` is omitted it is derived as quantity x unit price;
    when supplied it must agree with that product to two decimal places.
    """
    errors = {}
    if quantity is None or quantity < 1:
        errors["quantity"] = ["Quantity must be at least 1"]
    if unit_price is None or unit_price < 0:
        errors["unit_price"] = ["Unit price cannot be negative"]
    if total_price is not None and total_price < 0:
        errors["total_price"] = ["Total price cannot be negative"]
    if errors:
        raise ValidationError(errors)

    expected = to_money(Decimal(str(unit_price)) * quantity)
    if total_price is None:
        return float(expected)

    if abs(Decimal(str(total_price)) - expected) > LINE_TOLERANCE:
        raise ValidationError(
            {"total_price": [f"Line total {total_price} does not equal quantity x unit price ({expected})"]}
        )
    return float(to_money(total_price))


def _line_values(item):
    if isinstance(item, dict):
        return item.get("quantity"), item.get("unit_price"), item.get("total_price")
    return item.quantity, item.unit_price, item.total_price


def compute_totals(items, tax=0.0, shipping=0.0, discount=0.0, currency=DEFAULT_CURRENCY) -> OrderTotals:
    """Derive order totals from line items.

    ``subtotal`` is the sum of line totals and ``total`` is
    ``subtotal + tax + shipping - discount``. Inconsistent lines, negative
    components and a negative resulting total are all rejected.
    """
    errors = {}
    for name, value in (("tax", tax), ("shipping", shipping), ("discount", discount)):
        if value is not None and value < 0:
            errors[name] = [f"{name.capitalize()} cannot be negative"]

    subtotal = Decimal("0.00")
    for index, item in enumerate(items):
        quantity, unit_price, total_price = _line_values(item)
        try:
            subtotal += to_money(price_line(quantity, unit_price, total_price))
        except ValidationError as exc:
            for field, messages in exc.messages.items():
                errors[f"items[{index}].{field}"] = messages

    if errors:
        raise ValidationError(errors)

    total = subtotal + to_money(tax) + to_money(shipping) - to_money(discount)
    if total < 0:
        raise ValidationError({"total": [f"Order total cannot be negative (computed {total})"]})

    return OrderTotals(
        subtotal=float(subtotal),
        tax=float(to_money(tax)),
        shipping=float(to_money(shipping)),
        discount=float(to_money(discount)),
        total=float(total),
        currency=currency or DEFAULT_CURRENCY,
    )
