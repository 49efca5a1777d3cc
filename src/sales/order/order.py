"""Order aggregate (CQRS) — the order record of the sales context.

An order captures a checkout: who bought (customer details and shipping
address, both holding PII that the repository encrypts at rest), what they
bought (line items with a product snapshot), what it cost (derived totals)
and where it is in its lifecycle (status, payment status, append-only status
history).

Status Machine (7 states):
    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED
    CANCELLED (only from PENDING or CONFIRMED)
    REFUNDED
Every other transition is accepted as-is; operators correct orders by hand.
"""

import random
import re
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from sales.domain import sales
from sales.order.events import (
    OrderPlaced,
    OrderShipped,
    OrderStatusChanged,
    PaymentSettled,
)
from sales.order.pricing import (
    DEFAULT_CURRENCY,
    LINE_TOLERANCE,
    OrderTotals,
    compute_totals,
    price_line,
    to_money,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"
    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"


class ShippingMethod(Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    PICKUP = "pickup"


class Language(Enum):
    EN = "en"
    FR = "fr"
    AR = "ar"


# States from which cancellation is allowed
_CANCELLABLE_STATES = {
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
}

_EMAIL_PATTERN = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")

DEFAULT_COUNTRY = "Morocco"


def generate_order_number(now: datetime | None = None, rng=random) -> str:
    """Build a human-readable order number: ``ORD-<8 digits>-<3 digits>``.

    The first part is the tail of the epoch timestamp in milliseconds, the
    second a zero-padded random number. Uniqueness is enforced by the
    repository, not here.
    """
    now = now or datetime.now(UTC)
    millis = str(int(now.timestamp() * 1000))
    return f"ORD-{millis[-8:]}-{rng.randint(0, 999):03d}"


def normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@sales.value_object(part_of="Order")
class CustomerDetails:
    """Who placed the order.

    Every field is personal data and is stored encrypted; lengths are sized
    for the cipher token rather than the plaintext.
    """

    first_name = String(required=True, max_length=1024)
    last_name = String(required=True, max_length=1024)
    phone = String(required=True, max_length=1024)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@sales.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships to. Street, city, state and postal code are encrypted at rest."""

    street = String(required=True, max_length=1024)
    city = String(required=True, max_length=1024)
    state = String(max_length=1024)
    postal_code = String(max_length=1024)
    country = String(required=True, max_length=100, default=DEFAULT_COUNTRY)


@sales.value_object(part_of="Order")
class ProductSnapshot:
    """Catalogue data copied onto the line at checkout time.

    Later catalogue edits never change what the customer ordered.
    """

    name_en = String(max_length=255)
    name_fr = String(max_length=255)
    name_ar = String(max_length=255)
    sku = String(max_length=100)
    image = String(max_length=500)
    category = String(max_length=100)

    def display_name(self, language: str = Language.EN.value) -> str | None:
        localized = getattr(self, f"name_{language}", None)
        return localized or self.name_en


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@sales.entity(part_of="Order")
class OrderItem:
    """One line of the order."""

    line_number = Integer(required=True, min_value=1)
    product_id = Identifier(required=True)
    snapshot = ValueObject(ProductSnapshot)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    total_price = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)


@sales.entity(part_of="Order")
class StatusChange:
    """One entry in the append-only status history."""

    sequence = Integer(required=True, min_value=1)
    status = String(required=True, choices=OrderStatus)
    timestamp = DateTime(required=True)
    note = String(max_length=500)
    updated_by = String(max_length=255)


def _build_value_object(cls, prefix: str, data: dict | None, errors: dict):
    try:
        return cls(**(data or {}))
    except ValidationError as exc:
        for field, messages in exc.messages.items():
            errors[f"{prefix}.{field}"] = messages
        return None


def _build_item(line_number: int, data: dict, currency: str, errors: dict) -> OrderItem | None:
    name = data.get("name") or {}
    if isinstance(name, str):
        name = {Language.EN.value: name}

    quantity = data.get("quantity")
    unit_price = data.get("unit_price")
    prefix = f"items[{line_number - 1}]"
    try:
        total_price = price_line(quantity, unit_price, data.get("total_price"))
    except ValidationError as exc:
        for field, messages in exc.messages.items():
            errors[f"{prefix}.{field}"] = messages
        return None

    if not data.get("product_id"):
        errors[f"{prefix}.product_id"] = ["Product is required"]
        return None

    return OrderItem(
        line_number=line_number,
        product_id=data["product_id"],
        snapshot=ProductSnapshot(
            name_en=name.get("en"),
            name_fr=name.get("fr"),
            name_ar=name.get("ar"),
            sku=data.get("sku"),
            image=data.get("image"),
            category=data.get("category"),
        ),
        quantity=quantity,
        unit_price=unit_price,
        total_price=total_price,
        currency=data.get("currency") or currency,
    )


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@sales.aggregate
class Order:
    order_number = String(required=True, max_length=20, unique=True)
    customer_email = String(required=True, max_length=254)
    customer = ValueObject(CustomerDetails)
    shipping_address = ValueObject(ShippingAddress)
    items = HasMany(OrderItem)
    totals = ValueObject(OrderTotals)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    payment_status = String(
        choices=PaymentStatus,
        default=PaymentStatus.PENDING.value,
    )
    payment_method = String(
        choices=PaymentMethod,
        default=PaymentMethod.CASH_ON_DELIVERY.value,
    )
    shipping_method = String(
        choices=ShippingMethod,
        default=ShippingMethod.STANDARD.value,
    )
    tracking_number = String(max_length=255)
    estimated_delivery = DateTime()
    actual_delivery = DateTime()
    status_history = HasMany(StatusChange)
    consent_given = Boolean(default=False)
    consent_date = DateTime()
    ip_address = String(max_length=45)
    user_agent = String(max_length=500)
    language = String(
        choices=Language,
        default=Language.EN.value,
    )
    customer_note = Text()
    admin_note = Text()
    revision = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def consent_must_be_given(self):
        if self.consent_given is not True:
            raise ValidationError({"consent_given": ["Customer consent is required"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer: dict,
        email: str,
        address: dict,
        items_data: list[dict],
        tax: float = 0.0,
        shipping: float = 0.0,
        discount: float = 0.0,
        currency: str = DEFAULT_CURRENCY,
        payment_method: str = PaymentMethod.CASH_ON_DELIVERY.value,
        shipping_method: str = ShippingMethod.STANDARD.value,
        consent_given: bool = False,
        ip_address: str | None = None,
        user_agent: str | None = None,
        language: str = Language.EN.value,
        customer_note: str | None = None,
    ):
        """Build a new pending order from checkout data.

        Totals are always derived from the items; any supplied line total must
        agree with quantity x unit price. All field problems are collected and
        raised together as one ``ValidationError``.
        """
        errors = {}
        if consent_given is not True:
            errors["consent_given"] = ["Customer consent is required"]
        if not items_data:
            errors["items"] = ["An order needs at least one item"]
        if not ip_address:
            errors["ip_address"] = ["IP address is required"]

        customer_details = _build_value_object(CustomerDetails, "customer", customer, errors)
        address = dict(address or {})
        address.setdefault("country", DEFAULT_COUNTRY)
        shipping_address = _build_value_object(ShippingAddress, "address", address, errors)

        items = []
        for line_number, data in enumerate(items_data or [], start=1):
            item = _build_item(line_number, data, currency, errors)
            if item is not None:
                items.append(item)

        totals = None
        if not errors:
            try:
                totals = compute_totals(items, tax=tax, shipping=shipping, discount=discount, currency=currency)
            except ValidationError as exc:
                errors.update(exc.messages)
        if errors:
            raise ValidationError(errors)

        now = datetime.now(UTC)
        order = cls(
            order_number=generate_order_number(now),
            customer=customer_details,
            customer_email=normalize_email(email),
            shipping_address=shipping_address,
            totals=totals,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_method=payment_method,
            shipping_method=shipping_method,
            consent_given=True,
            consent_date=now,
            ip_address=ip_address,
            user_agent=user_agent,
            language=language,
            customer_note=customer_note,
            created_at=now,
            updated_at=now,
        )
        for item in items:
            order.add_items(item)

        errors = order.validate()
        if errors:
            raise ValidationError(errors)

        order.raise_(order._placed_event(now))
        return order

    def _placed_event(self, placed_at: datetime) -> OrderPlaced:
        return OrderPlaced(
            order_id=str(self.id),
            order_number=self.order_number,
            customer_email=self.customer_email,
            item_count=self.item_count,
            total=self.totals.total,
            currency=self.totals.currency,
            payment_method=self.payment_method,
            placed_at=placed_at,
        )

    def assign_order_number(self, order_number: str) -> None:
        """Renumber an order that has not been stored yet.

        A pending ``OrderPlaced`` is raised again so the event carries the
        number the order is actually stored under.
        """
        self.order_number = order_number
        pending = [event for event in self._events if isinstance(event, OrderPlaced)]
        if not pending:
            return
        self._events[:] = [event for event in self._events if not isinstance(event, OrderPlaced)]
        self.raise_(self._placed_event(pending[0].placed_at))

    # -------------------------------------------------------------------
    # Derived properties
    # -------------------------------------------------------------------
    @property
    def ordered_items(self) -> list[OrderItem]:
        return sorted(self.items or [], key=lambda item: item.line_number)

    @property
    def timeline(self) -> list[StatusChange]:
        """Status history, oldest first."""
        return sorted(self.status_history or [], key=lambda entry: entry.sequence)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items or [])

    @property
    def can_cancel(self) -> bool:
        return OrderStatus(self.status) in _CANCELLABLE_STATES

    @property
    def is_delivered(self) -> bool:
        return self.status == OrderStatus.DELIVERED.value

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    # -------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------
    def validate(self) -> dict[str, list[str]]:
        """Check the whole record and return field errors (empty when valid)."""
        errors: dict[str, list[str]] = {}

        def _require(key, value, message):
            if value is None or not str(value).strip():
                errors.setdefault(key, []).append(message)

        customer = self.customer
        _require("customer.first_name", customer.first_name if customer else None, "First name is required")
        _require("customer.last_name", customer.last_name if customer else None, "Last name is required")
        _require("customer.phone", customer.phone if customer else None, "Phone is required")

        if not self.customer_email:
            errors["customer_email"] = ["Email is required"]
        elif not _EMAIL_PATTERN.match(self.customer_email):
            errors["customer_email"] = ["Please enter a valid email"]

        address = self.shipping_address
        _require("address.street", address.street if address else None, "Street is required")
        _require("address.city", address.city if address else None, "City is required")
        _require("address.country", address.country if address else None, "Country is required")

        items = self.ordered_items
        if not items:
            errors["items"] = ["An order needs at least one item"]

        subtotal = to_money(0)
        for index, item in enumerate(items):
            prefix = f"items[{index}]"
            try:
                price_line(item.quantity, item.unit_price, item.total_price)
            except ValidationError as exc:
                for field, messages in exc.messages.items():
                    errors[f"{prefix}.{field}"] = messages
            else:
                subtotal += to_money(item.total_price)

        totals = self.totals
        if totals is None:
            errors["totals"] = ["Totals are required"]
        else:
            for name in ("subtotal", "tax", "shipping", "discount", "total"):
                value = getattr(totals, name)
                if value is None or value < 0:
                    errors[f"totals.{name}"] = [f"{name.capitalize()} cannot be negative"]
            if items and abs(to_money(totals.subtotal) - subtotal) > LINE_TOLERANCE:
                errors["totals.subtotal"] = [f"Subtotal {totals.subtotal} does not match the items ({subtotal})"]

        if self.consent_given is not True:
            errors["consent_given"] = ["Customer consent is required"]
        _require("ip_address", self.ip_address, "IP address is required")

        return errors

    def recalculate_totals(self, tax: float | None = None, shipping: float | None = None, discount: float | None = None) -> None:
        """Re-derive totals from the items, optionally replacing components."""
        current = self.totals or OrderTotals()
        self.totals = compute_totals(
            self.ordered_items,
            tax=current.tax if tax is None else tax,
            shipping=current.shipping if shipping is None else shipping,
            discount=current.discount if discount is None else discount,
            currency=current.currency,
        )
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Status machine
    # -------------------------------------------------------------------
    def _record_status(self, status: OrderStatus, note: str, updated_by: str | None, at: datetime) -> None:
        self.add_status_history(
            StatusChange(
                sequence=len(self.status_history or []) + 1,
                status=status.value,
                timestamp=at,
                note=note,
                updated_by=updated_by,
            )
        )

    def update_status(self, new_status: str, note: str | None = None, updated_by: str | None = None) -> None:
        """Move the order to ``new_status`` and record it in the history.

        Delivering a cash-on-delivery order also marks it paid.
        """
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown status '{new_status}'"]})

        if target == OrderStatus.CANCELLED and not self.can_cancel:
            raise ValidationError({"status": [f"Cannot cancel an order that is {self.status}"]})

        now = datetime.now(UTC)
        previous = self.status
        note = note or f"Status changed to {target.value}"

        self.status = target.value
        self._record_status(target, note, updated_by, now)
        self.updated_at = now

        if target == OrderStatus.DELIVERED:
            self.actual_delivery = now
            if self.payment_method == PaymentMethod.CASH_ON_DELIVERY.value:
                was_paid = self.is_paid
                self.payment_status = PaymentStatus.PAID.value
                if not was_paid:
                    self.raise_(
                        PaymentSettled(
                            order_id=str(self.id),
                            order_number=self.order_number,
                            payment_method=self.payment_method,
                            amount=self.totals.total if self.totals else 0.0,
                            settled_at=now,
                        )
                    )

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=previous,
                new_status=target.value,
                note=note,
                updated_by=updated_by,
                changed_at=now,
            )
        )

    def add_tracking(
        self,
        tracking_number: str,
        estimated_delivery: datetime | None = None,
        updated_by: str | None = None,
    ) -> None:
        """Attach a carrier tracking number and mark the order shipped."""
        if not tracking_number or not tracking_number.strip():
            raise ValidationError({"tracking_number": ["Tracking number is required"]})

        now = datetime.now(UTC)
        tracking_number = tracking_number.strip()
        self.tracking_number = tracking_number
        if estimated_delivery is not None:
            self.estimated_delivery = estimated_delivery
        self.status = OrderStatus.SHIPPED.value
        self._record_status(
            OrderStatus.SHIPPED,
            f"Order shipped with tracking number: {tracking_number}",
            updated_by,
            now,
        )
        self.updated_at = now
        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                order_number=self.order_number,
                tracking_number=tracking_number,
                estimated_delivery=estimated_delivery,
                updated_by=updated_by,
                shipped_at=now,
            )
        )

    def set_admin_note(self, note: str | None) -> None:
        """Replace the internal staff note; a blank note clears it."""
        self.admin_note = note.strip() if note and note.strip() else None
        self.updated_at = datetime.now(UTC)
