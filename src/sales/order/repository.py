"""Order persistence.

The repository is the only place where orders cross the storage boundary, so
it owns the three guarantees that need storage to hold:

* order numbers are unique (collisions are regenerated a bounded number of times),
* updates are rejected when the stored record changed since it was loaded
  (``revision`` is the optimistic concurrency token),
* customer and address PII is encrypted on the way in and decrypted on the
  way out; the in-memory aggregate always holds plaintext.
"""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ExpectedVersionError, ValidationError

from sales.domain import sales
from sales.errors import ConcurrencyConflict, DuplicateOrderNumber
from sales.order.order import (
    CustomerDetails,
    Order,
    ShippingAddress,
    generate_order_number,
    normalize_email,
)
from sales.security import get_cipher

logger = structlog.get_logger(__name__)

MAX_ORDER_NUMBER_ATTEMPTS = 5
SCAN_PAGE_SIZE = 100

# Value object attribute -> (value object class, encrypted fields)
_ENCRYPTED_FIELDS = {
    "customer": (CustomerDetails, ("first_name", "last_name", "phone")),
    "shipping_address": (ShippingAddress, ("street", "city", "state", "postal_code")),
}


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes (as some providers return them) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def _transform(value_object, cls, fields, fn):
    values = value_object.to_dict()
    for field in fields:
        values[field] = fn(values.get(field))
    return cls(**values)


@sales.repository(part_of=Order)
class OrderRepository:
    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def create(self, order: Order, cipher=None) -> Order:
        """Validate and persist a new order, allocating a unique order number."""
        cipher = cipher or get_cipher()
        now = datetime.now(UTC)
        if order.created_at is None:
            order.created_at = now
        order.updated_at = now

        errors = order.validate()
        if errors:
            raise ValidationError(errors)

        for attempt in range(1, MAX_ORDER_NUMBER_ATTEMPTS + 1):
            if attempt > 1 or not order.order_number:
                order.assign_order_number(generate_order_number())

            if self._order_number_taken(order.order_number):
                logger.warning("order_number_collision", order_number=order.order_number, attempt=attempt)
                continue

            order.revision = 1
            try:
                self._persist(order, cipher)
            except ValidationError as exc:
                # Lost a race against another writer for the same number
                if "order_number" not in exc.messages:
                    raise
                logger.warning("order_number_collision", order_number=order.order_number, attempt=attempt)
                continue

            logger.info(
                "order_placed",
                order_id=str(order.id),
                order_number=order.order_number,
                total=order.totals.total,
                item_count=order.item_count,
            )
            return order

        raise DuplicateOrderNumber(MAX_ORDER_NUMBER_ATTEMPTS)

    def update(self, order: Order, cipher=None) -> Order:
        """Replace the stored order with ``order``.

        Raises ``ConcurrencyConflict`` when the stored revision is no longer
        the one ``order`` was loaded at. Never retries.
        """
        cipher = cipher or get_cipher()
        expected = order.revision
        stored = self._dao.get(order.id)
        if stored.revision != expected:
            raise self._conflict(order, expected, stored.revision)

        errors = order.validate()
        if errors:
            raise ValidationError(errors)

        order.revision = expected + 1
        order.updated_at = datetime.now(UTC)
        try:
            self._persist(order, cipher)
        except ExpectedVersionError:
            # Another writer saved between the revision check and this write
            order.revision = expected
            raise self._conflict(order, expected, self._dao.get(order.id).revision) from None
        return order

    def _conflict(self, order: Order, expected: int, actual: int) -> ConcurrencyConflict:
        logger.warning(
            "order_update_conflict",
            order_number=order.order_number,
            expected_revision=expected,
            actual_revision=actual,
        )
        return ConcurrencyConflict(order.order_number, expected, actual)

    def _persist(self, order: Order, cipher) -> None:
        plaintext = {name: getattr(order, name) for name in _ENCRYPTED_FIELDS}
        try:
            for name, (cls, fields) in _ENCRYPTED_FIELDS.items():
                if plaintext[name] is not None:
                    setattr(order, name, _transform(plaintext[name], cls, fields, cipher.encrypt))
            self.add(order)
        finally:
            for name, value_object in plaintext.items():
                if value_object is not None:
                    setattr(order, name, value_object)

    def _order_number_taken(self, order_number: str) -> bool:
        return bool(self._dao.query.filter(order_number=order_number).all().items)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def find_by_order_number(self, order_number: str, cipher=None) -> Order | None:
        results = self._dao.query.filter(order_number=order_number).all()
        if not results.items:
            return None
        return self._load(results.first, cipher or get_cipher())

    def find_by_customer_email(self, email: str, cipher=None) -> list[Order]:
        """All orders placed with ``email``, newest first."""
        cipher = cipher or get_cipher()
        orders = [self._load(order, cipher) for order in self._scan(customer_email=normalize_email(email))]
        return sorted(orders, key=lambda order: as_utc(order.created_at), reverse=True)

    def find_created_between(self, start: datetime, end: datetime) -> list[Order]:
        """Orders created within ``[start, end]``. PII is left encrypted."""
        return list(self._scan(created_at__gte=as_utc(start), created_at__lte=as_utc(end)))

    def _scan(self, **filters):
        offset = 0
        while True:
            query = self._dao.query.filter(**filters) if filters else self._dao.query
            page = query.order_by("id").offset(offset).limit(SCAN_PAGE_SIZE).all()
            yield from page.items
            if len(page.items) < SCAN_PAGE_SIZE:
                return
            offset += SCAN_PAGE_SIZE

    # -------------------------------------------------------------------
    # Decryption
    # -------------------------------------------------------------------
    def reveal_pii(self, order: Order, cipher=None) -> list[str]:
        """Decrypt the PII fields of ``order`` in place.

        Returns the fields that could not be decrypted; those keep their
        stored token as value.
        """
        cipher = cipher or get_cipher()
        failed = []
        for name, (cls, fields) in _ENCRYPTED_FIELDS.items():
            value_object = getattr(order, name)
            if value_object is None:
                continue
            values = value_object.to_dict()
            for field in fields:
                revealed = cipher.reveal(values.get(field))
                values[field] = revealed.value
                if revealed.failed:
                    failed.append(f"{name}.{field}")
            setattr(order, name, cls(**values))
        return failed

    def _load(self, order: Order, cipher) -> Order:
        failed = self.reveal_pii(order, cipher)
        if failed:
            logger.warning("order_pii_unreadable", order_number=order.order_number, fields=failed)
        return order
