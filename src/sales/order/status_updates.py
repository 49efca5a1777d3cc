"""Order status updates — commands and handler.

Every command follows load -> mutate -> update on a freshly loaded order. A
``ConcurrencyConflict`` from the repository is passed to the caller as-is;
whether the change still applies after a reload is the caller's decision.
A clash caught only when the unit of work commits surfaces as Protean's
``ExpectedVersionError``; handler retries are switched off in domain.toml.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, String, Text
from protean.utils.globals import current_domain

from sales.domain import sales
from sales.order.order import Order

logger = structlog.get_logger(__name__)


@sales.command(part_of="Order")
class UpdateOrderStatus:
    order_number = String(required=True, max_length=20)
    status = String(required=True, max_length=20)
    note = String(max_length=500)
    updated_by = String(max_length=255)


@sales.command(part_of="Order")
class AddTracking:
    """Attach a carrier tracking number; the order becomes shipped."""

    order_number = String(required=True, max_length=20)
    tracking_number = String(required=True, max_length=255)
    estimated_delivery = DateTime()
    updated_by = String(max_length=255)


@sales.command(part_of="Order")
class SetAdminNote:
    """Replace the staff-only note on an order."""

    order_number = String(required=True, max_length=20)
    note = Text()
    updated_by = String(max_length=255)


@sales.command_handler(part_of=Order)
class OrderStatusHandler:
    def _load(self, order_number):
        repo = current_domain.repository_for(Order)
        order = repo.find_by_order_number(order_number)
        if order is None:
            raise ObjectNotFoundError(f"Order {order_number} does not exist")
        return repo, order

    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo, order = self._load(command.order_number)
        previous = order.status
        order.update_status(command.status, note=command.note, updated_by=command.updated_by)
        repo.update(order)
        logger.info(
            "order_status_changed",
            order_number=order.order_number,
            previous_status=previous,
            new_status=order.status,
            payment_status=order.payment_status,
            updated_by=command.updated_by,
        )
        return order.order_number

    @handle(AddTracking)
    def add_tracking(self, command):
        repo, order = self._load(command.order_number)
        previous = order.status
        order.add_tracking(
            command.tracking_number,
            estimated_delivery=command.estimated_delivery,
            updated_by=command.updated_by,
        )
        repo.update(order)
        logger.info(
            "order_status_changed",
            order_number=order.order_number,
            previous_status=previous,
            new_status=order.status,
            tracking_number=order.tracking_number,
            updated_by=command.updated_by,
        )
        return order.order_number

    @handle(SetAdminNote)
    def set_admin_note(self, command):
        repo, order = self._load(command.order_number)
        order.set_admin_note(command.note)
        repo.update(order)
        logger.info(
            "order_admin_note_set",
            order_number=order.order_number,
            cleared=order.admin_note is None,
            updated_by=command.updated_by,
        )
        return order.order_number
