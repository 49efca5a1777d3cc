"""Application tests for status updates and tracking via domain.process()."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from sales.order.order import Order
from sales.order.status_updates import AddTracking, SetAdminNote, UpdateOrderStatus
from structlog.testing import capture_logs


@pytest.fixture()
def order_number(order_payload):
    order = Order.place(**order_payload())
    current_domain.repository_for(Order).create(order)
    return order.order_number


def _reload(order_number):
    return current_domain.repository_for(Order).find_by_order_number(order_number)


def _update(order_number, status, **kwargs):
    return current_domain.process(
        UpdateOrderStatus(order_number=order_number, status=status, **kwargs),
        asynchronous=False,
    )


class TestUpdateOrderStatus:
    def test_status_is_persisted_with_history(self, order_number):
        _update(order_number, "confirmed", updated_by="admin-3")

        order = _reload(order_number)
        assert order.status == "confirmed"
        assert order.revision == 2
        (entry,) = order.timeline
        assert entry.status == "confirmed"
        assert entry.note == "Status changed to confirmed"
        assert entry.updated_by == "admin-3"

    def test_history_accumulates_in_order(self, order_number):
        for status in ("confirmed", "processing", "shipped", "delivered"):
            _update(order_number, status)

        order = _reload(order_number)
        assert [entry.status for entry in order.timeline] == ["confirmed", "processing", "shipped", "delivered"]
        assert order.revision == 5

    def test_cash_on_delivery_paid_on_delivery(self, order_number):
        _update(order_number, "delivered")
        assert _reload(order_number).payment_status == "paid"

    def test_card_payment_untouched_on_delivery(self, order_payload):
        order = Order.place(**order_payload(payment_method="credit_card"))
        current_domain.repository_for(Order).create(order)

        _update(order.order_number, "delivered")
        assert _reload(order.order_number).payment_status == "pending"

    def test_cancel_after_processing_is_rejected(self, order_number):
        _update(order_number, "confirmed")
        _update(order_number, "processing")

        with pytest.raises(ValidationError):
            _update(order_number, "cancelled")

        order = _reload(order_number)
        assert order.status == "processing"
        assert len(order.timeline) == 2

    def test_pending_confirmed_cancelled(self, order_number):
        _update(order_number, "confirmed")
        _update(order_number, "cancelled")
        assert _reload(order_number).status == "cancelled"

    def test_unknown_status_is_rejected(self, order_number):
        with pytest.raises(ValidationError):
            _update(order_number, "teleported")
        assert _reload(order_number).revision == 1

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            _update("ORD-00000000-000", "confirmed")

    def test_decrypted_fields_survive_the_update(self, order_number):
        _update(order_number, "confirmed")
        order = _reload(order_number)
        assert order.customer.full_name == "Amina Benali"
        assert order.shipping_address.city == "Casablanca"

    def test_transition_is_logged(self, order_number):
        with capture_logs() as logs:
            _update(order_number, "confirmed", updated_by="admin-3")

        entries = [entry for entry in logs if entry["event"] == "order_status_changed"]
        assert len(entries) == 1
        assert entries[0]["previous_status"] == "pending"
        assert entries[0]["new_status"] == "confirmed"
        assert "Amina" not in str(entries[0])


class TestAddTracking:
    def test_tracking_marks_order_shipped(self, order_number):
        eta = datetime.now(UTC) + timedelta(days=2)
        current_domain.process(
            AddTracking(
                order_number=order_number,
                tracking_number="AMANA-778899",
                estimated_delivery=eta,
                updated_by="warehouse-2",
            ),
            asynchronous=False,
        )

        order = _reload(order_number)
        assert order.status == "shipped"
        assert order.tracking_number == "AMANA-778899"
        assert order.estimated_delivery is not None
        assert order.timeline[-1].note == "Order shipped with tracking number: AMANA-778899"
        assert order.timeline[-1].updated_by == "warehouse-2"

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(
                AddTracking(order_number="ORD-00000000-000", tracking_number="AMANA-1"),
                asynchronous=False,
            )


class TestSetAdminNote:
    def test_note_is_persisted_in_clear(self, order_number):
        current_domain.process(
            SetAdminNote(order_number=order_number, note="Call before delivery", updated_by="admin-3"),
            asynchronous=False,
        )

        order = _reload(order_number)
        assert order.admin_note == "Call before delivery"
        assert order.revision == 2
        assert order.timeline == []

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(SetAdminNote(order_number="ORD-00000000-000", note="x"), asynchronous=False)
