"""Tests for the Order status machine: transitions, history and side effects."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError
from sales.order.events import OrderShipped, OrderStatusChanged, PaymentSettled
from sales.order.order import Order, OrderStatus, PaymentStatus


@pytest.fixture()
def order(order_payload):
    placed = Order.place(**order_payload())
    placed._events.clear()
    return placed


def _events_of(order, event_cls):
    return [e for e in order._events if isinstance(e, event_cls)]


class TestCancellation:
    def test_pending_can_cancel(self, order):
        assert order.can_cancel is True
        order.update_status("cancelled")
        assert order.status == OrderStatus.CANCELLED.value

    def test_pending_confirmed_cancelled_is_accepted(self, order):
        order.update_status("confirmed")
        assert order.can_cancel is True
        order.update_status("cancelled")
        assert order.status == OrderStatus.CANCELLED.value
        assert [entry.status for entry in order.timeline] == ["confirmed", "cancelled"]

    def test_processing_cannot_cancel(self, order):
        order.update_status("confirmed")
        order.update_status("processing")
        assert order.can_cancel is False
        with pytest.raises(ValidationError) as exc:
            order.update_status("cancelled")
        assert "status" in exc.value.messages
        assert order.status == OrderStatus.PROCESSING.value
        assert len(order.timeline) == 2

    @pytest.mark.parametrize("status", ["shipped", "delivered", "cancelled", "refunded"])
    def test_can_cancel_is_false_after_confirmation_stage(self, order, status):
        order.update_status(status)
        assert order.can_cancel is False


class TestTransitions:
    def test_unknown_status_is_rejected(self, order):
        with pytest.raises(ValidationError) as exc:
            order.update_status("lost_in_transit")
        assert "status" in exc.value.messages
        assert order.status == OrderStatus.PENDING.value
        assert order.timeline == []

    def test_other_transitions_are_unconstrained(self, order):
        order.update_status("delivered")
        order.update_status("pending")
        assert order.status == OrderStatus.PENDING.value

    def test_each_transition_appends_one_entry(self, order):
        for status in ("confirmed", "processing", "shipped", "delivered"):
            order.update_status(status, updated_by="admin-7")
        timeline = order.timeline
        assert [entry.status for entry in timeline] == ["confirmed", "processing", "shipped", "delivered"]
        assert [entry.sequence for entry in timeline] == [1, 2, 3, 4]
        assert all(entry.updated_by == "admin-7" for entry in timeline)
        assert all(entry.timestamp is not None for entry in timeline)

    def test_default_note(self, order):
        order.update_status("confirmed")
        assert order.timeline[-1].note == "Status changed to confirmed"

    def test_custom_note(self, order):
        order.update_status("confirmed", note="Confirmed by phone")
        assert order.timeline[-1].note == "Confirmed by phone"

    def test_raises_status_changed_event(self, order):
        order.update_status("confirmed", updated_by="admin-7")
        events = _events_of(order, OrderStatusChanged)
        assert len(events) == 1
        assert events[0].previous_status == "pending"
        assert events[0].new_status == "confirmed"
        assert events[0].updated_by == "admin-7"


class TestDelivery:
    def test_cash_on_delivery_becomes_paid(self, order):
        assert order.payment_status == PaymentStatus.PENDING.value
        order.update_status("delivered")
        assert order.payment_status == PaymentStatus.PAID.value
        assert order.is_paid is True
        assert order.is_delivered is True
        assert len(_events_of(order, PaymentSettled)) == 1

    def test_credit_card_payment_status_unchanged(self, order_payload):
        order = Order.place(**order_payload(payment_method="credit_card"))
        order.update_status("delivered")
        assert order.payment_status == PaymentStatus.PENDING.value
        assert _events_of(order, PaymentSettled) == []

    def test_already_paid_order_settles_once(self, order):
        order.update_status("delivered")
        order.update_status("delivered")
        assert order.payment_status == PaymentStatus.PAID.value
        assert len(_events_of(order, PaymentSettled)) == 1

    def test_delivery_stamps_actual_delivery(self, order):
        assert order.actual_delivery is None
        order.update_status("delivered")
        assert order.actual_delivery is not None


class TestAddTracking:
    def test_marks_shipped_with_tracking(self, order):
        eta = datetime.now(UTC) + timedelta(days=3)
        order.add_tracking("AMANA-123456", estimated_delivery=eta, updated_by="warehouse-1")
        assert order.status == OrderStatus.SHIPPED.value
        assert order.tracking_number == "AMANA-123456"
        assert order.estimated_delivery is not None
        entry = order.timeline[-1]
        assert entry.status == "shipped"
        assert entry.note == "Order shipped with tracking number: AMANA-123456"
        assert entry.updated_by == "warehouse-1"

    def test_estimated_delivery_is_optional(self, order):
        order.add_tracking("AMANA-1")
        assert order.estimated_delivery is None

    def test_raises_order_shipped(self, order):
        order.add_tracking("AMANA-1")
        events = _events_of(order, OrderShipped)
        assert len(events) == 1
        assert events[0].tracking_number == "AMANA-1"

    @pytest.mark.parametrize("tracking_number", ["", "   ", None])
    def test_tracking_number_required(self, order, tracking_number):
        with pytest.raises(ValidationError) as exc:
            order.add_tracking(tracking_number)
        assert "tracking_number" in exc.value.messages
        assert order.status == OrderStatus.PENDING.value


class TestAdminNote:
    def test_note_is_trimmed(self, order):
        order.set_admin_note("  Customer asked for evening delivery  ")
        assert order.admin_note == "Customer asked for evening delivery"

    @pytest.mark.parametrize("note", ["", "   ", None])
    def test_blank_note_clears(self, order, note):
        order.set_admin_note("Fragile")
        order.set_admin_note(note)
        assert order.admin_note is None

    def test_status_and_history_untouched(self, order):
        order.set_admin_note("Fragile")
        assert order.status == OrderStatus.PENDING.value
        assert order.timeline == []
