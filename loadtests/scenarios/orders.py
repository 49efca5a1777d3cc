"""Sales load test scenarios.

Stateful SequentialTaskSet journeys for the order lifecycle through
delivery and for early cancellation, plus an admin user polling the
analytics endpoints.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import order_data, tracking_data
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import OrderState

ACTOR_HEADERS = {"X-Actor-Id": "loadtest-admin"}


class _OrderJourney(SequentialTaskSet):
    def on_start(self):
        self.state = OrderState()

    def _place(self, payment_method=None):
        payload = order_data(payment_method=payment_method)
        with self.client.post(
            "/orders",
            json=payload,
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_number = resp.json()["order_number"]
                self.state.email = payload["customer"]["email"]
                self.state.payment_method = payload["payment_method"]
            else:
                resp.failure(f"Place order failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    def _move_to(self, status):
        with self.client.put(
            f"/orders/{self.state.order_number}/status",
            json={"status": status},
            headers=ACTOR_HEADERS,
            catch_response=True,
            name=f"PUT /orders/{{n}}/status [{status}]",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = status
                self.state.history.append(status)
            else:
                resp.failure(f"Status {status} failed: {resp.status_code} — {extract_error_detail(resp)}")


class OrderLifecycleJourney(_OrderJourney):
    """Place -> Confirm -> Processing -> Ship (tracking) -> Deliver -> Read back.

    Cash-on-delivery orders come back paid after delivery.
    """

    @task
    def place_order(self):
        self._place(payment_method="cash_on_delivery")

    @task
    def confirm(self):
        self._move_to("confirmed")

    @task
    def processing(self):
        self._move_to("processing")

    @task
    def ship(self):
        with self.client.put(
            f"/orders/{self.state.order_number}/tracking",
            json=tracking_data(),
            headers=ACTOR_HEADERS,
            catch_response=True,
            name="PUT /orders/{n}/tracking",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = "shipped"
            else:
                resp.failure(f"Add tracking failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def deliver(self):
        self._move_to("delivered")

    @task
    def read_back(self):
        with self.client.get(
            f"/orders/{self.state.order_number}",
            catch_response=True,
            name="GET /orders/{n}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Get order failed: {resp.status_code} — {extract_error_detail(resp)}")
            elif resp.json()["payment_status"] != "paid":
                resp.failure("Delivered cash-on-delivery order is not paid")

    @task
    def done(self):
        self.interrupt()


class OrderCancellationJourney(_OrderJourney):
    """Place -> (optionally confirm) -> Cancel -> List by email."""

    @task
    def place_order(self):
        self._place()

    @task
    def maybe_confirm(self):
        if random.random() < 0.5:
            self._move_to("confirmed")

    @task
    def cancel(self):
        self._move_to("cancelled")

    @task
    def list_by_email(self):
        with self.client.get(
            "/orders",
            params={"email": self.state.email},
            catch_response=True,
            name="GET /orders?email=",
        ) as resp:
            if resp.status_code != 200 or not resp.json():
                resp.failure(f"List by email failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CheckoutUser(HttpUser):
    """Locust user simulating customers and order operators.

    Weighted distribution:
    - 70% Full lifecycle to delivery
    - 30% Early cancellation
    """

    wait_time = between(0.5, 2.0)
    tasks = {
        OrderLifecycleJourney: 7,
        OrderCancellationJourney: 3,
    }


class AnalyticsUser(HttpUser):
    """Locust user simulating the admin dashboard."""

    wait_time = between(2.0, 5.0)

    @task(3)
    def summary(self):
        self.client.get("/analytics/summary", name="GET /analytics/summary")

    @task(2)
    def top_products(self):
        self.client.get("/analytics/top-products", params={"limit": 5}, name="GET /analytics/top-products")

    @task(1)
    def summary_last_week(self):
        self.client.get("/analytics/summary", params={"days": 7}, name="GET /analytics/summary?days=7")
