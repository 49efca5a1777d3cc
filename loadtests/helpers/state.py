"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state — no cross-user sharing.
State tracks the order numbers returned by placement so follow-up
operations can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class OrderState:
    """Tracks state for a single order lifecycle."""

    order_number: str | None = None
    email: str | None = None
    payment_method: str = "cash_on_delivery"
    current_status: str = "pending"
    history: list[str] = field(default_factory=list)
