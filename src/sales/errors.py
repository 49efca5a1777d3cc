"""Failures specific to order persistence.

Field-level input problems are reported with Protean's ``ValidationError`` and
missing records with ``ObjectNotFoundError``; the two cases here have no
Protean equivalent.
"""


class DuplicateOrderNumber(Exception):
    """Every generated order number collided with an existing order."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Could not allocate a unique order number after {attempts} attempts")
        self.attempts = attempts


class ConcurrencyConflict(Exception):
    """The order changed in storage after it was loaded.

    Callers should reload the order and decide whether their change still applies.
    """

    def __init__(self, order_number: str, expected_revision: int, actual_revision: int) -> None:
        super().__init__(
            f"Order {order_number} was modified concurrently "
            f"(loaded revision {expected_revision}, stored revision {actual_revision})"
        )
        self.order_number = order_number
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision
