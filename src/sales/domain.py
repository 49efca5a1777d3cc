"""Sales bounded context — customer order records.

Owns the Order aggregate from checkout onwards: PII-protected customer
details, derived totals, the status machine with its audit trail, and
reporting over the order collection.
"""

from protean.domain import Domain

from sales.utils.logging import configure_logging

configure_logging()

sales = Domain(name="sales")
