"""Sales bounded context: Sales Orders and their lines.

Handles the sales order aggregate: pricing consistency under partial
updates, the order/line lifecycle, and change-tracked persistence of
order lines.
"""

from protean.domain import Domain

from sales.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

sales = Domain(name="sales")
